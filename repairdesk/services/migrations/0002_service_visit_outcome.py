# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('services', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='service',
            name='client_unavailable_reason',
            field=models.TextField(blank=True, null=True),
        ),
        migrations.AddField(
            model_name='service',
            name='needs_rescheduling',
            field=models.BooleanField(default=False),
        ),
        migrations.AddField(
            model_name='service',
            name='customer_refused_repair',
            field=models.BooleanField(default=False),
        ),
        migrations.AddField(
            model_name='service',
            name='repair_refusal_reason',
            field=models.TextField(blank=True, null=True),
        ),
    ]
