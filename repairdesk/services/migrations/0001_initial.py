# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Service',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('partner_company_name', models.CharField(blank=True, max_length=255, null=True)),
                ('description', models.TextField()),
                ('status', models.CharField(choices=[('pending', 'Na čekanju'), ('assigned', 'Dodeljen serviseru'), ('scheduled', 'Zakazan termin'), ('in_progress', 'U toku'), ('waiting_parts', 'Čeka rezervne delove'), ('completed', 'Završen'), ('cancelled', 'Otkazan')], default='pending', max_length=20)),
                ('warranty_status', models.CharField(choices=[('in_warranty', 'U garanciji'), ('out_of_warranty', 'Van garancije')], default='out_of_warranty', max_length=20)),
                ('urgency', models.CharField(choices=[('normal', 'Normalno'), ('high', 'Hitno'), ('urgent', 'Veoma hitno')], default='normal', max_length=10)),
                ('scheduled_date', models.DateTimeField(blank=True, null=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('technician_notes', models.TextField(blank=True, null=True)),
                ('used_parts', models.TextField(blank=True, null=True)),
                ('machine_notes', models.TextField(blank=True, null=True)),
                ('is_completely_fixed', models.BooleanField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('appliance', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='services', to='clients.appliance')),
                ('business_partner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='partner_services', to=settings.AUTH_USER_MODEL)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='services', to='clients.client')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_services', to=settings.AUTH_USER_MODEL)),
                ('technician', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_services', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'services',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='idx_service_status'), models.Index(fields=['-created_at'], name='idx_service_created'), models.Index(fields=['technician', 'status'], name='idx_service_tech_status')],
            },
        ),
        migrations.CreateModel(
            name='ServiceStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('old_status', models.CharField(blank=True, max_length=20)),
                ('new_status', models.CharField(max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='service_status_changes', to=settings.AUTH_USER_MODEL)),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='services.service')),
            ],
            options={
                'verbose_name_plural': 'service status history',
                'db_table': 'service_status_history',
                'ordering': ['-created_at'],
            },
        ),
    ]
