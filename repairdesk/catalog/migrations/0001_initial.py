# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('services', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SparePartsCatalog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('part_number', models.CharField(max_length=100, unique=True)),
                ('part_name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('category', models.CharField(choices=[('washing-machine', 'Veš mašina'), ('dishwasher', 'Sudo mašina'), ('oven', 'Rerna'), ('cooker-hood', 'Aspirator'), ('tumble-dryer', 'Sušilica'), ('fridge-freezer', 'Frižider/Zamrzivač'), ('microwave', 'Mikrotalasna'), ('vacuum-cleaner', 'Usisivač'), ('universal', 'Univerzalni')], default='universal', max_length=30)),
                ('manufacturer', models.CharField(max_length=100)),
                ('price_eur', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('price_gbp', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('supplier_name', models.CharField(blank=True, max_length=100, null=True)),
                ('supplier_url', models.URLField(blank=True, max_length=500, null=True)),
                ('image_urls', models.JSONField(blank=True, default=list)),
                ('availability', models.CharField(choices=[('available', 'Dostupno'), ('out_of_stock', 'Nema na stanju'), ('discontinued', 'Ukinuto'), ('special_order', 'Po porudžbini')], default='available', max_length=20)),
                ('stock_level', models.IntegerField(default=0)),
                ('compatible_models', models.JSONField(blank=True, default=list)),
                ('technical_specs', models.TextField(blank=True, null=True)),
                ('source_type', models.CharField(choices=[('manual', 'Ručni unos'), ('web_scraping', 'Web scraping')], default='manual', max_length=20)),
                ('is_oem_part', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('last_updated', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'spare_parts_catalog',
                'ordering': ['manufacturer', 'part_name'],
                'indexes': [models.Index(fields=['manufacturer', 'category'], name='idx_part_mfr_category'), models.Index(fields=['part_name', 'manufacturer'], name='idx_part_name_mfr')],
            },
        ),
        migrations.CreateModel(
            name='SparePartOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('part_name', models.CharField(max_length=255)),
                ('part_number', models.CharField(blank=True, max_length=100, null=True)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('urgency', models.CharField(choices=[('normal', 'Normalno'), ('high', 'Brzo'), ('urgent', 'Hitno')], default='normal', max_length=10)),
                ('status', models.CharField(choices=[('pending', 'Na čekanju'), ('ordered', 'Poručeno'), ('received', 'Primljeno'), ('delivered', 'Isporučeno'), ('cancelled', 'Otkazano')], default='pending', max_length=20)),
                ('supplier_name', models.CharField(blank=True, max_length=100, null=True)),
                ('estimated_delivery', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('catalog_part', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='catalog.sparepartscatalog')),
                ('ordered_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='part_orders', to=settings.AUTH_USER_MODEL)),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='part_orders', to='services.service')),
            ],
            options={
                'db_table': 'spare_part_orders',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='idx_partorder_status'), models.Index(fields=['service', 'status'], name='idx_partorder_service_status')],
            },
        ),
    ]
