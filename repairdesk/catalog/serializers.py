from rest_framework import serializers

from repairdesk.services.models import Service
from .models import SparePartsCatalog, SparePartOrder


class SparePartsCatalogSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    availability_display = serializers.CharField(source='get_availability_display', read_only=True)

    class Meta:
        model = SparePartsCatalog
        fields = ['id', 'part_number', 'part_name', 'description', 'category', 'category_display', 'manufacturer',
                  'price_eur', 'price_gbp', 'supplier_name', 'supplier_url', 'image_urls', 'availability',
                  'availability_display', 'stock_level', 'compatible_models', 'technical_specs', 'source_type',
                  'is_oem_part', 'created_at', 'last_updated']
        read_only_fields = ['created_at', 'last_updated']

    def validate_compatible_models(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('Must be a list of model names.')
        return value

    def validate_image_urls(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Must be a list of URLs.')
        return value


class SparePartOrderSerializer(serializers.ModelSerializer):
    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.all())
    service_status = serializers.CharField(source='service.status', read_only=True)
    client_name = serializers.CharField(source='service.client.full_name', read_only=True)
    manufacturer_name = serializers.CharField(source='service.appliance.manufacturer.name', read_only=True,
                                              allow_null=True, default=None)
    ordered_by_name = serializers.CharField(source='ordered_by.display_name', read_only=True, allow_null=True,
                                            default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = SparePartOrder
        fields = ['id', 'service', 'service_status', 'client_name', 'manufacturer_name', 'catalog_part',
                  'part_name', 'part_number', 'quantity', 'urgency', 'status', 'status_display', 'supplier_name',
                  'estimated_delivery', 'notes', 'ordered_by', 'ordered_by_name', 'created_at', 'updated_at']
        read_only_fields = ['ordered_by', 'created_at', 'updated_at']
        extra_kwargs = {'part_name': {'required': False}}

    def validate(self, attrs):
        catalog_part = attrs.get('catalog_part')
        if catalog_part is not None:
            attrs.setdefault('part_name', catalog_part.part_name)
            attrs.setdefault('part_number', catalog_part.part_number)
            attrs.setdefault('supplier_name', catalog_part.supplier_name)
        if not self.instance and not attrs.get('part_name'):
            raise serializers.ValidationError({'part_name': 'Naziv dela je obavezan.'})
        return attrs


class SupplierOrderUpdateSerializer(serializers.ModelSerializer):
    """Fields a supplier may change on an order"""

    class Meta:
        model = SparePartOrder
        fields = ['status', 'estimated_delivery', 'notes']

    def validate_status(self, value):
        if value == SparePartOrder.STATUS_PENDING:
            raise serializers.ValidationError('Dobavljač ne može vratiti porudžbinu na čekanje.')
        return value


class ScrapeRequestSerializer(serializers.Serializer):
    manufacturers = serializers.ListField(child=serializers.CharField(max_length=50), required=False,
                                          allow_empty=False)
    max_products = serializers.IntegerField(min_value=1, max_value=200, default=10)
