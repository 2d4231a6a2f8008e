from rest_framework import serializers
from .models import Client, ApplianceCategory, Manufacturer, Appliance


class ApplianceCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplianceCategory
        fields = ['id', 'name', 'icon']


class ManufacturerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Manufacturer
        fields = ['id', 'name']


class ApplianceSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True)
    manufacturer_name = serializers.CharField(source='manufacturer.name', read_only=True)

    class Meta:
        model = Appliance
        fields = ['id', 'client', 'client_name', 'category', 'category_name', 'manufacturer',
                  'manufacturer_name', 'model', 'serial_number', 'purchase_date', 'notes', 'created_at']
        read_only_fields = ['created_at']


class ClientSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True, allow_null=True)
    appliance_count = serializers.IntegerField(source='appliances.count', read_only=True)

    class Meta:
        model = Client
        fields = ['id', 'full_name', 'email', 'phone', 'address', 'city', 'user', 'created_by',
                  'created_by_name', 'appliance_count', 'created_at', 'updated_at']
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate_phone(self, value):
        cleaned = value.strip()
        if len([c for c in cleaned if c.isdigit()]) < 6:
            raise serializers.ValidationError('Telefon mora imati najmanje 6 cifara.')
        return cleaned


class ClientDetailSerializer(ClientSerializer):
    appliances = ApplianceSerializer(many=True, read_only=True)

    class Meta(ClientSerializer.Meta):
        fields = ClientSerializer.Meta.fields + ['appliances']
