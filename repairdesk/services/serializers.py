from rest_framework import serializers

from .models import Service, ServiceStatusHistory, STATUS_DESCRIPTIONS


class ServiceSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    client_phone = serializers.CharField(source='client.phone', read_only=True)
    client_city = serializers.CharField(source='client.city', read_only=True, allow_null=True)
    appliance_name = serializers.SerializerMethodField()
    manufacturer_name = serializers.CharField(source='appliance.manufacturer.name', read_only=True, allow_null=True)
    technician_name = serializers.CharField(source='technician.display_name', read_only=True, allow_null=True)
    business_partner_name = serializers.CharField(source='business_partner.display_name', read_only=True, allow_null=True)
    status_description = serializers.CharField(read_only=True)

    class Meta:
        model = Service
        fields = [
            'id', 'client', 'client_name', 'client_phone', 'client_city',
            'appliance', 'appliance_name', 'manufacturer_name',
            'technician', 'technician_name', 'business_partner', 'business_partner_name',
            'partner_company_name', 'description', 'status', 'status_description',
            'warranty_status', 'urgency', 'scheduled_date', 'completed_date', 'cost',
            'technician_notes', 'used_parts', 'machine_notes', 'is_completely_fixed',
            'client_unavailable_reason', 'needs_rescheduling', 'customer_refused_repair', 'repair_refusal_reason',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['business_partner', 'completed_date', 'client_unavailable_reason', 'needs_rescheduling',
                            'customer_refused_repair', 'repair_refusal_reason', 'created_at', 'updated_at']

    def get_appliance_name(self, obj):
        return str(obj.appliance) if obj.appliance else None

    def validate(self, attrs):
        client = attrs.get('client', getattr(self.instance, 'client', None))
        appliance = attrs.get('appliance', getattr(self.instance, 'appliance', None))
        if appliance is not None and client is not None and appliance.client_id != client.id:
            raise serializers.ValidationError({'appliance': 'Uređaj ne pripada izabranom klijentu.'})
        technician = attrs.get('technician')
        if technician is not None and technician.role != 'technician':
            raise serializers.ValidationError({'technician': 'Izabrani korisnik nije serviser.'})
        return attrs


class ServiceRequestSerializer(ServiceSerializer):
    """Services created by business partners and customers; workflow fields are read-only"""

    class Meta(ServiceSerializer.Meta):
        read_only_fields = ServiceSerializer.Meta.read_only_fields + [
            'technician', 'status', 'cost', 'technician_notes', 'used_parts',
            'machine_notes', 'is_completely_fixed', 'partner_company_name',
        ]
        extra_kwargs = {'appliance': {'required': True, 'allow_null': False}}


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()
    technician_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    used_parts = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    machine_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_completely_fixed = serializers.BooleanField(required=False, allow_null=True)


class VisitOutcomeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class AssignTechnicianSerializer(serializers.Serializer):
    technician = serializers.IntegerField()
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)


class ServiceStatusHistorySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.CharField(source='changed_by.display_name', read_only=True, allow_null=True)
    old_status_description = serializers.SerializerMethodField()
    new_status_description = serializers.SerializerMethodField()

    class Meta:
        model = ServiceStatusHistory
        fields = ['id', 'old_status', 'old_status_description', 'new_status', 'new_status_description',
                  'changed_by', 'changed_by_name', 'notes', 'created_at']

    def get_old_status_description(self, obj):
        return STATUS_DESCRIPTIONS.get(obj.old_status, obj.old_status)

    def get_new_status_description(self, obj):
        return STATUS_DESCRIPTIONS.get(obj.new_status, obj.new_status)
