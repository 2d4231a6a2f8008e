from rest_framework import serializers

from .models import Notification, PushSubscription
from .sms_templates import TEMPLATES


class NotificationSerializer(serializers.ModelSerializer):
    type_display = serializers.CharField(source='get_type_display', read_only=True)
    related_service_status = serializers.CharField(source='related_service.status', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = ['id', 'type', 'type_display', 'title', 'message', 'related_service', 'related_service_status',
                  'related_user', 'priority', 'is_read', 'read_at', 'created_at']
        read_only_fields = fields


class PushKeysSerializer(serializers.Serializer):
    p256dh = serializers.CharField()
    auth = serializers.CharField()


class PushSubscriptionSerializer(serializers.Serializer):
    """Browser PushSubscription.toJSON() payload"""
    endpoint = serializers.URLField(max_length=2000)
    keys = PushKeysSerializer()


class PushSubscriptionModelSerializer(serializers.ModelSerializer):
    class Meta:
        model = PushSubscription
        fields = ['id', 'endpoint', 'created_at', 'updated_at']


class PushMessageSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=120)
    body = serializers.CharField(max_length=500)
    data = serializers.DictField(required=False)


class SMSPreviewSerializer(serializers.Serializer):
    template_type = serializers.CharField()
    data = serializers.DictField(required=False, default=dict)

    def validate_template_type(self, value):
        if value not in TEMPLATES:
            raise serializers.ValidationError(f"Unknown SMS template '{value}'.")
        return value


class SMSTestSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=30)
    message = serializers.CharField(required=False, allow_blank=True)
    template_type = serializers.CharField(required=False)
    data = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        if not attrs.get('message') and not attrs.get('template_type'):
            raise serializers.ValidationError('Either message or template_type is required.')
        if attrs.get('template_type') and attrs['template_type'] not in TEMPLATES:
            raise serializers.ValidationError({'template_type': f"Unknown SMS template '{attrs['template_type']}'."})
        return attrs


class WhatsAppSendSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=30)
    message = serializers.CharField(required=False, allow_blank=True)
    template_id = serializers.CharField(required=False)
    variables = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False, default=dict)

    def validate(self, attrs):
        if not attrs.get('message') and not attrs.get('template_id'):
            raise serializers.ValidationError('Either message or template_id is required.')
        return attrs


class AutoReplySerializer(serializers.Serializer):
    message = serializers.CharField()
