from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Setting, AuditLog


class UserSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'full_name', 'role', 'role_display', 'phone', 'address', 'city',
                  'company_name', 'specialization', 'is_verified', 'is_active', 'is_staff', 'is_superuser',
                  'created_at', 'updated_at']
        read_only_fields = ['is_staff', 'is_superuser', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'full_name', 'role', 'phone', 'address',
                  'city', 'company_name', 'specialization']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'role', 'phone']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']


class PerformanceMetricSerializer(serializers.Serializer):
    """Client-side performance beacon"""
    name = serializers.CharField(max_length=100)
    value = serializers.FloatField()
    page = serializers.CharField(max_length=500, required=False, allow_blank=True)
    rating = serializers.ChoiceField(choices=['good', 'needs-improvement', 'poor'], required=False)


class SQLQuerySerializer(serializers.Serializer):
    query = serializers.CharField()
