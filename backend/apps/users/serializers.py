from rest_framework import serializers
from django.contrib.auth import authenticate
from .models import User, Business, AnalyticsTracking


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = [
            'id', 'name', 'slug', 'email', 'phone', 'website',
            'timezone_name', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'slug', 'is_active', 'created_at', 'updated_at']

    def validate_timezone_name(self, value):
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise serializers.ValidationError(f"Unknown timezone: {value}")
        return value


class UserSerializer(serializers.ModelSerializer):
    business = BusinessSerializer(read_only=True)
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name',
            'role', 'business', 'last_login', 'date_joined'
        ]
        read_only_fields = ['id', 'role', 'business', 'last_login', 'date_joined']

    def get_full_name(self, obj):
        return obj.full_name


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate(self, attrs):
        user = authenticate(username=attrs['email'], password=attrs['password'])
        if not user:
            raise serializers.ValidationError('Invalid credentials')

        if not user.is_active:
            raise serializers.ValidationError('Your account is not active')

        attrs['user'] = user
        return attrs


class AnalyticsTrackingSerializer(serializers.ModelSerializer):
    platform_display = serializers.CharField(source='get_platform_display', read_only=True)

    class Meta:
        model = AnalyticsTracking
        fields = [
            'id', 'platform', 'platform_display', 'tracking_id', 'is_enabled',
            'environment', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_tracking_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Tracking ID is required")
        return value

    def validate_platform(self, value):
        business = self.context['request'].user.business
        existing = AnalyticsTracking.objects.filter(business=business, platform=value)
        if self.instance:
            existing = existing.exclude(id=self.instance.id)
        if existing.exists():
            raise serializers.ValidationError("A tracking code for this platform already exists")
        return value


class PublicAnalyticsTrackingSerializer(serializers.ModelSerializer):
    """What the public pages need to load tracking codes."""

    class Meta:
        model = AnalyticsTracking
        fields = ['platform', 'tracking_id', 'is_enabled', 'environment']
