from rest_framework import serializers
from .models import Guest


class GuestSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()
    booking_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Guest
        fields = [
            'id', 'first_name', 'last_name', 'full_name', 'email', 'phone',
            'zip_code', 'marketing_opt_in', 'booking_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'first_name': {'min_length': 1, 'max_length': 50},
            'last_name': {'min_length': 1, 'max_length': 50},
        }

    def validate_email(self, value):
        value = value.strip()
        business = self.context['request'].user.business
        existing = Guest.objects.filter(business=business, email__iexact=value)
        if self.instance:
            existing = existing.exclude(id=self.instance.id)
        if existing.exists():
            raise serializers.ValidationError("A guest with this email already exists")
        return value


class GuestSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Guest
        fields = ['id', 'first_name', 'last_name', 'email', 'phone']


class PublicGuestSerializer(serializers.Serializer):
    """Guest details collected by the public checkout."""
    first_name = serializers.CharField(max_length=50)
    last_name = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    zip_code = serializers.CharField(max_length=10, required=False, allow_blank=True, default='')
    marketing_opt_in = serializers.BooleanField(required=False, default=False)
