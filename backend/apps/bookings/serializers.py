from django.conf import settings
from rest_framework import serializers
from apps.experiences.models import AddOn, Event, Experience, Session
from apps.guests.serializers import GuestSummarySerializer, PublicGuestSerializer
from .models import Booking, BookingItem, BookingAuditLog


class AddOnSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = AddOn
        fields = ['id', 'name', 'price']


class BookingItemSerializer(serializers.ModelSerializer):
    add_on = AddOnSummarySerializer(read_only=True)

    class Meta:
        model = BookingItem
        fields = ['id', 'item_type', 'add_on', 'quantity', 'unit_price', 'total_price']


class BookingExperienceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Experience
        fields = ['id', 'name', 'slug']


class BookingEventSerializer(serializers.ModelSerializer):
    experience = BookingExperienceSerializer(read_only=True)

    class Meta:
        model = Event
        fields = ['id', 'name', 'slug', 'experience']


class BookingSessionSerializer(serializers.ModelSerializer):
    event = BookingEventSerializer(read_only=True)

    class Meta:
        model = Session
        fields = ['id', 'start_time', 'end_time', 'event']


class BookingSerializer(serializers.ModelSerializer):
    guest = GuestSummarySerializer(read_only=True)
    session = BookingSessionSerializer(read_only=True)
    items = BookingItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'reference', 'guest', 'session', 'quantity', 'total', 'status',
            'status_display', 'source', 'checked_in', 'check_in_time', 'items',
            'created_at', 'updated_at'
        ]


class BookingCreateSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    guest_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, max_value=settings.BOOKING_MAX_TICKETS_PER_ORDER)
    add_on_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class BookingUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.STATUS_CHOICES, required=False)
    quantity = serializers.IntegerField(
        min_value=1,
        max_value=settings.BOOKING_MAX_TICKETS_PER_ORDER,
        required=False
    )

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide a status or quantity to update")
        return attrs


class BookingAuditLogSerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = BookingAuditLog
        fields = [
            'id', 'action', 'action_display', 'description', 'actor_type',
            'actor_email', 'metadata', 'old_values', 'new_values', 'created_at'
        ]


class CheckInSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()


class PublicCreateGuestSerializer(PublicGuestSerializer):
    business_id = serializers.UUIDField()
    session_id = serializers.UUIDField()


class CheckoutGuestSerializer(PublicGuestSerializer):
    terms_accepted = serializers.BooleanField(required=False, default=False)

    def validate_terms_accepted(self, value):
        if not value:
            raise serializers.ValidationError("You must accept the terms and conditions")
        return value


class CheckoutBookingSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, max_value=settings.BOOKING_MAX_TICKETS_PER_ORDER)
    add_on_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class ProcessPaymentSerializer(serializers.Serializer):
    """
    Public checkout submission.

    Card details are accepted for the payment step but never stored; the
    charge itself is simulated.
    """
    guest = CheckoutGuestSerializer()
    booking = CheckoutBookingSerializer()
    payment = serializers.DictField(required=False)
