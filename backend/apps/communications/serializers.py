from rest_framework import serializers
from .models import BookingCommunication


class BookingCommunicationSerializer(serializers.ModelSerializer):
    booking_id = serializers.UUIDField(source='booking.id', read_only=True)
    type_display = serializers.CharField(source='get_type_display', read_only=True)

    class Meta:
        model = BookingCommunication
        fields = [
            'id', 'booking_id', 'type', 'type_display', 'channel', 'direction',
            'status', 'subject', 'content', 'from_address', 'to_address',
            'message_id', 'sent_at', 'delivered_at', 'received_at',
            'error_message', 'created_at', 'updated_at'
        ]
