from django.db import models
from django.utils import timezone
import uuid


class BookingCommunication(models.Model):
    """Every email exchanged with a guest about a booking, in either direction."""
    TYPE_CHOICES = [
        ('CONFIRMATION', 'Confirmation'),
        ('REMINDER', 'Reminder'),
        ('MARKETING', 'Marketing'),
        ('CUSTOMER_REPLY', 'Customer Reply'),
        ('BUSINESS_REPLY', 'Business Reply'),
    ]

    CHANNEL_CHOICES = [
        ('EMAIL', 'Email'),
    ]

    DIRECTION_CHOICES = [
        ('INBOUND', 'Inbound'),
        ('OUTBOUND', 'Outbound'),
    ]

    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('SENT', 'Sent'),
        ('DELIVERED', 'Delivered'),
        ('FAILED', 'Failed'),
        ('RECEIVED', 'Received'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey('bookings.Booking', on_delete=models.CASCADE, related_name='communications')

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES, default='EMAIL')
    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='PENDING')

    # Content
    subject = models.CharField(max_length=255, blank=True)
    content = models.TextField()
    from_address = models.CharField(max_length=255, blank=True)
    to_address = models.CharField(max_length=255, blank=True)

    # Delivery tracking
    message_id = models.CharField(max_length=255, blank=True, help_text="Message-ID header of the email")
    sent_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_communications'
        verbose_name = 'Booking Communication'
        verbose_name_plural = 'Booking Communications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['booking', '-created_at'], name='booking_com_booking_2c9d4e_idx'),
            models.Index(fields=['type', 'status'], name='booking_com_type_6f1a3b_idx'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} ({self.direction}) - {self.status}"

    def mark_sent(self, message_id=''):
        self.status = 'SENT'
        self.sent_at = timezone.now()
        self.message_id = message_id
        self.error_message = ''
        self.save(update_fields=['status', 'sent_at', 'message_id', 'error_message', 'updated_at'])

    def mark_failed(self, error_message):
        self.status = 'FAILED'
        self.error_message = error_message
        self.save(update_fields=['status', 'error_message', 'updated_at'])
