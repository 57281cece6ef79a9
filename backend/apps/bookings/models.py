from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Booking(models.Model):
    """Tickets a guest holds for a session."""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    SOURCE_CHOICES = [
        ('dashboard', 'Dashboard'),
        ('online', 'Online'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey('experiences.Session', on_delete=models.PROTECT, related_name='bookings')
    guest = models.ForeignKey('guests.Guest', on_delete=models.PROTECT, related_name='bookings')

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='confirmed')
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='dashboard')

    # Check-in at the venue
    checked_in = models.BooleanField(default=False)
    check_in_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['session', 'status'], name='bookings_session_4e1f7a_idx'),
            models.Index(fields=['status', 'created_at'], name='bookings_status_9b3c2d_idx'),
        ]

    def __str__(self):
        return f"{self.guest.full_name} - {self.session} x{self.quantity}"

    @property
    def business(self):
        return self.session.event.experience.business

    @property
    def reference(self):
        """Short reference shown to guests."""
        return str(self.id)[-8:]

    @property
    def is_active(self):
        return self.status != 'cancelled'


class BookingItem(models.Model):
    """A priced line of a booking: the tickets themselves or one add-on."""
    ITEM_TYPES = [
        ('session', 'Session'),
        ('add_on', 'Add-on'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='items')
    item_type = models.CharField(max_length=20, choices=ITEM_TYPES, default='session')
    add_on = models.ForeignKey(
        'experiences.AddOn',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='booking_items'
    )

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'booking_items'
        verbose_name = 'Booking Item'
        verbose_name_plural = 'Booking Items'
        ordering = ['created_at']

    def __str__(self):
        label = self.add_on.name if self.add_on_id else 'Tickets'
        return f"{label} x{self.quantity}"


class BookingAuditLog(models.Model):
    """Audit trail for booking-related actions."""
    ACTION_CHOICES = [
        ('booking_created', 'Booking Created'),
        ('booking_updated', 'Booking Updated'),
        ('booking_cancelled', 'Booking Cancelled'),
        ('booking_reactivated', 'Booking Reactivated'),
        ('booking_completed', 'Booking Completed'),
        ('checked_in', 'Checked In'),
        ('email_sent', 'Email Sent'),
        ('reply_received', 'Reply Received'),
    ]

    ACTOR_TYPES = [
        ('staff', 'Staff'),
        ('guest', 'Guest'),
        ('system', 'System'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='audit_logs')

    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    description = models.TextField()

    actor_type = models.CharField(max_length=20, choices=ACTOR_TYPES)
    actor_email = models.EmailField(blank=True)

    metadata = models.JSONField(default=dict, blank=True, help_text="Additional context data")
    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'booking_audit_logs'
        verbose_name = 'Booking Audit Log'
        verbose_name_plural = 'Booking Audit Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['booking', '-created_at'], name='booking_aud_booking_5a8e1c_idx'),
            models.Index(fields=['action', '-created_at'], name='booking_aud_action_7d2f6b_idx'),
        ]

    def __str__(self):
        return f"{self.booking_id} - {self.get_action_display()} by {self.actor_type}"
