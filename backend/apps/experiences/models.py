from django.db import models
from django.db.models import Sum
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone
from decimal import Decimal
import uuid

from .utils import generate_slug


class Experience(models.Model):
    """A bookable activity type offered by a business."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey('users.Business', on_delete=models.CASCADE, related_name='experiences')
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120)
    description = models.TextField(blank=True)

    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    duration = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Session length (minutes)"
    )
    max_capacity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Default number of guests per session"
    )

    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'experiences'
        unique_together = ['business', 'slug']
        verbose_name = 'Experience'
        verbose_name_plural = 'Experiences'
        ordering = ['sort_order', 'name']
        indexes = [
            models.Index(fields=['business', 'is_active'], name='experiences_busines_6d0c1e_idx'),
        ]

    def __str__(self):
        return f"{self.business.name} - {self.name}"

    def save(self, *args, **kwargs):
        # Slug always tracks the name; conflicts are rejected by the serializer
        self.slug = generate_slug(self.name)
        super().save(*args, **kwargs)

    def has_bookings(self):
        return Session.objects.filter(event__experience=self, bookings__isnull=False).exists()


class Event(models.Model):
    """A dated run of an experience. Sessions hang off an event."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    experience = models.ForeignKey(Experience, on_delete=models.CASCADE, related_name='events')
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, blank=True)
    description = models.TextField(blank=True)

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    # Optional overrides of the experience defaults
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Ticket price. Falls back to the experience base price."
    )
    max_capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Guests per session. Falls back to the experience capacity."
    )

    add_ons = models.ManyToManyField('AddOn', through='EventAddOn', related_name='events', blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'events'
        unique_together = ['experience', 'slug']
        verbose_name = 'Event'
        verbose_name_plural = 'Events'
        ordering = ['start_date']
        indexes = [
            models.Index(fields=['experience', 'is_active', 'start_date'], name='events_experie_3f9a2b_idx'),
        ]

    def __str__(self):
        return f"{self.experience.name} - {self.name}"

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = generate_slug(self.name) or 'event'
            slug = base_slug
            counter = 1

            # Ensure uniqueness within the experience
            while Event.objects.filter(
                experience=self.experience,
                slug=slug
            ).exclude(id=self.id).exists():
                slug = f"{base_slug}-{counter}"
                counter += 1

            self.slug = slug

        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError("End date must be after start date")

    @property
    def effective_price(self):
        if self.base_price is not None:
            return self.base_price
        return self.experience.base_price

    def has_bookings(self):
        return self.sessions.filter(bookings__isnull=False).exists()


class Session(models.Model):
    """A concrete time slot guests book tickets for."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='sessions')

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()

    max_capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Overrides event and experience capacity"
    )
    current_count = models.PositiveIntegerField(
        default=0,
        help_text="Tickets held by active bookings"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sessions'
        verbose_name = 'Session'
        verbose_name_plural = 'Sessions'
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['event', 'start_time'], name='sessions_event_i_8c2d4e_idx'),
            models.Index(fields=['start_time'], name='sessions_start_t_1a7b9f_idx'),
        ]

    def __str__(self):
        return f"{self.event.name} @ {self.start_time:%Y-%m-%d %H:%M}"

    def clean(self):
        super().clean()
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError("End time must be after start time")

    @property
    def effective_max_capacity(self):
        """Session capacity, else event capacity, else experience capacity."""
        if self.max_capacity is not None:
            return self.max_capacity
        if self.event.max_capacity is not None:
            return self.event.max_capacity
        return self.event.experience.max_capacity

    def booked_quantity(self, exclude_booking=None):
        """Tickets held by bookings that are not cancelled."""
        bookings = self.bookings.exclude(status='cancelled')
        if exclude_booking is not None:
            bookings = bookings.exclude(id=exclude_booking.id)
        return bookings.aggregate(total=Sum('quantity'))['total'] or 0

    def remaining_capacity(self, exclude_booking=None):
        return max(0, self.effective_max_capacity - self.booked_quantity(exclude_booking))

    @property
    def is_upcoming(self):
        return self.start_time >= timezone.now()

    def has_bookings(self):
        return self.bookings.exists()


class AddOn(models.Model):
    """Optional extra sold alongside tickets, priced per ticket."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey('users.Business', on_delete=models.CASCADE, related_name='add_ons')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)

    price = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01')), MaxValueValidator(Decimal('9999.99'))]
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'add_ons'
        unique_together = ['business', 'name']
        verbose_name = 'Add-on'
        verbose_name_plural = 'Add-ons'
        ordering = ['sort_order', 'name']

    def __str__(self):
        return f"{self.name} ({self.price})"


class EventAddOn(models.Model):
    """Makes an add-on purchasable for a specific event."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='add_on_links')
    add_on = models.ForeignKey(AddOn, on_delete=models.CASCADE, related_name='event_links')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'event_add_ons'
        unique_together = ['event', 'add_on']
        verbose_name = 'Event Add-on'
        verbose_name_plural = 'Event Add-ons'

    def __str__(self):
        return f"{self.event.name} - {self.add_on.name}"
