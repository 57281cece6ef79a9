from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from datetime import timedelta
from .models import Booking
from .services import complete_booking
import logging

logger = logging.getLogger(__name__)


def _past_booking_ids(cutoff):
    return list(
        Booking.objects.filter(
            status='confirmed', session__end_time__lt=cutoff
        ).values_list('id', flat=True)
    )


@shared_task
def complete_past_bookings():
    """Mark confirmed bookings as completed once their session has ended."""
    cutoff = timezone.now() - timedelta(minutes=settings.BOOKING_COMPLETION_GRACE_MINUTES)

    completed = 0
    for booking_id in _past_booking_ids(cutoff):
        try:
            with transaction.atomic():
                # Re-read under lock; the booking may have been cancelled since the scan.
                booking = Booking.objects.select_for_update().filter(
                    id=booking_id, status='confirmed'
                ).first()
                if not booking:
                    continue
                complete_booking(booking)
            completed += 1
        except Exception as e:
            logger.error(f"Error completing booking {booking_id}: {str(e)}")

    if completed:
        logger.info(f"Marked {completed} past bookings as completed")

    return f"Completed {completed} past bookings"
