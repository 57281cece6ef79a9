from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from apps.bookings.models import Booking
from apps.bookings.utils import create_booking_audit_log
from .emails import build_confirmation_email, build_guest_message, confirmation_text, confirmation_subject
from .models import BookingCommunication
import logging

logger = logging.getLogger(__name__)


def _booking_queryset():
    return Booking.objects.select_related('guest', 'session__event__experience__business')


@shared_task
def send_booking_confirmation_email(booking_id):
    """Send the booking confirmation, with its check-in QR code, to the guest."""
    try:
        booking = _booking_queryset().get(id=booking_id)
    except Booking.DoesNotExist:
        return f"Booking {booking_id} not found"

    communication = BookingCommunication.objects.create(
        booking=booking,
        type='CONFIRMATION',
        direction='OUTBOUND',
        status='PENDING',
        subject=confirmation_subject(booking),
        content=confirmation_text(booking),
        from_address=settings.DEFAULT_FROM_EMAIL,
        to_address=booking.guest.email
    )

    try:
        message = build_confirmation_email(booking)
        message.send(fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to send confirmation email for booking {booking_id}: {str(e)}")
        communication.mark_failed(str(e))
        return f"Failed to send confirmation email: {str(e)}"

    communication.mark_sent(message.extra_headers.get('Message-ID', ''))
    create_booking_audit_log(
        booking=booking,
        action='email_sent',
        description=f"Confirmation email sent to {booking.guest.email}",
        actor_type='system',
        metadata={'communication_id': str(communication.id), 'type': 'CONFIRMATION'}
    )

    logger.info(f"Confirmation email sent for booking {booking_id}")
    return f"Confirmation email sent to {booking.guest.email}"


@shared_task
def send_booking_communication(communication_id):
    """Deliver an owner-written email to the booking's guest."""
    try:
        communication = BookingCommunication.objects.select_related(
            'booking__guest', 'booking__session__event__experience__business'
        ).get(id=communication_id)
    except BookingCommunication.DoesNotExist:
        return f"Communication {communication_id} not found"

    if communication.status != 'PENDING':
        return f"Communication {communication_id} already processed"

    try:
        message = build_guest_message(communication)
        message.send(fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to send communication {communication_id}: {str(e)}")
        communication.mark_failed(str(e))
        return f"Failed to send email: {str(e)}"

    communication.mark_sent(message.extra_headers.get('Message-ID', ''))
    create_booking_audit_log(
        booking=communication.booking,
        action='email_sent',
        description=f"Email \"{communication.subject}\" sent to {communication.to_address}",
        actor_type='staff',
        metadata={'communication_id': str(communication.id), 'type': communication.type}
    )

    logger.info(f"Communication {communication_id} sent to {communication.to_address}")
    return f"Email sent to {communication.to_address}"


@shared_task
def notify_owners_of_reply(communication_id):
    """Tell the business owners a guest has replied to one of their emails."""
    try:
        communication = BookingCommunication.objects.select_related(
            'booking__guest', 'booking__session__event__experience__business'
        ).get(id=communication_id)
    except BookingCommunication.DoesNotExist:
        return f"Communication {communication_id} not found"

    booking = communication.booking
    business = booking.session.event.experience.business
    recipients = list(
        business.members.filter(role='owner', is_active=True).values_list('email', flat=True)
    )
    if not recipients:
        return f"No owners to notify for business {business.id}"

    guest = booking.guest
    subject = f"New reply from {guest.first_name} {guest.last_name}: {communication.subject}"
    message = (
        f"{guest.first_name} {guest.last_name} ({guest.email}) replied about booking "
        f"#{booking.reference} for {booking.session.event.name}.\n\n"
        f"{communication.content}\n\n"
        f"View the booking: {settings.BASE_URL}/dashboard/bookings/{booking.id}"
    )

    try:
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            recipients,
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to notify owners of reply {communication_id}: {str(e)}")
        return f"Failed to notify owners: {str(e)}"

    return f"Notified {len(recipients)} owners of reply {communication_id}"
