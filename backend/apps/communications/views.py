from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.conf import settings
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from functools import partial
from apps.users.permissions import IsBusinessMember
from apps.bookings.models import Booking
from apps.bookings.utils import create_booking_audit_log
from .emails import parse_reply_to_address
from .inbound import (
    SIGNATURE_HEADER, TIMESTAMP_HEADER, InboundSignatureError,
    parse_inbound_email, verify_signature
)
from .models import BookingCommunication
from .serializers import BookingCommunicationSerializer
from .tasks import send_booking_communication, notify_owners_of_reply
import uuid
import logging

logger = logging.getLogger(__name__)


def _field_max_length(name):
    return BookingCommunication._meta.get_field(name).max_length


def _clip(name, value):
    """Fit an inbound header value into its BookingCommunication column."""
    return value[:_field_max_length(name)]


def _business_booking(request, booking_id):
    return get_object_or_404(
        Booking.objects.select_related('guest', 'session__event__experience__business'),
        id=booking_id,
        session__event__experience__business=request.user.business
    )


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def booking_communications(request, booking_id):
    """Email history for a booking, newest first."""
    booking = _business_booking(request, booking_id)
    communications = booking.communications.order_by('-created_at')
    return Response(BookingCommunicationSerializer(communications, many=True).data)


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def send_booking_email(request, booking_id):
    """Queue an owner-written email to the booking's guest."""
    booking = _business_booking(request, booking_id)

    subject = (request.data.get('subject') or '').strip()
    message = (request.data.get('message') or '').strip()
    recipient_email = (request.data.get('recipient_email') or '').strip()

    if not subject or not message or not recipient_email:
        return Response(
            {'error': 'Subject, message, and recipient email are required'},
            status=status.HTTP_400_BAD_REQUEST
        )

    if recipient_email.lower() != booking.guest.email.lower():
        return Response(
            {'error': 'Email recipient must match booking guest'},
            status=status.HTTP_400_BAD_REQUEST
        )

    max_subject = _field_max_length('subject')
    if len(subject) > max_subject:
        return Response(
            {'error': f'Subject must be {max_subject} characters or fewer'},
            status=status.HTTP_400_BAD_REQUEST
        )

    with transaction.atomic():
        communication = BookingCommunication.objects.create(
            booking=booking,
            type='MARKETING',
            direction='OUTBOUND',
            status='PENDING',
            subject=subject,
            content=message,
            from_address=settings.DEFAULT_FROM_EMAIL,
            to_address=booking.guest.email
        )
        transaction.on_commit(partial(send_booking_communication.delay, str(communication.id)))

    logger.info(f"Email to guest queued for booking {booking.id} by {request.user.email}")
    return Response(
        BookingCommunicationSerializer(communication).data,
        status=status.HTTP_201_CREATED
    )


def _ignored(reason, **context):
    logger.warning(f"Ignoring inbound email: {reason} {context}")
    return JsonResponse({'status': 'ignored'})


@csrf_exempt
@require_http_methods(["POST"])
def inbound_email_webhook(request):
    """Record a guest's email reply forwarded by the provider's inbound parse."""
    # Signature covers the raw body, so read it before the form is parsed
    body = request.body

    secret = settings.INBOUND_EMAIL_WEBHOOK_SECRET
    if secret:
        try:
            verify_signature(
                secret,
                request.META.get(SIGNATURE_HEADER),
                request.META.get(TIMESTAMP_HEADER),
                body,
                settings.INBOUND_EMAIL_MAX_AGE_SECONDS
            )
        except InboundSignatureError as e:
            logger.warning(f"Rejected inbound email webhook: {e}")
            return JsonResponse({'error': str(e)}, status=401)

    email = parse_inbound_email(request.POST)

    address = parse_reply_to_address(email['to'])
    if not address:
        return _ignored('unparseable reply-to address', to=email['to'])

    business_slug, booking_id = address
    try:
        booking_id = uuid.UUID(booking_id)
    except ValueError:
        return _ignored('malformed booking id', to=email['to'])

    booking = Booking.objects.select_related(
        'guest', 'session__event__experience__business'
    ).filter(
        id=booking_id,
        session__event__experience__business__slug=business_slug
    ).first()
    if not booking:
        return _ignored('unknown booking or business', business=business_slug, booking=str(booking_id))

    if booking.guest.email.lower() != email['from_email'].lower():
        return _ignored('sender does not match booking guest', booking=str(booking.id), sender=email['from_email'])

    with transaction.atomic():
        communication = BookingCommunication.objects.create(
            booking=booking,
            type='CUSTOMER_REPLY',
            direction='INBOUND',
            status='RECEIVED',
            subject=_clip('subject', email['subject']),
            content=email['text'],
            from_address=_clip('from_address', email['from_email']),
            to_address=_clip('to_address', email['to']),
            received_at=timezone.now()
        )
        create_booking_audit_log(
            booking=booking,
            action='reply_received',
            description=f"Guest replied: {email['subject']}",
            actor_type='guest',
            actor_email=email['from_email'],
            metadata={'communication_id': str(communication.id)}
        )
        transaction.on_commit(partial(notify_owners_of_reply.delay, str(communication.id)))

    logger.info(f"Recorded reply {communication.id} for booking {booking.id}")
    return JsonResponse({'status': 'success'})
