"""Unauthenticated booking funnel: browse, price, pay, confirm."""
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Min, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from decimal import Decimal, InvalidOperation
from apps.users.models import Business
from apps.experiences.models import Experience, Event, Session
from apps.experiences.utils import public_business_cache_key
from apps.guests.models import Guest
from apps.guests.services import upsert_guest
from .exceptions import BookingError, CapacityError
from .models import Booking
from .serializers import BookingSerializer, PublicCreateGuestSerializer, ProcessPaymentSerializer
from .services import create_booking
from .utils import (
    build_line_items, cart_total, encode_check_in_payload, parse_uuid, resolve_add_ons,
    serialize_line_items
)
import logging

logger = logging.getLogger(__name__)


class BookingThrottle(AnonRateThrottle):
    scope = 'booking'


def _active_business(business_slug):
    return Business.objects.filter(slug=business_slug, is_active=True).first()


def _business_not_found():
    return Response({'error': 'Business not found'}, status=status.HTTP_404_NOT_FOUND)


def _business_data(business):
    return {
        'id': str(business.id),
        'name': business.name,
        'slug': business.slug,
        'email': business.email,
        'phone': business.phone,
        'website': business.website,
        'timezone': business.timezone_name,
    }


def _experience_data(experience):
    return {
        'id': str(experience.id),
        'name': experience.name,
        'slug': experience.slug,
        'description': experience.description,
        'base_price': experience.base_price,
        'duration': experience.duration,
        'max_capacity': experience.max_capacity,
    }


def _event_data(event):
    return {
        'id': str(event.id),
        'name': event.name,
        'slug': event.slug,
        'description': event.description,
        'start_date': event.start_date,
        'end_date': event.end_date,
        'price': event.effective_price,
    }


def _session_data(session):
    remaining = session.remaining_capacity()
    return {
        'id': str(session.id),
        'start_time': session.start_time,
        'end_time': session.end_time,
        'max_capacity': session.effective_max_capacity,
        'remaining_capacity': remaining,
        'is_sold_out': remaining == 0,
    }


def _public_event(business_slug, experience_slug, event_slug):
    return get_object_or_404(
        Event.objects.select_related('experience__business'),
        slug=event_slug,
        is_active=True,
        experience__slug=experience_slug,
        experience__is_active=True,
        experience__business__slug=business_slug,
        experience__business__is_active=True
    )


def _public_session(business_slug, experience_slug, event_slug, session_id):
    event = _public_event(business_slug, experience_slug, event_slug)
    session = get_object_or_404(
        Session,
        id=session_id,
        event=event,
        start_time__gte=timezone.now()
    )
    return event, session


def _parse_tickets(value):
    """Ticket count from a query string. Returns None when unusable."""
    if value in (None, ''):
        return 1
    try:
        tickets = int(value)
    except ValueError:
        return None
    if tickets < 1 or tickets > settings.BOOKING_MAX_TICKETS_PER_ORDER:
        return None
    return tickets


def _split_ids(value):
    return [part.strip() for part in (value or '').split(',') if part.strip()]


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_business_page(request, business_slug):
    """Public business page listing active experiences."""
    cache_key = public_business_cache_key(business_slug)
    cached_data = cache.get(cache_key)
    if cached_data:
        return Response(cached_data)

    business = _active_business(business_slug)
    if not business:
        return _business_not_found()

    experiences = Experience.objects.filter(
        business=business,
        is_active=True
    ).order_by('sort_order', 'name')

    data = _business_data(business)
    data['experiences'] = [_experience_data(experience) for experience in experiences]

    cache.set(cache_key, data, timeout=settings.PUBLIC_PAGE_CACHE_TIMEOUT)
    return Response(data)


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_experience_page(request, business_slug, experience_slug):
    """Experience page with every active event that still has sessions ahead."""
    experience = get_object_or_404(
        Experience.objects.select_related('business'),
        slug=experience_slug,
        is_active=True,
        business__slug=business_slug,
        business__is_active=True
    )

    now = timezone.now()
    upcoming = Q(sessions__start_time__gte=now)
    events = experience.events.filter(is_active=True).annotate(
        upcoming_session_count=Count('sessions', filter=upcoming),
        next_session_start=Min('sessions__start_time', filter=upcoming)
    ).filter(upcoming_session_count__gt=0).order_by('next_session_start')

    events_data = []
    for event in events:
        event_data = _event_data(event)
        event_data['next_session_start'] = event.next_session_start
        event_data['upcoming_session_count'] = event.upcoming_session_count
        events_data.append(event_data)

    return Response({
        'business': _business_data(experience.business),
        'experience': _experience_data(experience),
        'events': events_data
    })


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_event_page(request, business_slug, experience_slug, event_slug):
    """Event page with upcoming sessions and seats left in each."""
    event = _public_event(business_slug, experience_slug, event_slug)
    sessions = event.sessions.filter(start_time__gte=timezone.now()).order_by('start_time')

    return Response({
        'business': _business_data(event.experience.business),
        'experience': _experience_data(event.experience),
        'event': _event_data(event),
        'sessions': [_session_data(session) for session in sessions]
    })


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_session_page(request, business_slug, experience_slug, event_slug, session_id):
    """Ticket selection for one session."""
    event, session = _public_session(business_slug, experience_slug, event_slug, session_id)

    session_data = _session_data(session)
    add_ons = event.add_ons.filter(is_active=True).order_by('sort_order', 'name')

    return Response({
        'business': _business_data(event.experience.business),
        'experience': _experience_data(event.experience),
        'event': _event_data(event),
        'session': session_data,
        'ticket_price': event.effective_price,
        'max_tickets': min(session_data['remaining_capacity'], settings.BOOKING_MAX_TICKETS_PER_ORDER),
        'add_ons': [
            {
                'id': str(add_on.id),
                'name': add_on.name,
                'description': add_on.description,
                'price': add_on.price,
            }
            for add_on in add_ons
        ]
    })


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_checkout(request, business_slug, experience_slug, event_slug, session_id):
    """Server-priced cart for the chosen tickets and add-ons."""
    event, session = _public_session(business_slug, experience_slug, event_slug, session_id)

    tickets = _parse_tickets(request.query_params.get('tickets'))
    if tickets is None:
        return Response({'error': 'Invalid ticket quantity'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        remaining = session.remaining_capacity()
        if tickets > remaining:
            raise CapacityError(details=f"Only {remaining} spots available")
        add_ons = resolve_add_ons(event, _split_ids(request.query_params.get('add_ons')))
    except BookingError as e:
        return Response(e.as_response_data(), status=e.status_code)

    lines = build_line_items(event, tickets, add_ons)

    return Response({
        'business': _business_data(event.experience.business),
        'experience': _experience_data(event.experience),
        'event': _event_data(event),
        'session': _session_data(session),
        'tickets': tickets,
        'items': serialize_line_items(lines),
        'total': cart_total(lines)
    })


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
@throttle_classes([BookingThrottle])
def public_create_guest(request):
    """Create or refresh the guest record for a checkout."""
    serializer = PublicCreateGuestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    business = Business.objects.filter(id=data['business_id'], is_active=True).first()
    if not business:
        return _business_not_found()

    if not Session.objects.filter(id=data['session_id'], event__experience__business=business).exists():
        return Response({'error': 'Session not found'}, status=status.HTTP_404_NOT_FOUND)

    guest = upsert_guest(business, data)
    return Response({'id': str(guest.id), 'email': guest.email})


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
@throttle_classes([BookingThrottle])
def process_payment(request):
    """Take a simulated payment and create the online booking."""
    serializer = ProcessPaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    guest_data = serializer.validated_data['guest']
    booking_data = serializer.validated_data['booking']

    session = Session.objects.select_related('event__experience__business').filter(
        id=booking_data['session_id'],
        start_time__gte=timezone.now(),
        event__is_active=True,
        event__experience__is_active=True,
        event__experience__business__is_active=True
    ).first()
    if not session:
        return Response({'error': 'Session not found'}, status=status.HTTP_404_NOT_FOUND)

    business = session.event.experience.business

    try:
        with transaction.atomic():
            guest = upsert_guest(business, guest_data)
            booking = create_booking(
                session=session,
                guest=guest,
                quantity=booking_data['quantity'],
                add_on_ids=booking_data['add_on_ids'],
                source='online',
                actor_type='guest',
                actor_email=guest.email
            )
    except BookingError as e:
        return Response(e.as_response_data(), status=e.status_code)

    logger.info(f"Online payment processed for booking {booking.id} ({booking.total})")

    return Response({
        'booking_id': str(booking.id),
        'status': 'success',
        'message': 'Payment processed successfully',
        'total': booking.total
    })


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_payment_summary(request, business_slug):
    """Order summary shown on the payment page, priced on the server."""
    business = _active_business(business_slug)
    if not business:
        return _business_not_found()

    guest_id = parse_uuid(request.query_params.get('guest_id'))
    guest = Guest.objects.filter(id=guest_id, business=business).first() if guest_id else None
    if not guest:
        return Response({'error': 'Guest not found'}, status=status.HTTP_404_NOT_FOUND)

    session_id = parse_uuid(request.query_params.get('session_id'))
    session = Session.objects.select_related('event__experience').filter(
        id=session_id,
        event__experience__business=business
    ).first() if session_id else None
    if not session:
        return Response({'error': 'Session not found'}, status=status.HTTP_404_NOT_FOUND)

    tickets = _parse_tickets(request.query_params.get('tickets'))
    if tickets is None:
        return Response({'error': 'Invalid ticket quantity'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        add_ons = resolve_add_ons(session.event, _split_ids(request.query_params.get('add_ons')))
    except BookingError as e:
        return Response(e.as_response_data(), status=e.status_code)

    lines = build_line_items(session.event, tickets, add_ons)
    total = cart_total(lines)

    client_total = None
    raw_total = request.query_params.get('total')
    if raw_total:
        try:
            client_total = Decimal(raw_total).quantize(Decimal('0.01'))
        except InvalidOperation:
            client_total = None

    return Response({
        'business': _business_data(business),
        'guest': {
            'id': str(guest.id),
            'first_name': guest.first_name,
            'last_name': guest.last_name,
            'email': guest.email,
        },
        'experience': _experience_data(session.event.experience),
        'event': _event_data(session.event),
        'session': _session_data(session),
        'tickets': tickets,
        'items': serialize_line_items(lines),
        'total': total,
        'client_total': client_total,
        'total_matches': client_total == total if client_total is not None else None
    })


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_confirmation(request, business_slug, booking_id):
    """Booking confirmation with the check-in QR payload."""
    business = _active_business(business_slug)
    if not business:
        return _business_not_found()

    booking = Booking.objects.select_related(
        'guest', 'session__event__experience__business'
    ).prefetch_related('items__add_on').filter(
        id=booking_id,
        session__event__experience__business=business
    ).first()
    if not booking:
        return Response({'error': 'Booking not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'business': _business_data(business),
        'booking': BookingSerializer(booking).data,
        'qr_code_data': encode_check_in_payload(booking)
    })
