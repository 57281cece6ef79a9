from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.conf import settings
from django.shortcuts import get_object_or_404
from django.db.models import Count, Sum
from django.utils import timezone
from datetime import timedelta
from apps.users.permissions import IsBusinessMember
from apps.experiences.models import Experience, Event, Session
from apps.guests.models import Guest
from .exceptions import BookingError
from .models import Booking
from .serializers import (
    BookingSerializer, BookingCreateSerializer, BookingUpdateSerializer,
    BookingAuditLogSerializer, BookingItemSerializer, CheckInSerializer
)
from .services import create_booking, update_booking, check_in_booking
from .utils import parse_limit, parse_offset, parse_uuid
import json
import uuid
import logging

logger = logging.getLogger(__name__)


def business_bookings(business):
    return Booking.objects.filter(
        session__event__experience__business=business
    ).select_related(
        'guest', 'session__event__experience'
    ).prefetch_related('items__add_on')


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def booking_list_create(request):
    """List the business's bookings, or create one from the dashboard."""
    business = request.user.business

    if request.method == 'GET':
        queryset = business_bookings(business)

        for param, lookup in (('experience_id', 'session__event__experience_id'),
                              ('event_id', 'session__event_id')):
            value = request.query_params.get(param)
            if not value:
                continue
            parsed = parse_uuid(value)
            if parsed is None:
                return Response(
                    {'error': f'Invalid {param}'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(**{lookup: parsed})

        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter.lower())

        limit = parse_limit(
            request.query_params.get('limit'),
            settings.BOOKING_DEFAULT_PAGE_SIZE,
            settings.BOOKING_MAX_PAGE_SIZE
        )
        offset = parse_offset(request.query_params.get('offset'))

        queryset = queryset.order_by('-created_at')
        total = queryset.count()
        page = queryset[offset:offset + limit]

        return Response({
            'bookings': BookingSerializer(page, many=True).data,
            'total': total,
            'limit': limit,
            'offset': offset
        })

    serializer = BookingCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    session = Session.objects.filter(
        id=data['session_id'],
        event__experience__business=business
    ).first()
    if not session:
        return Response({'error': 'Session not found'}, status=status.HTTP_404_NOT_FOUND)

    guest = Guest.objects.filter(id=data['guest_id'], business=business).first()
    if not guest:
        return Response({'error': 'Guest not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        booking = create_booking(
            session=session,
            guest=guest,
            quantity=data['quantity'],
            add_on_ids=data['add_on_ids'],
            source='dashboard',
            actor_type='staff',
            actor_email=request.user.email
        )
    except BookingError as e:
        return Response(e.as_response_data(), status=e.status_code)

    booking = business_bookings(business).get(id=booking.id)
    return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(generics.RetrieveUpdateAPIView):
    serializer_class = BookingSerializer
    permission_classes = [IsBusinessMember]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_queryset(self):
        return business_bookings(self.request.user.business)

    def partial_update(self, request, *args, **kwargs):
        serializer = BookingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = update_booking(
                booking_id=kwargs['pk'],
                business=request.user.business,
                status=serializer.validated_data.get('status'),
                quantity=serializer.validated_data.get('quantity'),
                actor_email=request.user.email
            )
        except BookingError as e:
            return Response(e.as_response_data(), status=e.status_code)

        booking = self.get_queryset().get(id=booking.id)
        return Response(BookingSerializer(booking).data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def booking_audit_logs(request, booking_id):
    """Get audit logs for a specific booking."""
    booking = get_object_or_404(
        Booking,
        id=booking_id,
        session__event__experience__business=request.user.business
    )

    audit_logs = booking.audit_logs.order_by('-created_at')
    logs_data = BookingAuditLogSerializer(audit_logs, many=True).data

    return Response({
        'booking_id': str(booking.id),
        'audit_logs': logs_data,
        'total_logs': len(logs_data)
    })


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def booking_stats(request):
    """Dashboard overview counts."""
    business = request.user.business
    now = timezone.now()

    sessions = Session.objects.filter(event__experience__business=business)
    bookings = Booking.objects.filter(session__event__experience__business=business)

    revenue = bookings.filter(
        status__in=['confirmed', 'completed']
    ).aggregate(total=Sum('total'))['total'] or 0

    recent = business_bookings(business).order_by('-created_at')[:5]

    return Response({
        'total_experiences': Experience.objects.filter(business=business).count(),
        'active_experiences': Experience.objects.filter(business=business, is_active=True).count(),
        'total_events': Event.objects.filter(experience__business=business).count(),
        'total_sessions': sessions.count(),
        'upcoming_sessions': sessions.filter(start_time__gte=now).count(),
        'total_bookings': bookings.count(),
        'total_guests': Guest.objects.filter(business=business).count(),
        'confirmed_revenue': revenue,
        'recent_bookings': BookingSerializer(recent, many=True).data
    })


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def booking_analytics(request):
    """Get booking analytics for the business."""
    try:
        days = int(request.query_params.get('days', 30))
    except ValueError:
        days = 0
    if days < 1:
        return Response(
            {'error': 'days must be a positive integer'},
            status=status.HTTP_400_BAD_REQUEST
        )

    start_date = timezone.now() - timedelta(days=days)
    bookings = Booking.objects.filter(
        session__event__experience__business=request.user.business,
        created_at__gte=start_date
    )
    active = bookings.exclude(status='cancelled')

    by_status = dict(
        bookings.values_list('status').annotate(count=Count('id')).order_by()
    )

    by_experience = [
        {
            'experience_id': row['session__event__experience__id'],
            'experience_name': row['session__event__experience__name'],
            'bookings': row['count'],
            'tickets': row['tickets'] or 0,
            'revenue': row['revenue'] or 0,
        }
        for row in active.values(
            'session__event__experience__id', 'session__event__experience__name'
        ).annotate(
            count=Count('id'),
            tickets=Sum('quantity'),
            revenue=Sum('total')
        ).order_by('-count')
    ]

    return Response({
        'period_days': days,
        'total_bookings': bookings.count(),
        'pending_bookings': by_status.get('pending', 0),
        'confirmed_bookings': by_status.get('confirmed', 0),
        'completed_bookings': by_status.get('completed', 0),
        'cancelled_bookings': by_status.get('cancelled', 0),
        'total_tickets': active.aggregate(total=Sum('quantity'))['total'] or 0,
        'revenue': active.aggregate(total=Sum('total'))['total'] or 0,
        'bookings_by_experience': by_experience
    })


def _check_in_details(booking):
    session = booking.session
    event = session.event
    experience = event.experience
    business = experience.business
    guest = booking.guest

    return {
        'booking': {
            'id': str(booking.id),
            'reference': booking.reference,
            'status': booking.status,
            'checked_in': booking.checked_in,
            'check_in_time': booking.check_in_time,
            'quantity': booking.quantity,
            'total': booking.total,
            'created_at': booking.created_at,
        },
        'guest': {
            'id': str(guest.id),
            'first_name': guest.first_name,
            'last_name': guest.last_name,
            'email': guest.email,
            'phone': guest.phone,
        },
        'session': {
            'id': str(session.id),
            'start_time': session.start_time,
            'end_time': session.end_time,
        },
        'event': {'id': str(event.id), 'name': event.name},
        'experience': {'id': str(experience.id), 'name': experience.name},
        'business': {'id': str(business.id), 'name': business.name, 'slug': business.slug},
        'items': BookingItemSerializer(booking.items.select_related('add_on'), many=True).data,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def check_in(request):
    """Look up a booking from its QR code, or check its guest in."""
    if request.method == 'POST':
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = get_object_or_404(
            business_bookings(request.user.business),
            id=serializer.validated_data['booking_id']
        )

        try:
            check_in_booking(booking, actor_email=request.user.email)
        except BookingError as e:
            return Response(e.as_response_data(), status=e.status_code)

        return Response({
            'message': f"{booking.guest.first_name} {booking.guest.last_name} has been checked in",
            'booking': BookingSerializer(booking).data
        })

    raw = request.query_params.get('data')
    if not raw:
        return Response({'error': 'Missing QR code data'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError):
        return Response({'error': 'Invalid QR code data format'}, status=status.HTTP_400_BAD_REQUEST)

    if not isinstance(payload, dict):
        return Response({'error': 'Invalid QR code data format'}, status=status.HTTP_400_BAD_REQUEST)

    booking_id = payload.get('bookingId')
    business_slug = payload.get('business')
    if payload.get('type') != 'booking' or not booking_id or not business_slug:
        return Response({'error': 'Invalid QR code data'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        booking_id = uuid.UUID(str(booking_id))
    except ValueError:
        return Response({'error': 'Invalid QR code data'}, status=status.HTTP_400_BAD_REQUEST)

    booking = Booking.objects.select_related(
        'guest', 'session__event__experience__business'
    ).filter(id=booking_id).first()
    if not booking:
        return Response({'error': 'Booking not found'}, status=status.HTTP_404_NOT_FOUND)

    business = booking.session.event.experience.business
    if business.slug != business_slug:
        logger.warning(f"Check-in QR for booking {booking.id} carried business {business_slug!r}")
        return Response(
            {'error': 'Invalid business for this booking'},
            status=status.HTTP_403_FORBIDDEN
        )

    if business.id != request.user.business_id:
        return Response(
            {'error': 'Booking does not belong to your business'},
            status=status.HTTP_403_FORBIDDEN
        )

    return Response(_check_in_details(booking))
