from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Count, Prefetch
from apps.users.permissions import IsBusinessMember
from .models import Experience, Event, Session, AddOn, EventAddOn
from .serializers import (
    ExperienceSerializer, EventSerializer, EventWriteSerializer,
    SessionSerializer, SessionWriteSerializer, AddOnSerializer, EventAddOnSerializer,
    EventAddOnCreateSerializer
)
from .utils import build_event_sessions, regenerate_event_sessions, invalidate_public_business_cache
import logging
import uuid

logger = logging.getLogger(__name__)


def uuid_query_param(request, name):
    """Return a UUID query parameter, raising a 400 when it is malformed."""
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError({name: ['Must be a valid UUID.']})


def _sessions_prefetch():
    return Prefetch(
        'sessions',
        queryset=Session.objects.select_related('event__experience').annotate(
            booking_count=Count('bookings')
        ).order_by('start_time')
    )


class ExperienceListCreateView(generics.ListCreateAPIView):
    serializer_class = ExperienceSerializer
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        return Experience.objects.filter(
            business=self.request.user.business
        ).prefetch_related(
            Prefetch('events', queryset=Event.objects.select_related('experience').prefetch_related(_sessions_prefetch()))
        ).order_by('sort_order', 'name')

    def perform_create(self, serializer):
        experience = serializer.save(business=self.request.user.business)
        invalidate_public_business_cache(experience.business)
        logger.info(f"Experience {experience.id} created for business {experience.business_id}")


class ExperienceDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = ExperienceSerializer
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return Experience.objects.filter(business=self.request.user.business)

    def perform_update(self, serializer):
        experience = serializer.save()
        invalidate_public_business_cache(experience.business)

    def destroy(self, request, *args, **kwargs):
        experience = self.get_object()

        if experience.has_bookings():
            return Response(
                {'error': 'Cannot delete experience with existing bookings'},
                status=status.HTTP_400_BAD_REQUEST
            )

        business = experience.business
        experience.delete()
        invalidate_public_business_cache(business)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        queryset = Event.objects.filter(
            experience__business=self.request.user.business
        ).select_related('experience').prefetch_related(_sessions_prefetch())

        experience_id = uuid_query_param(self.request, 'experience_id')
        if experience_id:
            queryset = queryset.filter(experience_id=experience_id)

        return queryset.order_by('start_date')

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return EventWriteSerializer
        return EventSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        experience = Experience.objects.filter(
            id=serializer.validated_data['experience_id'],
            business=request.user.business
        ).first()
        if not experience:
            return Response(
                {'error': 'Experience not found'},
                status=status.HTTP_404_NOT_FOUND
            )

        schedule = serializer.pop_schedule()
        with transaction.atomic():
            event = serializer.save(experience=experience)
            if schedule:
                build_event_sessions(event, *schedule)

        invalidate_public_business_cache(experience.business)
        event = self.get_queryset().get(id=event.id)
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return Event.objects.filter(
            experience__business=self.request.user.business
        ).select_related('experience').prefetch_related(_sessions_prefetch())

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return EventWriteSerializer
        return EventSerializer

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        event = self.get_object()
        serializer = self.get_serializer(event, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        experience = event.experience
        experience_id = serializer.validated_data.get('experience_id')
        if experience_id and experience_id != experience.id:
            experience = Experience.objects.filter(
                id=experience_id,
                business=request.user.business
            ).first()
            if not experience:
                return Response(
                    {'error': 'Experience not found'},
                    status=status.HTTP_404_NOT_FOUND
                )

        schedule = serializer.pop_schedule()
        with transaction.atomic():
            event = serializer.save(experience=experience)
            if schedule:
                regenerate_event_sessions(event, *schedule)

        invalidate_public_business_cache(experience.business)
        event = self.get_queryset().get(id=event.id)
        return Response(EventSerializer(event).data)

    def destroy(self, request, *args, **kwargs):
        event = self.get_object()

        if event.has_bookings():
            return Response(
                {'error': 'Cannot delete event with existing bookings'},
                status=status.HTTP_400_BAD_REQUEST
            )

        business = event.experience.business
        event.delete()
        invalidate_public_business_cache(business)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SessionListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        queryset = Session.objects.filter(
            event__experience__business=self.request.user.business
        ).select_related('event__experience').annotate(booking_count=Count('bookings'))

        event_id = uuid_query_param(self.request, 'event_id')
        if event_id:
            queryset = queryset.filter(event_id=event_id)

        return queryset.order_by('start_time')

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return SessionWriteSerializer
        return SessionSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        event = Event.objects.filter(
            id=serializer.validated_data.pop('event_id'),
            experience__business=request.user.business
        ).first()
        if not event:
            return Response(
                {'error': 'Event not found'},
                status=status.HTTP_404_NOT_FOUND
            )

        session = serializer.save(event=event)
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionDetailView(generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return Session.objects.filter(
            event__experience__business=self.request.user.business
        ).select_related('event__experience')

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return SessionWriteSerializer
        return SessionSerializer

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        session = self.get_object()

        if session.has_bookings():
            return Response(
                {'error': 'Cannot modify session with existing bookings'},
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = SessionWriteSerializer(session, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        event = Event.objects.filter(
            id=serializer.validated_data.pop('event_id', session.event_id),
            experience__business=request.user.business
        ).first()
        if not event:
            return Response(
                {'error': 'Event not found'},
                status=status.HTTP_404_NOT_FOUND
            )

        session = serializer.save(event=event)
        return Response(SessionSerializer(session).data)

    def destroy(self, request, *args, **kwargs):
        session = self.get_object()

        if session.has_bookings():
            return Response(
                {'error': 'Cannot delete session with existing bookings. Cancel all bookings first.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        session.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AddOnListCreateView(generics.ListCreateAPIView):
    serializer_class = AddOnSerializer
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        return AddOn.objects.filter(
            business=self.request.user.business
        ).annotate(
            booking_item_count=Count('booking_items', distinct=True),
            event_count=Count('event_links', distinct=True)
        ).order_by('sort_order', 'name')

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)


class AddOnDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = AddOnSerializer
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return AddOn.objects.filter(
            business=self.request.user.business
        ).annotate(
            booking_item_count=Count('booking_items', distinct=True),
            event_count=Count('event_links', distinct=True)
        )

    def destroy(self, request, *args, **kwargs):
        add_on = self.get_object()

        if add_on.booking_item_count > 0:
            return Response(
                {'error': 'Cannot delete add-on that has been used in bookings'},
                status=status.HTTP_400_BAD_REQUEST
            )

        add_on.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def event_add_ons(request, event_id):
    """List or attach the add-ons sold with an event."""
    event = get_object_or_404(
        Event,
        id=event_id,
        experience__business=request.user.business
    )

    if request.method == 'GET':
        links = event.add_on_links.select_related('add_on').order_by('add_on__sort_order', 'add_on__name')
        return Response(EventAddOnSerializer(links, many=True).data)

    serializer = EventAddOnCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    add_on = AddOn.objects.filter(id=serializer.validated_data['add_on_id'], business=request.user.business).first()
    if not add_on:
        return Response(
            {'error': 'Add-on not found'},
            status=status.HTTP_404_NOT_FOUND
        )

    if EventAddOn.objects.filter(event=event, add_on=add_on).exists():
        return Response(
            {'error': 'Add-on is already associated with this event'},
            status=status.HTTP_400_BAD_REQUEST
        )

    link = EventAddOn.objects.create(event=event, add_on=add_on)
    return Response(EventAddOnSerializer(link).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsBusinessMember])
def remove_event_add_on(request, event_id, add_on_id):
    """Detach an add-on from an event unless guests already bought it there."""
    from apps.bookings.models import BookingItem

    event = get_object_or_404(
        Event,
        id=event_id,
        experience__business=request.user.business
    )

    link = EventAddOn.objects.filter(event=event, add_on_id=add_on_id).first()
    if not link:
        return Response(
            {'error': 'Add-on is not associated with this event'},
            status=status.HTTP_404_NOT_FOUND
        )

    if BookingItem.objects.filter(add_on_id=add_on_id, booking__session__event=event).exists():
        return Response(
            {'error': 'Cannot remove add-on that has been booked for this event'},
            status=status.HTTP_400_BAD_REQUEST
        )

    link.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
