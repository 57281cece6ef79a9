from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.conf import settings
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.db.models import Q, Count
from apps.users.permissions import IsBusinessMember
from apps.bookings.models import Booking
from apps.bookings.serializers import BookingSerializer
from apps.bookings.utils import parse_limit
from .models import Guest
from .serializers import GuestSerializer
import csv


class GuestListCreateView(generics.ListCreateAPIView):
    serializer_class = GuestSerializer
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        return Guest.objects.filter(
            business=self.request.user.business
        ).annotate(booking_count=Count('bookings'))

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(email__icontains=search)
            )

        limit = parse_limit(
            request.query_params.get('limit'),
            settings.GUEST_DEFAULT_PAGE_SIZE,
            settings.GUEST_MAX_PAGE_SIZE
        )
        queryset = queryset.order_by('last_name', 'first_name')[:limit]

        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)


class GuestDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = GuestSerializer
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return Guest.objects.filter(
            business=self.request.user.business
        ).annotate(booking_count=Count('bookings'))

    def destroy(self, request, *args, **kwargs):
        guest = self.get_object()

        if guest.booking_count > 0:
            return Response(
                {'error': 'Cannot delete guest with existing bookings'},
                status=status.HTTP_400_BAD_REQUEST
            )

        guest.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def guest_bookings(request, guest_id):
    """All of a guest's bookings with this business, newest first."""
    guest = get_object_or_404(Guest, id=guest_id, business=request.user.business)

    bookings = Booking.objects.filter(
        guest=guest,
        session__event__experience__business=request.user.business
    ).select_related(
        'guest', 'session__event__experience'
    ).prefetch_related('items__add_on').order_by('-created_at')

    return Response(BookingSerializer(bookings, many=True).data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def export_guests(request):
    """Export guests to CSV."""
    guests = Guest.objects.filter(
        business=request.user.business
    ).annotate(booking_count=Count('bookings')).order_by('last_name', 'first_name')

    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = 'attachment; filename="guests.csv"'

    writer = csv.writer(response)
    writer.writerow([
        'First Name', 'Last Name', 'Email', 'Phone', 'Zip Code',
        'Marketing Opt-in', 'Total Bookings', 'Created'
    ])

    for guest in guests:
        writer.writerow([
            guest.first_name,
            guest.last_name,
            guest.email,
            guest.phone,
            guest.zip_code,
            'yes' if guest.marketing_opt_in else 'no',
            guest.booking_count,
            guest.created_at.strftime('%Y-%m-%d')
        ])

    return response
