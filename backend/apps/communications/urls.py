from django.urls import path
from . import views

app_name = 'communications'

urlpatterns = [
    path('bookings/<uuid:booking_id>/communications/', views.booking_communications, name='booking-communications'),
    path('bookings/<uuid:booking_id>/send-email/', views.send_booking_email, name='send-email'),
    path('communications/inbound/', views.inbound_email_webhook, name='inbound-email'),
]
