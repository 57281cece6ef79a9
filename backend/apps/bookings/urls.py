from django.urls import path
from . import views

app_name = 'bookings'

urlpatterns = [
    path('', views.booking_list_create, name='booking-list'),
    path('stats/', views.booking_stats, name='booking-stats'),
    path('analytics/', views.booking_analytics, name='booking-analytics'),
    path('check-in/', views.check_in, name='check-in'),
    path('<uuid:pk>/', views.BookingDetailView.as_view(), name='booking-detail'),
    path('<uuid:booking_id>/audit/', views.booking_audit_logs, name='booking-audit-logs'),
]
