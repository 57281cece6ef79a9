from django.urls import path
from . import views

app_name = 'guests'

urlpatterns = [
    path('', views.GuestListCreateView.as_view(), name='guest-list'),
    path('export/', views.export_guests, name='export-guests'),
    path('<uuid:pk>/', views.GuestDetailView.as_view(), name='guest-detail'),
    path('<uuid:guest_id>/bookings/', views.guest_bookings, name='guest-bookings'),
]
