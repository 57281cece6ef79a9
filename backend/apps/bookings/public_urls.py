from django.urls import path
from . import public_views

app_name = 'book'

urlpatterns = [
    path('create-guest/', public_views.public_create_guest, name='create-guest'),
    path('process-payment/', public_views.process_payment, name='process-payment'),
    path('<slug:business_slug>/', public_views.public_business_page, name='business'),
    path('<slug:business_slug>/payment/', public_views.public_payment_summary, name='payment'),
    path('<slug:business_slug>/confirmation/<uuid:booking_id>/', public_views.public_confirmation, name='confirmation'),
    path('<slug:business_slug>/<slug:experience_slug>/', public_views.public_experience_page, name='experience'),
    path('<slug:business_slug>/<slug:experience_slug>/<slug:event_slug>/', public_views.public_event_page, name='event'),
    path(
        '<slug:business_slug>/<slug:experience_slug>/<slug:event_slug>/<uuid:session_id>/',
        public_views.public_session_page,
        name='session'
    ),
    path(
        '<slug:business_slug>/<slug:experience_slug>/<slug:event_slug>/<uuid:session_id>/checkout/',
        public_views.public_checkout,
        name='checkout'
    ),
]
