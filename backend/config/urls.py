"""
URL configuration for the ticketing project.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/v1/users/', include('apps.users.urls')),
    path('api/v1/catalog/', include('apps.experiences.urls')),
    path('api/v1/guests/', include('apps.guests.urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/', include('apps.communications.urls')),

    # Public booking funnel
    path('api/v1/book/', include('apps.bookings.public_urls')),
]

# Serve static files in development
if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
