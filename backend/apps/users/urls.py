from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('me/', views.CurrentUserView.as_view(), name='me'),

    # Business settings
    path('business/', views.BusinessView.as_view(), name='business'),

    # Analytics tracking
    path('analytics-tracking/', views.AnalyticsTrackingListCreateView.as_view(), name='analytics-tracking-list'),
    path('analytics-tracking/<uuid:pk>/', views.AnalyticsTrackingDetailView.as_view(), name='analytics-tracking-detail'),
    path('public/<slug:business_slug>/analytics/', views.public_analytics_tracking, name='public-analytics-tracking'),
]
