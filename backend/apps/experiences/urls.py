from django.urls import path
from . import views

app_name = 'experiences'

urlpatterns = [
    # Experiences
    path('experiences/', views.ExperienceListCreateView.as_view(), name='experience-list'),
    path('experiences/<uuid:pk>/', views.ExperienceDetailView.as_view(), name='experience-detail'),

    # Events
    path('events/', views.EventListCreateView.as_view(), name='event-list'),
    path('events/<uuid:pk>/', views.EventDetailView.as_view(), name='event-detail'),
    path('events/<uuid:event_id>/addons/', views.event_add_ons, name='event-add-ons'),
    path('events/<uuid:event_id>/addons/<uuid:add_on_id>/', views.remove_event_add_on, name='event-add-on-remove'),

    # Sessions
    path('sessions/', views.SessionListCreateView.as_view(), name='session-list'),
    path('sessions/<uuid:pk>/', views.SessionDetailView.as_view(), name='session-detail'),

    # Add-ons
    path('addons/', views.AddOnListCreateView.as_view(), name='add-on-list'),
    path('addons/<uuid:pk>/', views.AddOnDetailView.as_view(), name='add-on-detail'),
]
