from rest_framework import status, generics, permissions
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.authtoken.models import Token
from rest_framework.throttling import AnonRateThrottle
from django.contrib.auth import login
from django.db.models import Q
from apps.experiences.utils import invalidate_public_business_cache
from .models import Business, AnalyticsTracking
from .permissions import IsBusinessMember, IsBusinessOwner
from .serializers import (
    UserSerializer, LoginSerializer, BusinessSerializer,
    AnalyticsTrackingSerializer, PublicAnalyticsTrackingSerializer
)
import logging

logger = logging.getLogger(__name__)


class LoginThrottle(AnonRateThrottle):
    scope = 'login'


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
@throttle_classes([LoginThrottle])
def login_view(request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.validated_data['user']

    token, created = Token.objects.get_or_create(user=user)
    login(request, user)

    logger.info(f"User {user.email} logged in")

    return Response({
        'user': UserSerializer(user).data,
        'token': token.key
    })


@api_view(['POST'])
def logout_view(request):
    Token.objects.filter(user=request.user).delete()
    if hasattr(request, 'session') and request.session.session_key:
        request.session.flush()

    return Response({'message': 'Successfully logged out'})


class CurrentUserView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user


class BusinessView(generics.RetrieveUpdateAPIView):
    serializer_class = BusinessSerializer
    permission_classes = [IsBusinessOwner]

    def get_object(self):
        return self.request.user.business

    def perform_update(self, serializer):
        business = serializer.save()
        invalidate_public_business_cache(business)


class AnalyticsTrackingListCreateView(generics.ListCreateAPIView):
    serializer_class = AnalyticsTrackingSerializer
    permission_classes = [IsBusinessMember]
    pagination_class = None

    def get_queryset(self):
        return AnalyticsTracking.objects.filter(business=self.request.user.business)

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)


class AnalyticsTrackingDetailView(generics.RetrieveUpdateDestroyAPIView):
    serializer_class = AnalyticsTrackingSerializer
    permission_classes = [IsBusinessMember]

    def get_queryset(self):
        return AnalyticsTracking.objects.filter(business=self.request.user.business)


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def public_analytics_tracking(request, business_slug):
    """Tracking codes the public booking pages should load for a business."""
    try:
        business = Business.objects.get(slug=business_slug)
    except Business.DoesNotExist:
        return Response(
            {'error': 'Business not found'},
            status=status.HTTP_404_NOT_FOUND
        )

    tracking = business.analytics_tracking.filter(
        Q(environment='production') | Q(environment__isnull=True),
        is_enabled=True
    )

    return Response(PublicAnalyticsTrackingSerializer(tracking, many=True).data)
