import pytest
from rest_framework.authtoken.models import Token

from apps.users.models import AnalyticsTracking, Business, User
from tests.conftest import client_for


pytestmark = pytest.mark.django_db


class TestBusiness:
    def test_slug_generated_from_name(self):
        business = Business.objects.create(name='Escape Rooms Co')
        assert business.slug == 'escape-rooms-co'

    def test_slug_collision_gets_counter(self):
        Business.objects.create(name='Escape Rooms Co')
        second = Business.objects.create(name='Escape Rooms Co')
        third = Business.objects.create(name='Escape Rooms Co')
        assert second.slug == 'escape-rooms-co-1'
        assert third.slug == 'escape-rooms-co-2'


class TestAuthentication:
    def test_login_returns_token(self, anon_client, owner):
        response = anon_client.post(
            '/api/v1/users/login/',
            {'email': 'owner@escape.test', 'password': 'correct-horse-battery'},
            format='json'
        )
        assert response.status_code == 200
        assert response.data['token'] == Token.objects.get(user=owner).key
        assert response.data['user']['business']['slug'] == owner.business.slug

    def test_login_rejects_bad_password(self, anon_client, owner):
        response = anon_client.post(
            '/api/v1/users/login/',
            {'email': 'owner@escape.test', 'password': 'wrong'},
            format='json'
        )
        assert response.status_code == 400
        assert 'Invalid credentials' in response.data['non_field_errors']

    def test_logout_deletes_token(self, api_client, owner):
        response = api_client.post('/api/v1/users/logout/')
        assert response.status_code == 200
        assert not Token.objects.filter(user=owner).exists()

    def test_me(self, api_client):
        response = api_client.get('/api/v1/users/me/')
        assert response.status_code == 200
        assert response.data['email'] == 'owner@escape.test'
        assert response.data['role'] == 'owner'

    def test_unauthenticated_request_is_rejected(self, anon_client):
        response = anon_client.get('/api/v1/catalog/experiences/')
        assert response.status_code == 401

    def test_user_without_business_is_forbidden(self, db):
        user = User.objects.create_user(email='drifter@example.com', password='pw-123456789')
        response = client_for(user).get('/api/v1/catalog/experiences/')
        assert response.status_code == 403


class TestBusinessSettings:
    def test_owner_can_update_business(self, api_client, business):
        response = api_client.patch(
            '/api/v1/users/business/',
            {'name': 'Escape Rooms Ltd', 'timezone_name': 'America/New_York'},
            format='json'
        )
        assert response.status_code == 200
        business.refresh_from_db()
        assert business.name == 'Escape Rooms Ltd'
        assert business.timezone_name == 'America/New_York'

    def test_employee_can_read_but_not_update(self, employee_client):
        assert employee_client.get('/api/v1/users/business/').status_code == 200
        response = employee_client.patch('/api/v1/users/business/', {'name': 'Hijacked'}, format='json')
        assert response.status_code == 403

    def test_rejects_unknown_timezone(self, api_client):
        response = api_client.patch('/api/v1/users/business/', {'timezone_name': 'Mars/Olympus'}, format='json')
        assert response.status_code == 400
        assert 'timezone_name' in response.data


class TestAnalyticsTracking:
    def test_create_and_list(self, api_client, business):
        response = api_client.post(
            '/api/v1/users/analytics-tracking/',
            {'platform': 'GOOGLE_ANALYTICS', 'tracking_id': 'G-12345'},
            format='json'
        )
        assert response.status_code == 201
        assert response.data['is_enabled'] is True

        listing = api_client.get('/api/v1/users/analytics-tracking/')
        assert [row['tracking_id'] for row in listing.data] == ['G-12345']

    def test_duplicate_platform_rejected(self, api_client, business):
        AnalyticsTracking.objects.create(business=business, platform='META_PIXEL', tracking_id='123')
        response = api_client.post(
            '/api/v1/users/analytics-tracking/',
            {'platform': 'META_PIXEL', 'tracking_id': '456'},
            format='json'
        )
        assert response.status_code == 400
        assert response.data['platform'] == ['A tracking code for this platform already exists']

    def test_other_business_entries_are_hidden(self, api_client, other_business):
        entry = AnalyticsTracking.objects.create(business=other_business, platform='TIKTOK_PIXEL', tracking_id='T1')
        response = api_client.get(f'/api/v1/users/analytics-tracking/{entry.id}/')
        assert response.status_code == 404

    def test_public_endpoint_returns_enabled_production_codes(self, anon_client, business):
        AnalyticsTracking.objects.create(business=business, platform='GOOGLE_ANALYTICS', tracking_id='G-1')
        AnalyticsTracking.objects.create(
            business=business, platform='META_PIXEL', tracking_id='M-1', environment='production'
        )
        AnalyticsTracking.objects.create(
            business=business, platform='GOOGLE_ADS', tracking_id='AW-1', environment='staging'
        )
        AnalyticsTracking.objects.create(
            business=business, platform='SNAPCHAT_PIXEL', tracking_id='S-1', is_enabled=False
        )

        response = anon_client.get(f'/api/v1/users/public/{business.slug}/analytics/')
        assert response.status_code == 200
        assert sorted(row['tracking_id'] for row in response.data) == ['G-1', 'M-1']

    def test_public_endpoint_unknown_business(self, anon_client):
        response = anon_client.get('/api/v1/users/public/nobody/analytics/')
        assert response.status_code == 404
        assert response.data['error'] == 'Business not found'
