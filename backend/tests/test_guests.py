from unittest import mock

import pytest
from django.db import IntegrityError, transaction

from apps.guests import services
from apps.guests.models import Guest
from apps.guests.services import upsert_guest


pytestmark = pytest.mark.django_db


@pytest.fixture
def guests(business):
    return [
        Guest.objects.create(business=business, first_name='Ada', last_name='Lovelace', email='ada@example.com'),
        Guest.objects.create(business=business, first_name='Alan', last_name='Turing', email='alan@example.com'),
        Guest.objects.create(business=business, first_name='Grace', last_name='Hopper', email='grace@navy.test'),
    ]


class TestGuestList:
    def test_list_is_sorted_by_name(self, api_client, guests):
        response = api_client.get('/api/v1/guests/')
        assert response.status_code == 200
        assert [row['last_name'] for row in response.data] == ['Hopper', 'Lovelace', 'Turing']

    def test_search_matches_name_and_email(self, api_client, guests):
        by_name = api_client.get('/api/v1/guests/', {'search': 'tur'})
        assert [row['email'] for row in by_name.data] == ['alan@example.com']

        by_email = api_client.get('/api/v1/guests/', {'search': 'navy'})
        assert [row['first_name'] for row in by_email.data] == ['Grace']

    def test_limit(self, api_client, guests):
        response = api_client.get('/api/v1/guests/', {'limit': 2})
        assert len(response.data) == 2

        clamped = api_client.get('/api/v1/guests/', {'limit': 0})
        assert len(clamped.data) == 1

    def test_other_business_guests_hidden(self, api_client, other_business, guests):
        Guest.objects.create(business=other_business, first_name='Eve', last_name='Spy', email='eve@example.com')
        response = api_client.get('/api/v1/guests/', {'search': 'eve'})
        assert response.data == []

    def test_booking_count(self, api_client, guest, make_booking):
        make_booking()
        make_booking(quantity=1)
        response = api_client.get('/api/v1/guests/')
        assert response.data[0]['booking_count'] == 2


class TestGuestCreate:
    def test_create(self, api_client, business):
        response = api_client.post(
            '/api/v1/guests/',
            {'first_name': 'Ada', 'last_name': 'Lovelace', 'email': 'ada@example.com', 'marketing_opt_in': True},
            format='json'
        )
        assert response.status_code == 201
        assert response.data['full_name'] == 'Ada Lovelace'
        assert response.data['booking_count'] == 0
        assert Guest.objects.get(id=response.data['id']).business == business

    def test_duplicate_email_is_case_insensitive(self, api_client, guest):
        response = api_client.post(
            '/api/v1/guests/',
            {'first_name': 'Gina', 'last_name': 'Again', 'email': 'GINA@example.com'},
            format='json'
        )
        assert response.status_code == 400
        assert response.data['email'] == ['A guest with this email already exists']

    def test_same_email_allowed_in_other_business(self, other_client, guest):
        response = other_client.post(
            '/api/v1/guests/',
            {'first_name': 'Gina', 'last_name': 'Guest', 'email': 'gina@example.com'},
            format='json'
        )
        assert response.status_code == 201


class TestGuestDetail:
    def test_update(self, api_client, guest):
        response = api_client.patch(f'/api/v1/guests/{guest.id}/', {'phone': '555-0100'}, format='json')
        assert response.status_code == 200
        guest.refresh_from_db()
        assert guest.phone == '555-0100'

    def test_other_business_cannot_read(self, other_client, guest):
        assert other_client.get(f'/api/v1/guests/{guest.id}/').status_code == 404

    def test_delete(self, api_client, guest):
        response = api_client.delete(f'/api/v1/guests/{guest.id}/')
        assert response.status_code == 204
        assert not Guest.objects.filter(id=guest.id).exists()

    def test_delete_blocked_with_bookings(self, api_client, guest, make_booking):
        make_booking()
        response = api_client.delete(f'/api/v1/guests/{guest.id}/')
        assert response.status_code == 400
        assert response.data['error'] == 'Cannot delete guest with existing bookings'

    def test_guest_bookings(self, api_client, guest, make_booking):
        first = make_booking(quantity=1)
        second = make_booking(quantity=3)
        response = api_client.get(f'/api/v1/guests/{guest.id}/bookings/')
        assert response.status_code == 200
        assert {row['id'] for row in response.data} == {str(first.id), str(second.id)}


class TestGuestExport:
    def test_export_csv(self, api_client, guests):
        response = api_client.get('/api/v1/guests/export/')
        assert response.status_code == 200
        assert response['Content-Type'] == 'text/csv'
        assert 'guests.csv' in response['Content-Disposition']

        lines = response.content.decode().strip().splitlines()
        assert lines[0].startswith('First Name,Last Name,Email')
        assert lines[1].startswith('Grace,Hopper,grace@navy.test')
        assert len(lines) == 4


class TestUpsertGuest:
    def test_creates_then_updates(self, business):
        created = upsert_guest(business, {
            'first_name': 'Ada', 'last_name': 'Lovelace', 'email': 'ada@example.com'
        })
        updated = upsert_guest(business, {
            'first_name': 'Augusta', 'last_name': 'King', 'email': 'ADA@example.com',
            'phone': '555-0199', 'marketing_opt_in': True
        })

        assert updated.id == created.id
        assert Guest.objects.filter(business=business).count() == 1
        updated.refresh_from_db()
        assert updated.first_name == 'Augusta'
        assert updated.phone == '555-0199'
        assert updated.marketing_opt_in is True

    def test_concurrent_create_reuses_existing_guest(self, business, guest):
        # Simulates another checkout inserting the guest between lookup and create.
        with mock.patch.object(services, '_find_guest', side_effect=[None, guest]):
            result = upsert_guest(business, {
                'first_name': 'Gina', 'last_name': 'Late', 'email': 'GINA@example.com'
            })

        assert result.id == guest.id
        assert Guest.objects.filter(business=business).count() == 1
        guest.refresh_from_db()
        assert guest.last_name == 'Late'

    def test_database_rejects_case_variant_duplicates(self, business, guest):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Guest.objects.create(business=business, first_name='G', last_name='G', email='Gina@Example.com')
