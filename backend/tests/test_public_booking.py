import json
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone

from apps.bookings.models import Booking
from apps.experiences.models import Event, Experience, Session
from apps.experiences.utils import public_business_cache_key
from apps.guests.models import Guest


pytestmark = pytest.mark.django_db


def session_url(business, experience, event, session):
    return f'/api/v1/book/{business.slug}/{experience.slug}/{event.slug}/{session.id}/'


def checkout_payload(session, **guest_overrides):
    guest = {
        'first_name': 'Pat',
        'last_name': 'Public',
        'email': 'pat@example.com',
        'phone': '555-0123',
        'terms_accepted': True,
    }
    guest.update(guest_overrides)
    return {
        'guest': guest,
        'booking': {'session_id': str(session.id), 'quantity': 2},
        'payment': {'card_number': '4242424242424242'},
    }


class TestBusinessPage:
    def test_lists_active_experiences(self, anon_client, business, experience):
        Experience.objects.create(business=business, name='Retired Room', duration=30, max_capacity=4, is_active=False)

        response = anon_client.get(f'/api/v1/book/{business.slug}/')
        assert response.status_code == 200
        assert response.data['name'] == 'Escape Rooms Co'
        assert [row['slug'] for row in response.data['experiences']] == ['haunted-mansion']

    def test_response_is_cached(self, anon_client, business, experience):
        anon_client.get(f'/api/v1/book/{business.slug}/')
        assert cache.get(public_business_cache_key(business.slug))['name'] == 'Escape Rooms Co'

        Experience.objects.filter(id=experience.id).update(name='Renamed Behind The Cache')
        response = anon_client.get(f'/api/v1/book/{business.slug}/')
        assert response.data['experiences'][0]['name'] == 'Haunted Mansion'

    def test_owner_edit_invalidates_cache(self, anon_client, api_client, business, experience):
        anon_client.get(f'/api/v1/book/{business.slug}/')
        api_client.patch(f'/api/v1/catalog/experiences/{experience.id}/', {'description': 'Spooky'}, format='json')

        response = anon_client.get(f'/api/v1/book/{business.slug}/')
        assert response.data['experiences'][0]['description'] == 'Spooky'

    def test_unknown_business(self, anon_client):
        response = anon_client.get('/api/v1/book/nobody-here/')
        assert response.status_code == 404
        assert response.data == {'error': 'Business not found'}

    def test_inactive_business(self, anon_client, business):
        business.is_active = False
        business.save()
        assert anon_client.get(f'/api/v1/book/{business.slug}/').status_code == 404


class TestExperienceAndEventPages:
    def test_experience_page_lists_events_with_upcoming_sessions(
        self, anon_client, business, experience, event, session, past_session
    ):
        stale = Event.objects.create(
            experience=experience, name='Last Year',
            start_date=timezone.now() - timedelta(days=400),
            end_date=timezone.now() - timedelta(days=360)
        )
        Session.objects.create(
            event=stale,
            start_time=timezone.now() - timedelta(days=365),
            end_time=timezone.now() - timedelta(days=365) + timedelta(hours=1)
        )

        response = anon_client.get(f'/api/v1/book/{business.slug}/{experience.slug}/')
        assert response.status_code == 200
        assert [row['slug'] for row in response.data['events']] == ['halloween-run']
        assert response.data['events'][0]['upcoming_session_count'] == 1
        assert response.data['events'][0]['next_session_start'] == session.start_time

    def test_experience_page_unknown(self, anon_client, business):
        response = anon_client.get(f'/api/v1/book/{business.slug}/no-such-room/')
        assert response.status_code == 404

    def test_event_page_shows_remaining_capacity(
        self, anon_client, business, experience, event, session, past_session, make_booking
    ):
        make_booking(quantity=10)

        response = anon_client.get(f'/api/v1/book/{business.slug}/{experience.slug}/{event.slug}/')
        assert response.status_code == 200
        assert len(response.data['sessions']) == 1
        assert response.data['sessions'][0]['remaining_capacity'] == 0
        assert response.data['sessions'][0]['is_sold_out'] is True
        assert response.data['event']['price'] == Decimal('25.00')

    def test_inactive_event_hidden(self, anon_client, business, experience, event):
        event.is_active = False
        event.save()
        response = anon_client.get(f'/api/v1/book/{business.slug}/{experience.slug}/{event.slug}/')
        assert response.status_code == 404


class TestSessionAndCheckout:
    def test_session_page(self, anon_client, business, experience, event, session, add_on, make_booking):
        make_booking(quantity=3)
        response = anon_client.get(session_url(business, experience, event, session))
        assert response.status_code == 200
        assert response.data['ticket_price'] == Decimal('25.00')
        assert response.data['max_tickets'] == 7
        assert [row['name'] for row in response.data['add_ons']] == ['Photo Package']

    def test_past_session_not_bookable(self, anon_client, business, experience, event, past_session):
        response = anon_client.get(session_url(business, experience, event, past_session))
        assert response.status_code == 404

    def test_checkout_prices_cart(self, anon_client, business, experience, event, session, add_on):
        url = session_url(business, experience, event, session) + 'checkout/'
        response = anon_client.get(url, {'tickets': 3, 'add_ons': f'{add_on.id}'})
        assert response.status_code == 200
        assert response.data['tickets'] == 3
        assert response.data['total'] == Decimal('105.00')
        assert [item['item_type'] for item in response.data['items']] == ['session', 'add_on']

    def test_checkout_defaults_to_one_ticket(self, anon_client, business, experience, event, session):
        url = session_url(business, experience, event, session) + 'checkout/'
        response = anon_client.get(url)
        assert response.data['tickets'] == 1
        assert response.data['total'] == Decimal('25.00')

    @pytest.mark.parametrize('tickets', ['0', 'two', '51'])
    def test_checkout_rejects_bad_ticket_count(self, anon_client, business, experience, event, session, tickets):
        url = session_url(business, experience, event, session) + 'checkout/'
        response = anon_client.get(url, {'tickets': tickets})
        assert response.status_code == 400
        assert response.data['error'] == 'Invalid ticket quantity'

    def test_checkout_rejects_over_capacity(self, anon_client, business, experience, event, session):
        url = session_url(business, experience, event, session) + 'checkout/'
        response = anon_client.get(url, {'tickets': 11})
        assert response.status_code == 400
        assert response.data['error'] == 'Insufficient capacity'

    def test_checkout_rejects_unknown_add_on(self, anon_client, business, experience, event, session):
        url = session_url(business, experience, event, session) + 'checkout/'
        response = anon_client.get(url, {'add_ons': 'garbage'})
        assert response.status_code == 400
        assert response.data['error'] == 'Invalid add-on'


class TestCreateGuest:
    def test_creates_then_refreshes(self, anon_client, business, session):
        payload = {
            'business_id': str(business.id),
            'session_id': str(session.id),
            'first_name': 'Pat',
            'last_name': 'Public',
            'email': 'pat@example.com',
        }
        first = anon_client.post('/api/v1/book/create-guest/', payload, format='json')
        assert first.status_code == 200
        assert first.data['email'] == 'pat@example.com'

        payload.update({'email': 'PAT@example.com', 'phone': '555-0999'})
        second = anon_client.post('/api/v1/book/create-guest/', payload, format='json')
        assert second.data['id'] == first.data['id']
        assert Guest.objects.get(id=first.data['id']).phone == '555-0999'

    def test_session_must_belong_to_business(self, anon_client, other_business, session):
        response = anon_client.post(
            '/api/v1/book/create-guest/',
            {
                'business_id': str(other_business.id),
                'session_id': str(session.id),
                'first_name': 'Pat',
                'last_name': 'Public',
                'email': 'pat@example.com',
            },
            format='json'
        )
        assert response.status_code == 404
        assert response.data['error'] == 'Session not found'


class TestProcessPayment:
    def test_creates_online_booking(self, anon_client, business, session):
        response = anon_client.post('/api/v1/book/process-payment/', checkout_payload(session), format='json')
        assert response.status_code == 200
        assert response.data['status'] == 'success'
        assert response.data['message'] == 'Payment processed successfully'
        assert response.data['total'] == Decimal('50.00')

        booking = Booking.objects.get(id=response.data['booking_id'])
        assert booking.source == 'online'
        assert booking.status == 'confirmed'
        assert booking.guest.business == business
        assert booking.audit_logs.get().actor_type == 'guest'

    def test_existing_guest_is_reused(self, anon_client, session, guest):
        payload = checkout_payload(session, email='Gina@Example.com', first_name='Gina', last_name='Guest')
        response = anon_client.post('/api/v1/book/process-payment/', payload, format='json')
        assert response.status_code == 200
        assert Booking.objects.get(id=response.data['booking_id']).guest_id == guest.id

    def test_terms_must_be_accepted(self, anon_client, session):
        payload = checkout_payload(session, terms_accepted=False)
        response = anon_client.post('/api/v1/book/process-payment/', payload, format='json')
        assert response.status_code == 400
        assert response.data['guest']['terms_accepted'] == ['You must accept the terms and conditions']
        assert not Booking.objects.exists()

    def test_over_capacity_creates_nothing(self, anon_client, session, make_booking):
        make_booking(quantity=9)
        response = anon_client.post('/api/v1/book/process-payment/', checkout_payload(session), format='json')
        assert response.status_code == 400
        assert response.data == {'error': 'Insufficient capacity', 'details': 'Only 1 spots available'}
        assert not Guest.objects.filter(email='pat@example.com').exists()

    def test_past_session_rejected(self, anon_client, past_session):
        response = anon_client.post('/api/v1/book/process-payment/', checkout_payload(past_session), format='json')
        assert response.status_code == 404


class TestPaymentSummaryAndConfirmation:
    def test_payment_summary(self, anon_client, business, session, guest, add_on):
        response = anon_client.get(
            f'/api/v1/book/{business.slug}/payment/',
            {
                'guest_id': str(guest.id),
                'session_id': str(session.id),
                'tickets': 2,
                'add_ons': str(add_on.id),
                'total': '70',
            }
        )
        assert response.status_code == 200
        assert response.data['total'] == Decimal('70.00')
        assert response.data['client_total'] == Decimal('70.00')
        assert response.data['total_matches'] is True

    def test_payment_summary_flags_tampered_total(self, anon_client, business, session, guest):
        response = anon_client.get(
            f'/api/v1/book/{business.slug}/payment/',
            {'guest_id': str(guest.id), 'session_id': str(session.id), 'tickets': 2, 'total': '1.00'}
        )
        assert response.data['total'] == Decimal('50.00')
        assert response.data['total_matches'] is False

    def test_payment_summary_unknown_guest(self, anon_client, business, session):
        response = anon_client.get(
            f'/api/v1/book/{business.slug}/payment/',
            {'guest_id': 'not-a-uuid', 'session_id': str(session.id)}
        )
        assert response.status_code == 404
        assert response.data['error'] == 'Guest not found'

    def test_confirmation(self, anon_client, business, make_booking):
        booking = make_booking()
        response = anon_client.get(f'/api/v1/book/{business.slug}/confirmation/{booking.id}/')
        assert response.status_code == 200
        assert response.data['booking']['reference'] == booking.reference
        assert json.loads(response.data['qr_code_data']) == {
            'bookingId': str(booking.id),
            'business': business.slug,
            'type': 'booking',
        }

    def test_confirmation_wrong_business(self, anon_client, other_business, make_booking):
        booking = make_booking()
        response = anon_client.get(f'/api/v1/book/{other_business.slug}/confirmation/{booking.id}/')
        assert response.status_code == 404
