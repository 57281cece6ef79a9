import json
from unittest import mock
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings.exceptions import BookingNotFound, CapacityError, InvalidAddOnError
from apps.bookings.models import Booking, BookingAuditLog
from apps.bookings.services import check_in_booking, create_booking, update_booking
from apps.bookings import tasks
from apps.bookings.tasks import complete_past_bookings
from apps.bookings.utils import build_check_in_payload, encode_check_in_payload
from apps.experiences.models import AddOn, Experience, Event, Session
from apps.guests.models import Guest


pytestmark = pytest.mark.django_db


@pytest.fixture
def second_guest(business):
    return Guest.objects.create(business=business, first_name='Hal', last_name='Host', email='hal@example.com')


@pytest.fixture
def foreign_session(other_business):
    experience = Experience.objects.create(business=other_business, name='Other', duration=30, max_capacity=4)
    now = timezone.now()
    event = Event.objects.create(experience=experience, name='Other', start_date=now, end_date=now + timedelta(days=5))
    start = now + timedelta(days=1)
    return Session.objects.create(event=event, start_time=start, end_time=start + timedelta(minutes=30))


class TestCreateBookingService:
    def test_prices_tickets_and_add_ons(self, session, guest, add_on):
        booking = create_booking(session, guest, 2, add_on_ids=[str(add_on.id)])

        assert booking.status == 'confirmed'
        assert booking.total == Decimal('70.00')
        items = {item.item_type: item for item in booking.items.all()}
        assert items['session'].unit_price == Decimal('25.00')
        assert items['session'].total_price == Decimal('50.00')
        assert items['add_on'].add_on == add_on
        assert items['add_on'].total_price == Decimal('20.00')

        session.refresh_from_db()
        assert session.current_count == 2

    def test_event_price_override(self, event, session, guest):
        event.base_price = Decimal('40.00')
        event.save()
        booking = create_booking(session, guest, 3)
        assert booking.total == Decimal('120.00')

    def test_duplicate_add_on_ids_count_once(self, session, guest, add_on):
        booking = create_booking(session, guest, 1, add_on_ids=[add_on.id, str(add_on.id)])
        assert booking.items.count() == 2
        assert booking.total == Decimal('35.00')

    def test_rejects_over_capacity(self, session, guest, second_guest):
        create_booking(session, guest, 8)
        with pytest.raises(CapacityError) as exc_info:
            create_booking(session, second_guest, 3)
        assert exc_info.value.details == 'Only 2 spots available'
        assert session.bookings.count() == 1

    def test_cancelled_bookings_free_capacity(self, business, session, guest, second_guest):
        booking = create_booking(session, guest, 10)
        update_booking(booking.id, business, status='cancelled')
        assert create_booking(session, second_guest, 10).quantity == 10

    def test_rejects_add_on_not_sold_with_event(self, business, session, guest):
        loose = AddOn.objects.create(business=business, name='Loose', price=Decimal('5.00'))
        with pytest.raises(InvalidAddOnError):
            create_booking(session, guest, 1, add_on_ids=[loose.id])

    def test_rejects_inactive_add_on(self, session, guest, add_on):
        add_on.is_active = False
        add_on.save()
        with pytest.raises(InvalidAddOnError):
            create_booking(session, guest, 1, add_on_ids=[add_on.id])

    def test_rejects_malformed_add_on_id(self, session, guest):
        with pytest.raises(InvalidAddOnError):
            create_booking(session, guest, 1, add_on_ids=['not-a-uuid'])

    def test_writes_audit_log(self, session, guest):
        booking = create_booking(session, guest, 2, actor_type='guest', actor_email='gina@example.com')
        log = BookingAuditLog.objects.get(booking=booking)
        assert log.action == 'booking_created'
        assert log.actor_type == 'guest'
        assert log.new_values['quantity'] == 2

    def test_queues_confirmation_email_on_commit(self, session, guest, django_capture_on_commit_callbacks):
        with mock.patch('apps.communications.tasks.send_booking_confirmation_email.delay') as delay:
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                booking = create_booking(session, guest, 1)
        assert len(callbacks) == 1
        delay.assert_called_once_with(str(booking.id))


class TestUpdateBookingService:
    def test_quantity_change_reprices(self, business, session, guest, add_on):
        booking = create_booking(session, guest, 2, add_on_ids=[add_on.id])
        booking = update_booking(booking.id, business, quantity=3)

        assert booking.total == Decimal('105.00')
        assert {item.quantity for item in booking.items.all()} == {3}
        session.refresh_from_db()
        assert session.current_count == 3

    def test_growth_checks_other_bookings(self, business, session, guest, second_guest):
        booking = create_booking(session, guest, 2)
        create_booking(session, second_guest, 7)

        with pytest.raises(CapacityError) as exc_info:
            update_booking(booking.id, business, quantity=4)
        assert exc_info.value.details == 'Only 3 additional spots available'

        assert update_booking(booking.id, business, quantity=3).quantity == 3

    def test_shrinking_never_checks_capacity(self, business, session, guest):
        booking = create_booking(session, guest, 5)
        Session.objects.filter(id=session.id).update(max_capacity=1)
        assert update_booking(booking.id, business, quantity=2).quantity == 2

    def test_cancel_and_reactivate(self, business, session, guest):
        booking = create_booking(session, guest, 4)

        update_booking(booking.id, business, status='cancelled')
        session.refresh_from_db()
        assert session.current_count == 0

        booking = update_booking(booking.id, business, status='confirmed')
        session.refresh_from_db()
        assert booking.status == 'confirmed'
        assert session.current_count == 4

        actions = list(booking.audit_logs.order_by('created_at').values_list('action', flat=True))
        assert actions == ['booking_created', 'booking_cancelled', 'booking_reactivated']

    def test_reactivate_rejected_when_full(self, business, session, guest, second_guest):
        booking = create_booking(session, guest, 2)
        update_booking(booking.id, business, status='cancelled')
        create_booking(session, second_guest, 9)

        with pytest.raises(CapacityError):
            update_booking(booking.id, business, status='confirmed')

    def test_other_business_booking_not_found(self, other_business, session, guest):
        booking = create_booking(session, guest, 1)
        with pytest.raises(BookingNotFound):
            update_booking(booking.id, other_business, status='cancelled')


class TestBookingEndpoints:
    def test_create_from_dashboard(self, api_client, owner, session, guest, add_on):
        response = api_client.post(
            '/api/v1/bookings/',
            {
                'session_id': str(session.id),
                'guest_id': str(guest.id),
                'quantity': 2,
                'add_on_ids': [str(add_on.id)],
            },
            format='json'
        )
        assert response.status_code == 201
        assert response.data['source'] == 'dashboard'
        assert response.data['total'] == Decimal('70.00')
        assert len(response.data['items']) == 2

        log = BookingAuditLog.objects.get(booking_id=response.data['id'])
        assert log.actor_email == owner.email

    def test_create_with_foreign_session(self, api_client, foreign_session, guest):
        response = api_client.post(
            '/api/v1/bookings/',
            {'session_id': str(foreign_session.id), 'guest_id': str(guest.id), 'quantity': 1},
            format='json'
        )
        assert response.status_code == 404
        assert response.data['error'] == 'Session not found'

    def test_create_with_foreign_guest(self, api_client, other_business, session):
        stranger = Guest.objects.create(
            business=other_business, first_name='Eve', last_name='Spy', email='eve@example.com'
        )
        response = api_client.post(
            '/api/v1/bookings/',
            {'session_id': str(session.id), 'guest_id': str(stranger.id), 'quantity': 1},
            format='json'
        )
        assert response.status_code == 404
        assert response.data['error'] == 'Guest not found'

    def test_create_over_capacity(self, api_client, session, guest):
        response = api_client.post(
            '/api/v1/bookings/',
            {'session_id': str(session.id), 'guest_id': str(guest.id), 'quantity': 11},
            format='json'
        )
        assert response.status_code == 400
        assert response.data == {'error': 'Insufficient capacity', 'details': 'Only 10 spots available'}

    def test_create_rejects_zero_quantity(self, api_client, session, guest):
        response = api_client.post(
            '/api/v1/bookings/',
            {'session_id': str(session.id), 'guest_id': str(guest.id), 'quantity': 0},
            format='json'
        )
        assert response.status_code == 400
        assert 'quantity' in response.data

    def test_list_shape_and_filters(self, api_client, business, make_booking):
        first = make_booking(quantity=1)
        second = make_booking(quantity=2)
        update_booking(first.id, business, status='cancelled')

        response = api_client.get('/api/v1/bookings/')
        assert response.status_code == 200
        assert response.data['total'] == 2
        assert response.data['limit'] == 50
        assert response.data['offset'] == 0

        cancelled = api_client.get('/api/v1/bookings/', {'status': 'CANCELLED'})
        assert [row['id'] for row in cancelled.data['bookings']] == [str(first.id)]

        paged = api_client.get('/api/v1/bookings/', {'limit': 1, 'offset': 1})
        assert paged.data['total'] == 2
        assert len(paged.data['bookings']) == 1
        assert paged.data['bookings'][0]['id'] in {str(first.id), str(second.id)}

    def test_list_hides_other_business(self, other_client, make_booking):
        make_booking()
        response = other_client.get('/api/v1/bookings/')
        assert response.data['total'] == 0

    def test_list_filters_by_experience_and_event(self, api_client, experience, event, make_booking):
        booking = make_booking()

        by_experience = api_client.get('/api/v1/bookings/', {'experience_id': str(experience.id)})
        assert [row['id'] for row in by_experience.data['bookings']] == [str(booking.id)]

        by_event = api_client.get('/api/v1/bookings/', {'event_id': str(event.id)})
        assert [row['id'] for row in by_event.data['bookings']] == [str(booking.id)]

    @pytest.mark.parametrize('param', ['experience_id', 'event_id'])
    def test_list_rejects_malformed_filter_ids(self, api_client, make_booking, param):
        make_booking()
        response = api_client.get('/api/v1/bookings/', {param: 'not-a-uuid'})
        assert response.status_code == 400
        assert response.data['error'] == f'Invalid {param}'

    def test_patch_quantity(self, api_client, make_booking):
        booking = make_booking(quantity=2)
        response = api_client.patch(f'/api/v1/bookings/{booking.id}/', {'quantity': 4}, format='json')
        assert response.status_code == 200
        assert response.data['quantity'] == 4
        assert response.data['total'] == Decimal('100.00')

    def test_patch_over_capacity(self, api_client, make_booking, second_guest):
        booking = make_booking(quantity=2)
        make_booking(quantity=7, guest=second_guest)
        response = api_client.patch(f'/api/v1/bookings/{booking.id}/', {'quantity': 4}, format='json')
        assert response.status_code == 400
        assert response.data['details'] == 'Only 3 additional spots available'

    def test_patch_requires_a_change(self, api_client, make_booking):
        booking = make_booking()
        response = api_client.patch(f'/api/v1/bookings/{booking.id}/', {}, format='json')
        assert response.status_code == 400
        assert response.data['non_field_errors'] == ['Provide a status or quantity to update']

    def test_patch_other_business(self, other_client, make_booking):
        booking = make_booking()
        response = other_client.patch(f'/api/v1/bookings/{booking.id}/', {'status': 'cancelled'}, format='json')
        assert response.status_code == 404

    def test_put_and_delete_not_allowed(self, api_client, make_booking):
        booking = make_booking()
        assert api_client.put(f'/api/v1/bookings/{booking.id}/', {}, format='json').status_code == 405
        assert api_client.delete(f'/api/v1/bookings/{booking.id}/').status_code == 405

    def test_audit_logs(self, api_client, business, make_booking):
        booking = make_booking()
        update_booking(booking.id, business, status='cancelled', actor_email='owner@escape.test')

        response = api_client.get(f'/api/v1/bookings/{booking.id}/audit/')
        assert response.status_code == 200
        assert response.data['booking_id'] == str(booking.id)
        assert response.data['total_logs'] == 2
        actions = {log['action'] for log in response.data['audit_logs']}
        assert actions == {'booking_created', 'booking_cancelled'}


class TestDashboardStats:
    def test_stats(self, api_client, business, session, past_session, guest, make_booking):
        make_booking(quantity=2)
        cancelled = make_booking(quantity=1)
        update_booking(cancelled.id, business, status='cancelled')

        response = api_client.get('/api/v1/bookings/stats/')
        assert response.status_code == 200
        data = response.data
        assert data['total_experiences'] == 1
        assert data['active_experiences'] == 1
        assert data['total_events'] == 1
        assert data['total_sessions'] == 2
        assert data['upcoming_sessions'] == 1
        assert data['total_bookings'] == 2
        assert data['total_guests'] == 1
        assert data['confirmed_revenue'] == Decimal('50.00')
        assert len(data['recent_bookings']) == 2

    def test_analytics(self, api_client, business, make_booking):
        make_booking(quantity=2)
        cancelled = make_booking(quantity=3)
        update_booking(cancelled.id, business, status='cancelled')

        response = api_client.get('/api/v1/bookings/analytics/', {'days': 7})
        assert response.status_code == 200
        data = response.data
        assert data['period_days'] == 7
        assert data['total_bookings'] == 2
        assert data['confirmed_bookings'] == 1
        assert data['cancelled_bookings'] == 1
        assert data['total_tickets'] == 2
        assert data['revenue'] == Decimal('50.00')
        assert data['bookings_by_experience'][0]['experience_name'] == 'Haunted Mansion'
        assert data['bookings_by_experience'][0]['tickets'] == 2

    @pytest.mark.parametrize('days', ['0', '-3', 'week'])
    def test_analytics_rejects_bad_days(self, api_client, days):
        response = api_client.get('/api/v1/bookings/analytics/', {'days': days})
        assert response.status_code == 400
        assert response.data['error'] == 'days must be a positive integer'


class TestCheckIn:
    def test_payload(self, business, make_booking):
        booking = make_booking()
        assert build_check_in_payload(booking) == {
            'bookingId': str(booking.id),
            'business': business.slug,
            'type': 'booking',
        }
        assert ' ' not in encode_check_in_payload(booking)

    def test_lookup(self, api_client, make_booking):
        booking = make_booking()
        response = api_client.get('/api/v1/bookings/check-in/', {'data': encode_check_in_payload(booking)})
        assert response.status_code == 200
        assert response.data['booking']['id'] == str(booking.id)
        assert response.data['guest']['email'] == 'gina@example.com'
        assert response.data['experience']['name'] == 'Haunted Mansion'
        assert len(response.data['items']) == 1

    @pytest.mark.parametrize('raw, message', [
        ('', 'Missing QR code data'),
        ('{not json', 'Invalid QR code data format'),
        ('[1, 2]', 'Invalid QR code data format'),
        ('{"type": "ticket", "bookingId": "x", "business": "y"}', 'Invalid QR code data'),
        ('{"type": "booking", "business": "y"}', 'Invalid QR code data'),
        ('{"type": "booking", "bookingId": "nope", "business": "y"}', 'Invalid QR code data'),
    ])
    def test_lookup_rejects_bad_payloads(self, api_client, raw, message):
        response = api_client.get('/api/v1/bookings/check-in/', {'data': raw})
        assert response.status_code == 400
        assert response.data['error'] == message

    def test_lookup_rejects_deeply_nested_payload(self, api_client):
        response = api_client.get('/api/v1/bookings/check-in/', {'data': '[' * 100000})
        assert response.status_code == 400
        assert response.data['error'] == 'Invalid QR code data format'

    def test_lookup_unknown_booking(self, api_client, business):
        payload = json.dumps({
            'bookingId': '00000000-0000-0000-0000-000000000000',
            'business': business.slug,
            'type': 'booking',
        })
        response = api_client.get('/api/v1/bookings/check-in/', {'data': payload})
        assert response.status_code == 404

    def test_lookup_business_mismatch(self, api_client, make_booking):
        booking = make_booking()
        payload = json.dumps({'bookingId': str(booking.id), 'business': 'someone-else', 'type': 'booking'})
        response = api_client.get('/api/v1/bookings/check-in/', {'data': payload})
        assert response.status_code == 403
        assert response.data['error'] == 'Invalid business for this booking'

    def test_lookup_from_other_business(self, other_client, make_booking):
        booking = make_booking()
        response = other_client.get('/api/v1/bookings/check-in/', {'data': encode_check_in_payload(booking)})
        assert response.status_code == 403
        assert response.data['error'] == 'Booking does not belong to your business'

    def test_check_in(self, employee_client, make_booking):
        booking = make_booking()
        response = employee_client.post('/api/v1/bookings/check-in/', {'booking_id': str(booking.id)}, format='json')
        assert response.status_code == 200
        assert response.data['message'] == 'Gina Guest has been checked in'
        assert response.data['booking']['checked_in'] is True

        booking.refresh_from_db()
        assert booking.check_in_time is not None
        log = booking.audit_logs.get(action='checked_in')
        assert log.actor_email == 'staff@escape.test'

    def test_check_in_cancelled(self, api_client, business, make_booking):
        booking = make_booking()
        update_booking(booking.id, business, status='cancelled')
        response = api_client.post('/api/v1/bookings/check-in/', {'booking_id': str(booking.id)}, format='json')
        assert response.status_code == 400
        assert response.data['error'] == 'Cannot check in a cancelled booking'

    def test_check_in_service_sets_time(self, make_booking):
        booking = check_in_booking(make_booking(), actor_email='door@escape.test')
        assert booking.checked_in is True
        assert booking.check_in_time <= timezone.now()


class TestCompletePastBookings:
    def test_completes_only_finished_confirmed_bookings(self, business, session, past_session, guest, make_booking):
        finished = make_booking(session=past_session)
        upcoming = make_booking()
        cancelled = make_booking(session=past_session, quantity=1)
        update_booking(cancelled.id, business, status='cancelled')

        assert complete_past_bookings() == 'Completed 1 past bookings'

        statuses = dict(Booking.objects.values_list('id', 'status'))
        assert statuses[finished.id] == 'completed'
        assert statuses[upcoming.id] == 'confirmed'
        assert statuses[cancelled.id] == 'cancelled'
        assert finished.audit_logs.filter(action='booking_completed', actor_type='system').exists()

    def test_grace_period(self, event, guest, make_booking):
        start = timezone.now() - timedelta(hours=1)
        just_ended = Session.objects.create(event=event, start_time=start, end_time=start + timedelta(minutes=50))
        booking = make_booking(session=just_ended)

        assert complete_past_bookings() == 'Completed 0 past bookings'
        booking.refresh_from_db()
        assert booking.status == 'confirmed'

    def test_skips_booking_cancelled_after_scan(self, business, past_session, make_booking):
        booking = make_booking(session=past_session)
        scan = tasks._past_booking_ids

        def scan_then_cancel(cutoff):
            ids = scan(cutoff)
            update_booking(booking.id, business, status='cancelled')
            return ids

        with mock.patch.object(tasks, '_past_booking_ids', side_effect=scan_then_cancel):
            assert complete_past_bookings() == 'Completed 0 past bookings'

        booking.refresh_from_db()
        past_session.refresh_from_db()
        assert booking.status == 'cancelled'
        assert past_session.current_count == 0
        assert not booking.audit_logs.filter(action='booking_completed').exists()
