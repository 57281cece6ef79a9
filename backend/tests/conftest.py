from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from apps.bookings.services import create_booking
from apps.experiences.models import AddOn, Event, EventAddOn, Experience, Session
from apps.guests.models import Guest
from apps.users.models import Business, User


def client_for(user):
    client = APIClient()
    token, _ = Token.objects.get_or_create(user=user)
    client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
    return client


@pytest.fixture(autouse=True)
def clear_cache():
    # View-level throttles and the public page cache both live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def business(db):
    return Business.objects.create(name='Escape Rooms Co', email='hello@escape.test')


@pytest.fixture
def other_business(db):
    return Business.objects.create(name='Rival Rooms', email='hello@rival.test')


@pytest.fixture
def owner(business):
    return User.objects.create_user(
        email='owner@escape.test',
        password='correct-horse-battery',
        first_name='Olive',
        last_name='Owner',
        business=business,
        role='owner'
    )


@pytest.fixture
def employee(business):
    return User.objects.create_user(
        email='staff@escape.test',
        password='correct-horse-battery',
        first_name='Sam',
        last_name='Staff',
        business=business,
        role='employee'
    )


@pytest.fixture
def api_client(owner):
    return client_for(owner)


@pytest.fixture
def employee_client(employee):
    return client_for(employee)


@pytest.fixture
def other_client(other_business):
    user = User.objects.create_user(
        email='owner@rival.test',
        password='correct-horse-battery',
        business=other_business,
        role='owner'
    )
    return client_for(user)


@pytest.fixture
def anon_client():
    return APIClient()


@pytest.fixture
def experience(business):
    return Experience.objects.create(
        business=business,
        name='Haunted Mansion',
        base_price=Decimal('25.00'),
        duration=60,
        max_capacity=10
    )


@pytest.fixture
def event(experience):
    now = timezone.now()
    return Event.objects.create(
        experience=experience,
        name='Halloween Run',
        start_date=now,
        end_date=now + timedelta(days=30)
    )


@pytest.fixture
def session(event):
    start = timezone.now() + timedelta(days=2)
    return Session.objects.create(event=event, start_time=start, end_time=start + timedelta(hours=1))


@pytest.fixture
def past_session(event):
    start = timezone.now() - timedelta(days=1)
    return Session.objects.create(event=event, start_time=start, end_time=start + timedelta(hours=1))


@pytest.fixture
def add_on(business, event):
    add_on = AddOn.objects.create(business=business, name='Photo Package', price=Decimal('10.00'))
    EventAddOn.objects.create(event=event, add_on=add_on)
    return add_on


@pytest.fixture
def guest(business):
    return Guest.objects.create(
        business=business,
        first_name='Gina',
        last_name='Guest',
        email='gina@example.com'
    )


@pytest.fixture
def make_booking(session, guest):
    def _make(quantity=2, add_on_ids=None, **overrides):
        return create_booking(
            session=overrides.get('session', session),
            guest=overrides.get('guest', guest),
            quantity=quantity,
            add_on_ids=add_on_ids,
            source=overrides.get('source', 'dashboard')
        )
    return _make
