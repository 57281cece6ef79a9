"""
Booking writes that touch session capacity.

Every path that changes how many tickets a session holds runs inside a
transaction with the session row locked, so concurrent checkouts for the
last seats cannot both succeed.
"""
import logging
from functools import partial

from django.db import transaction
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.experiences.models import Session
from .exceptions import BookingError, BookingNotFound, CapacityError
from .models import Booking, BookingItem
from .utils import build_line_items, cart_total, create_booking_audit_log, resolve_add_ons

logger = logging.getLogger(__name__)


def _lock_session(session_id):
    return Session.objects.select_for_update().get(id=session_id)


def _adjust_current_count(session_id, delta):
    if delta:
        Session.objects.filter(id=session_id).update(
            current_count=Greatest(F('current_count') + delta, 0)
        )


def _queue_confirmation_email(booking_id):
    from apps.communications.tasks import send_booking_confirmation_email
    send_booking_confirmation_email.delay(str(booking_id))


def create_booking(session, guest, quantity, add_on_ids=None, source='dashboard',
                   actor_type='staff', actor_email=''):
    """
    Create a confirmed booking for ``quantity`` tickets.

    Prices come from the catalog, never from the caller. Raises CapacityError
    when the session cannot hold the tickets and InvalidAddOnError for add-ons
    that are inactive or not sold with the event.
    """
    with transaction.atomic():
        session = _lock_session(session.id)
        event = session.event
        add_ons = resolve_add_ons(event, add_on_ids)

        remaining = session.remaining_capacity()
        if quantity > remaining:
            logger.warning(
                f"Rejected booking of {quantity} for session {session.id}: "
                f"only {remaining} spots available"
            )
            raise CapacityError(details=f"Only {remaining} spots available")

        lines = build_line_items(event, quantity, add_ons)
        booking = Booking.objects.create(
            session=session,
            guest=guest,
            quantity=quantity,
            total=cart_total(lines),
            status='confirmed',
            source=source
        )
        BookingItem.objects.bulk_create([
            BookingItem(
                booking=booking,
                item_type=line['item_type'],
                add_on=line['add_on'],
                quantity=line['quantity'],
                unit_price=line['unit_price'],
                total_price=line['total_price']
            )
            for line in lines
        ])
        _adjust_current_count(session.id, quantity)

        create_booking_audit_log(
            booking=booking,
            action='booking_created',
            description=f"Booking created for {guest.full_name} ({quantity} tickets)",
            actor_type=actor_type,
            actor_email=actor_email,
            metadata={'source': source},
            new_values={
                'status': booking.status,
                'quantity': quantity,
                'total': str(booking.total),
                'add_on_ids': [str(add_on.id) for add_on in add_ons],
            }
        )

        transaction.on_commit(partial(_queue_confirmation_email, booking.id))

    logger.info(f"Booking {booking.id} created for session {session.id} ({source}, {quantity} tickets)")
    return booking


def _audit_action(old_status, new_status):
    if old_status != new_status:
        if new_status == 'cancelled':
            return 'booking_cancelled'
        if old_status == 'cancelled':
            return 'booking_reactivated'
        if new_status == 'completed':
            return 'booking_completed'
    return 'booking_updated'


def update_booking(booking_id, business, status=None, quantity=None, actor_email=''):
    """
    Change a booking's status and/or quantity.

    Growing an active booking, or bringing a cancelled one back, re-checks
    capacity against every other active booking on the session. Line items
    are re-priced at the unit prices stored when the booking was made.
    """
    with transaction.atomic():
        booking = Booking.objects.filter(
            id=booking_id,
            session__event__experience__business=business
        ).first()
        if booking is None:
            raise BookingNotFound()

        session = _lock_session(booking.session_id)
        booking = Booking.objects.select_for_update().get(id=booking.id)

        old_values = {
            'status': booking.status,
            'quantity': booking.quantity,
            'total': str(booking.total),
        }
        new_status = status or booking.status
        new_quantity = quantity or booking.quantity

        was_active = booking.status != 'cancelled'
        will_be_active = new_status != 'cancelled'

        if will_be_active and (not was_active or new_quantity > booking.quantity):
            held_by_others = session.booked_quantity(exclude_booking=booking)
            available = max(0, session.effective_max_capacity - held_by_others)
            if new_quantity > available:
                logger.warning(
                    f"Rejected update of booking {booking.id} to {new_quantity} tickets: "
                    f"only {available} available"
                )
                raise CapacityError(details=f"Only {available} additional spots available")

        if new_quantity != booking.quantity:
            items = list(booking.items.all())
            for item in items:
                item.quantity = new_quantity
                item.total_price = item.unit_price * new_quantity
            BookingItem.objects.bulk_update(items, ['quantity', 'total_price'])
            booking.total = sum(item.total_price for item in items)

        held_before = booking.quantity if was_active else 0
        held_after = new_quantity if will_be_active else 0

        booking.status = new_status
        booking.quantity = new_quantity
        booking.save(update_fields=['status', 'quantity', 'total', 'updated_at'])
        _adjust_current_count(session.id, held_after - held_before)

        new_values = {
            'status': booking.status,
            'quantity': booking.quantity,
            'total': str(booking.total),
        }
        action = _audit_action(old_values['status'], new_status)
        create_booking_audit_log(
            booking=booking,
            action=action,
            description=f"Booking updated by staff ({action.replace('_', ' ')})",
            actor_type='staff',
            actor_email=actor_email,
            old_values=old_values,
            new_values=new_values
        )

    logger.info(f"Booking {booking.id} updated: {old_values} -> {new_values}")
    return booking


def check_in_booking(booking, actor_email=''):
    """Mark a guest as arrived. Cancelled bookings cannot be checked in."""
    if booking.status == 'cancelled':
        raise BookingError('Cannot check in a cancelled booking')

    booking.checked_in = True
    booking.check_in_time = timezone.now()
    booking.save(update_fields=['checked_in', 'check_in_time', 'updated_at'])

    create_booking_audit_log(
        booking=booking,
        action='checked_in',
        description=f"{booking.guest.full_name} checked in",
        actor_type='staff',
        actor_email=actor_email,
        new_values={'checked_in': True, 'check_in_time': booking.check_in_time.isoformat()}
    )

    logger.info(f"Booking {booking.id} checked in")
    return booking


def complete_booking(booking):
    """Close out a confirmed booking whose session is over."""
    booking.status = 'completed'
    booking.save(update_fields=['status', 'updated_at'])
    create_booking_audit_log(
        booking=booking,
        action='booking_completed',
        description="Session ended; booking marked completed",
        actor_type='system',
        old_values={'status': 'confirmed'},
        new_values={'status': 'completed'}
    )
    return booking
