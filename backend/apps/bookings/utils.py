import json
import uuid
import logging
from decimal import Decimal

from .exceptions import InvalidAddOnError
from .models import BookingAuditLog

logger = logging.getLogger(__name__)

CHECK_IN_PAYLOAD_TYPE = 'booking'


def create_booking_audit_log(booking, action, description, actor_type='system',
                             actor_email='', metadata=None, old_values=None, new_values=None):
    return BookingAuditLog.objects.create(
        booking=booking,
        action=action,
        description=description,
        actor_type=actor_type,
        actor_email=actor_email or '',
        metadata=metadata or {},
        old_values=old_values or {},
        new_values=new_values or {}
    )


def parse_limit(value, default, maximum):
    """Clamp a ``limit`` query parameter to 1..maximum."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, maximum))


def parse_offset(value):
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def parse_uuid(value):
    """Return ``value`` as a UUID, or None when it is not one."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def resolve_add_ons(event, add_on_ids):
    """
    Load the add-ons a guest picked for ``event``.

    Every id must name an active add-on linked to the event; anything else
    raises InvalidAddOnError. Duplicate ids count once.
    """
    from apps.experiences.models import AddOn

    wanted = []
    for value in add_on_ids or []:
        try:
            add_on_id = uuid.UUID(str(value))
        except ValueError:
            raise InvalidAddOnError(details=f"Unknown add-on {value}")
        if add_on_id not in wanted:
            wanted.append(add_on_id)

    if not wanted:
        return []

    add_ons = list(
        AddOn.objects.filter(
            id__in=wanted,
            is_active=True,
            event_links__event=event
        ).order_by('sort_order', 'name')
    )
    if len(add_ons) != len(wanted):
        found = {add_on.id for add_on in add_ons}
        missing = ', '.join(str(add_on_id) for add_on_id in wanted if add_on_id not in found)
        raise InvalidAddOnError(details=f"Unknown add-on {missing}")

    return add_ons


def build_line_items(event, quantity, add_ons):
    """Price a cart: one ticket line plus one line per add-on, all per ticket."""
    ticket_price = event.effective_price
    lines = [{
        'item_type': 'session',
        'add_on': None,
        'name': event.name,
        'quantity': quantity,
        'unit_price': ticket_price,
        'total_price': ticket_price * quantity,
    }]

    for add_on in add_ons:
        lines.append({
            'item_type': 'add_on',
            'add_on': add_on,
            'name': add_on.name,
            'quantity': quantity,
            'unit_price': add_on.price,
            'total_price': add_on.price * quantity,
        })

    return lines


def cart_total(lines):
    return sum((line['total_price'] for line in lines), Decimal('0.00'))


def serialize_line_items(lines):
    return [
        {
            'item_type': line['item_type'],
            'add_on_id': str(line['add_on'].id) if line['add_on'] else None,
            'name': line['name'],
            'quantity': line['quantity'],
            'unit_price': line['unit_price'],
            'total_price': line['total_price'],
        }
        for line in lines
    ]


def build_check_in_payload(booking):
    """Data encoded in the QR code guests present at the door."""
    return {
        'bookingId': str(booking.id),
        'business': booking.session.event.experience.business.slug,
        'type': CHECK_IN_PAYLOAD_TYPE,
    }


def encode_check_in_payload(booking):
    return json.dumps(build_check_in_payload(booking), separators=(',', ':'))
