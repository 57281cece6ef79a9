import logging

from django.db import IntegrityError, transaction

from .models import Guest

logger = logging.getLogger(__name__)


def _find_guest(business, email):
    return Guest.objects.filter(business=business, email__iexact=email).first()


def upsert_guest(business, data):
    """
    Create the business's guest for ``data['email']`` or refresh an existing one.

    Guests are keyed by (business, lower(email)); contact details from the
    latest checkout win. Two checkouts racing on a new address both end up
    on the same guest.
    """
    email = data['email'].strip()

    fields = {
        'first_name': data['first_name'],
        'last_name': data['last_name'],
        'phone': data.get('phone') or '',
        'zip_code': data.get('zip_code') or '',
        'marketing_opt_in': data.get('marketing_opt_in', False),
    }

    guest = _find_guest(business, email)
    if guest is None:
        try:
            with transaction.atomic():
                guest = Guest.objects.create(business=business, email=email, **fields)
            logger.info(f"Guest {guest.id} created for business {business.id}")
            return guest
        except IntegrityError:
            guest = _find_guest(business, email)
            if guest is None:
                raise
            logger.info(f"Guest {guest.id} created concurrently; updating instead")

    for name, value in fields.items():
        setattr(guest, name, value)
    guest.save(update_fields=list(fields) + ['updated_at'])
    return guest
