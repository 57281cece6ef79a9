"""Building the emails sent to guests and business owners."""
from email.mime.image import MIMEImage
from email.utils import make_msgid, parseaddr
from io import BytesIO
import logging

import qrcode
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone
from django.utils.html import escape

from apps.bookings.utils import encode_check_in_payload
from apps.experiences.utils import get_business_timezone

logger = logging.getLogger(__name__)

QR_CODE_CONTENT_ID = 'qrcode'


def build_reply_to_address(booking):
    """Address guest replies are routed through: ``slug+booking_id@domain``."""
    business = booking.session.event.experience.business
    return f"{business.slug}+{booking.id}@{settings.INBOUND_EMAIL_DOMAIN}"


def parse_reply_to_address(address):
    """
    Split a reply-to address into (business_slug, booking_id).

    Returns None unless the local part holds exactly two non-empty parts
    joined by ``+``.
    """
    _, email_address = parseaddr(address or '')
    local_part = (email_address or address or '').split('@')[0]
    parts = local_part.split('+')

    if len(parts) != 2 or not all(parts):
        logger.warning(f"Invalid reply-to address: {address!r}")
        return None

    return parts[0], parts[1]


def new_message_id():
    return make_msgid(domain=settings.INBOUND_EMAIL_DOMAIN)


def render_qr_code_png(data):
    image = qrcode.make(data)
    buffer = BytesIO()
    image.save(buffer)
    return buffer.getvalue()


def _session_when(booking):
    business = booking.session.event.experience.business
    start = timezone.localtime(booking.session.start_time, get_business_timezone(business))
    return start.strftime('%A, %B %d, %Y at %I:%M %p')


def confirmation_subject(booking):
    event = booking.session.event
    return f"Booking Confirmation - {event.name} at {event.experience.business.name}"


def confirmation_text(booking):
    session = booking.session
    event = session.event
    experience = event.experience
    business = experience.business
    guest = booking.guest

    lines = [
        f"Hi {guest.first_name},",
        "",
        f"Your booking with {business.name} is confirmed!",
        "",
        f"Booking reference: #{booking.reference}",
        f"Experience: {experience.name}",
        f"Event: {event.name}",
        f"When: {_session_when(booking)}",
        f"Duration: {experience.duration} minutes",
        f"Tickets: {booking.quantity}",
        "",
    ]

    for item in booking.items.select_related('add_on'):
        label = item.add_on.name if item.add_on_id else 'Tickets'
        lines.append(f"  {label} x{item.quantity}: ${item.total_price}")

    lines += [
        f"Total: ${booking.total}",
        "",
        "Show the QR code in this email at check-in.",
        "Questions? Just reply to this email.",
        "",
        "See you soon,",
        business.name,
    ]
    return "\n".join(lines)


def build_confirmation_email(booking):
    """Confirmation email with the check-in QR code embedded inline."""
    text_body = confirmation_text(booking)
    html_body = (
        "<html><body>"
        f"<pre style=\"font-family: inherit\">{escape(text_body)}</pre>"
        f"<p><img src=\"cid:{QR_CODE_CONTENT_ID}\" alt=\"Check-in QR code\" width=\"200\" height=\"200\"></p>"
        "</body></html>"
    )

    message = EmailMultiAlternatives(
        subject=confirmation_subject(booking),
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[booking.guest.email],
        reply_to=[build_reply_to_address(booking)],
        headers={'Message-ID': new_message_id()}
    )
    message.attach_alternative(html_body, 'text/html')
    message.mixed_subtype = 'related'

    qr_image = MIMEImage(render_qr_code_png(encode_check_in_payload(booking)), _subtype='png')
    qr_image.add_header('Content-ID', f"<{QR_CODE_CONTENT_ID}>")
    qr_image.add_header('Content-Disposition', 'inline', filename='check-in.png')
    message.attach(qr_image)

    return message


def guest_message_text(booking, message):
    business = booking.session.event.experience.business
    return (
        f"{message}\n\n"
        "---\n"
        f"This email was sent regarding your booking #{booking.reference}.\n"
        f"Reply to this email to reach {business.name}."
    )


def build_guest_message(communication):
    booking = communication.booking
    return EmailMultiAlternatives(
        subject=communication.subject,
        body=guest_message_text(booking, communication.content),
        from_email=communication.from_address or settings.DEFAULT_FROM_EMAIL,
        to=[communication.to_address],
        reply_to=[build_reply_to_address(booking)],
        headers={'Message-ID': new_message_id()}
    )
