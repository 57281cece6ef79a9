"""
Parsing and verification for the inbound-parse email webhook.

Guest replies arrive as form posts from the email provider. When a webhook
secret is configured every post must carry a base64 HMAC-SHA256 of
``timestamp + raw body`` in the provider's signature headers.
"""
import base64
import hashlib
import hmac
import re
import logging

from django.utils import timezone

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'HTTP_X_TWILIO_EMAIL_EVENT_WEBHOOK_SIGNATURE'
TIMESTAMP_HEADER = 'HTTP_X_TWILIO_EMAIL_EVENT_WEBHOOK_TIMESTAMP'

DEFAULT_SUBJECT = '(No Subject)'

_QUOTED_PATTERNS = [
    re.compile(r'^On .* wrote:$', re.MULTILINE),
    re.compile(r'^From:.*$', re.MULTILINE),
    re.compile(r'^To:.*$', re.MULTILINE),
    re.compile(r'^Date:.*$', re.MULTILINE),
    re.compile(r'^Subject:.*$', re.MULTILINE),
    re.compile(r'^-----Original Message-----', re.MULTILINE),
    re.compile(r'^________________________________', re.MULTILINE),
    re.compile(r'^>.*$', re.MULTILINE),
]

_SEPARATORS = [
    '-----Original Message-----',
    '________________________________',
    'From:',
    'On ',
]

_FROM_RE = re.compile(r'^(.*?)\s*<(.+)>$')


class InboundSignatureError(Exception):
    """Raised when a webhook post fails signature verification."""
    pass


def compute_signature(secret, timestamp, body):
    digest = hmac.new(
        secret.encode('utf-8'),
        timestamp.encode('utf-8') + body,
        hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode('utf-8')


def verify_signature(secret, signature, timestamp, body, max_age_seconds):
    if not signature or not timestamp:
        raise InboundSignatureError('Missing signature')

    expected = compute_signature(secret, timestamp, body)
    if not hmac.compare_digest(expected, signature):
        raise InboundSignatureError('Invalid signature')

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise InboundSignatureError('Invalid signature')

    age = timezone.now().timestamp() - sent_at
    if abs(age) > max_age_seconds:
        raise InboundSignatureError('Webhook timestamp expired')


def parse_from_header(value):
    """Split ``Name <email>`` into (name, email). A bare address has no name."""
    value = (value or '').strip()
    match = _FROM_RE.match(value)
    if match:
        return match.group(1).strip().strip('"') or None, match.group(2).strip()
    return None, value


def clean_reply_content(content):
    """Strip quoted history and header blocks so only the new reply remains."""
    cleaned = (content or '').strip()

    for pattern in _QUOTED_PATTERNS:
        cleaned = pattern.sub('', cleaned)

    for separator in _SEPARATORS:
        index = cleaned.find(separator)
        if index > 0:
            cleaned = cleaned[:index]
            break

    return cleaned.strip()


def parse_inbound_email(post):
    from_name, from_email = parse_from_header(post.get('from', ''))
    return {
        'to': post.get('to', ''),
        'from_name': from_name,
        'from_email': from_email,
        'subject': post.get('subject') or DEFAULT_SUBJECT,
        'text': clean_reply_content(post.get('text', '')),
    }
