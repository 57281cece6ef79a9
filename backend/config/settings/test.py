"""
Test settings for ticketing project.
"""
from .base import *

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'ticketing-tests',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

INBOUND_EMAIL_DOMAIN = 'reply.test'
INBOUND_EMAIL_WEBHOOK_SECRET = ''

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []

LOGGING['root']['handlers'] = ['console']
for _logger in LOGGING['loggers'].values():
    _logger['handlers'] = ['console']
LOGGING['handlers'].pop('file')
