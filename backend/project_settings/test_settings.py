import os

os.environ.setdefault("DJANGO_DEBUG", "True")
os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret-key-not-for-production")

from .settings import *  # noqa: E402,F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CLERK_JWKS_URL = "https://clerk.example.test/.well-known/jwks.json"
CLERK_JWT_ISSUER = ""
CLERK_AUTHORIZED_PARTIES = []

STRIPE_SECRET_KEY = "sk_test_portal"
STRIPE_WEBHOOK_SECRET = "whsec_test_portal"
STRIPE_RETRY_BASE_DELAY_SECONDS = 0.0

PORTAL_SITE_URL = "https://portal.example.test"
PORTAL_DEPOSIT_FRACTION = "0.5"
PORTAL_DEPOSIT_OPTIONAL_SERVICES = []

RESEND_API_KEY = ""
RESEND_FROM_EMAIL = ""
NOTIFICATION_EMAIL = ""

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_RATES": {
        scope: "10000/min"
        for scope in REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]  # noqa: F405
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "CRITICAL"},
    "loggers": {"portal": {"handlers": ["null"], "level": "DEBUG", "propagate": False}},
}
