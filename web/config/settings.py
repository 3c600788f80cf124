"""Django settings for the storefront orders service.

Every value is read from the environment. Secrets the service cannot run
without (JWT signing key, Stripe keys, public site URL) are checked while this
module loads so a misconfigured process refuses to start instead of serving
broken requests.
"""

import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def _required(name: str) -> str:
    """Return a required environment variable or fail fast.

    Raises:
        ImproperlyConfigured: When the variable is unset or empty.
    """
    value = os.getenv(name)
    if not value:
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return value


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-key")
DEBUG = _flag("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.catalog",
    "apps.orders",
    "apps.payments",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "django.middleware.common.CommonMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {"context_processors": []},
    }
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"
APPEND_SLASH = True

# ---- Database ----
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("DB_HOST", "orders-db"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "NAME": os.getenv("DB_NAME", "storefront"),
        "USER": os.getenv("DB_USER", "storefront_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", "storefront-pass"),
        "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
    }
}
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")

# ---- Auth / secrets ----
JWT_SECRET = _required("JWT_SECRET")
JWT_ALGORITHM = "HS256"
ADMIN_PERMISSION = os.getenv("ADMIN_PERMISSION", "system:settings")
# roles allowed to read any order's invoice, alongside ADMIN_PERMISSION
ADMIN_ROLES = ("ADMIN", "SUPER_ADMIN")

INVOICE_COMPANY_NAME = os.getenv("INVOICE_COMPANY_NAME", "ShopEase")
INVOICE_SUPPORT_EMAIL = os.getenv("INVOICE_SUPPORT_EMAIL", "support@shopease.com")

STRIPE_SECRET_KEY = _required("STRIPE_SECRET_KEY")
STRIPE_PUBLISHABLE_KEY = _required("STRIPE_PUBLISHABLE_KEY")
STRIPE_WEBHOOK_SECRET = _required("STRIPE_WEBHOOK_SECRET")
STRIPE_MAX_NETWORK_RETRIES = int(os.getenv("STRIPE_MAX_NETWORK_RETRIES", "2"))
PUBLIC_SITE_URL = _required("PUBLIC_SITE_URL")

# "stripe" talks to the provider, "stub" issues fake intents locally.
PAYMENTS_BACKEND = os.getenv("PAYMENTS_BACKEND", "stripe")
PAYMENTS_CURRENCY = "usd"

# ---- Order workflow flags ----
ORDERS_ALLOW_UNKNOWN_PRODUCTS = _flag("ORDERS_ALLOW_UNKNOWN_PRODUCTS", True)
ORDERS_ATOMIC_CHECKOUT = _flag("ORDERS_ATOMIC_CHECKOUT", True)
ORDERS_LEGACY_STREET_FIELD = _flag("ORDERS_LEGACY_STREET_FIELD", False)
ORDERS_RESTOCK_ON_PAYMENT_FAILURE = _flag("ORDERS_RESTOCK_ON_PAYMENT_FAILURE", False)

# ---- Resilience around the payment provider ----
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30"))

# ---- DRF ----
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "gateway.authentication.BearerTokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_THROTTLE_RATES": {
        "orders_list": os.getenv("THROTTLE_ORDERS_LIST", "120/min"),
        "orders_create": os.getenv("THROTTLE_ORDERS_CREATE", "30/min"),
        "orders_detail": os.getenv("THROTTLE_ORDERS_DETAIL", "120/min"),
        "payments": os.getenv("THROTTLE_PAYMENTS", "30/min"),
    },
}

# ---- Logging (JSON, correlated by request id) ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "orders": {"level": LOG_LEVEL, "propagate": True},
        "catalog": {"level": LOG_LEVEL, "propagate": True},
        "payments": {"level": LOG_LEVEL, "propagate": True},
        "django.request": {"level": "WARNING", "propagate": True},
    },
}
