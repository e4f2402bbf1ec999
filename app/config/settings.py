"""
Django settings for the marketplace payments service.

One settings module for every environment, driven by environment
variables through django-environ. Tests extend it in config.settings_test.

Required:
    SECRET_KEY            Django secret; also salts Stripe idempotency keys
    DATABASE_URL          Postgres DSN (defaults to the compose service)

Payments:
    STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
    STRIPE_MONTHLY_PRICE_ID / STRIPE_QUARTERLY_PRICE_ID / STRIPE_YEARLY_PRICE_ID
    STRIPE_CURRENCY (usd), STRIPE_CONNECT_COUNTRY (US),
    STRIPE_API_TIMEOUT_SECONDS (10)
    PLATFORM_FEE_RATE (0.10), PLATFORM_BASE_URL
    SUBSCRIPTION_EXPIRY_GRACE_HOURS (24)

Infrastructure:
    REDIS_URL, CELERY_BROKER_URL, CELERY_RESULT_BACKEND
    LOG_LEVEL (INFO), LOG_TO_FILE (false), LOG_FILE_NAME

Environment files:
    ENV_FILE points at a dotenv file; .env.development next to app/ is
    read when present. In containers variables come from the environment.
"""

import os
from datetime import timedelta
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    CORS_ALLOWED_ORIGINS=(list, []),
    LOG_LEVEL=(str, "INFO"),
    LOG_TO_FILE=(bool, False),
)

env_file = os.environ.get("ENV_FILE", BASE_DIR.parent / ".env.development")
if Path(env_file).exists():
    environ.Env.read_env(env_file)

# =============================================================================
# Core
# =============================================================================
SECRET_KEY = env("SECRET_KEY")
DEBUG = env("DEBUG")
ALLOWED_HOSTS = env("ALLOWED_HOSTS")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # API, auth and scheduling
    "rest_framework",
    "rest_framework_simplejwt",
    "rest_framework_simplejwt.token_blacklist",
    "corsheaders",
    "django_celery_beat",
    "drf_spectacular",
    # Project apps
    "core",
    "authentication",
    "marketplace",
    "notifications",
    "payments",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    # Must run before CommonMiddleware
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

# Admin only; the API renders JSON
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# =============================================================================
# Persistence
# =============================================================================
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default="postgres://postgres:postgres@db:5432/marketplace_payments",
    ),
}
DATABASES["default"]["OPTIONS"] = {"connect_timeout": 10}

# Cache outages must not take payments down
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://redis:6379/0"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
            "IGNORE_EXCEPTIONS": True,
        },
    }
}
SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"

# =============================================================================
# Authentication
# =============================================================================
AUTH_USER_MODEL = "authentication.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
]

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": True,
    "SIGNING_KEY": SECRET_KEY,
    "AUTH_HEADER_TYPES": ("Bearer",),
}

# =============================================================================
# API
# =============================================================================
REST_FRAMEWORK = {
    # Every payments endpoint acts on the caller's own records
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "EXCEPTION_HANDLER": "core.exception_handler.application_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.UserRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "user": env("API_USER_THROTTLE_RATE", default="600/hour"),
    },
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Marketplace Payments API",
    "DESCRIPTION": (
        "Escrow holds and releases for jobs, Stripe Connect onboarding and "
        "payouts for freelancers, and subscription checkout."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SCHEMA_PATH_PREFIX": r"/api/v[0-9]+",
    "SECURITY": [{"Bearer": []}],
    "APPEND_COMPONENTS": {
        "securitySchemes": {
            "Bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        }
    },
    "COMPONENT_SPLIT_REQUEST": True,
}

CORS_ALLOWED_ORIGINS = env("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True

# =============================================================================
# Celery
# =============================================================================
# Periodic tasks are rows in django_celery_beat, created by
# payments migration 0002.
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://redis:6379/1")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://redis:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_TASK_TIME_LIMIT = 10 * 60
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

# =============================================================================
# Stripe
# =============================================================================
# Read by payments.adapters.StripeAdapter.from_settings(); the secret key
# travels with each request and stripe.api_key is never set.
STRIPE_SECRET_KEY = env("STRIPE_SECRET_KEY", default="")
STRIPE_WEBHOOK_SECRET = env("STRIPE_WEBHOOK_SECRET", default="")
STRIPE_API_TIMEOUT_SECONDS = env.int("STRIPE_API_TIMEOUT_SECONDS", default=10)
STRIPE_CURRENCY = env("STRIPE_CURRENCY", default="usd")

# Country for new freelancer Express accounts
STRIPE_CONNECT_COUNTRY = env("STRIPE_CONNECT_COUNTRY", default="US")

# One recurring price per billing plan; unknown prices are treated as monthly
STRIPE_MONTHLY_PRICE_ID = env("STRIPE_MONTHLY_PRICE_ID", default="")
STRIPE_QUARTERLY_PRICE_ID = env("STRIPE_QUARTERLY_PRICE_ID", default="")
STRIPE_YEARLY_PRICE_ID = env("STRIPE_YEARLY_PRICE_ID", default="")

# =============================================================================
# Platform
# =============================================================================
# Frontend origin for Connect onboarding refresh/return links
PLATFORM_BASE_URL = env("PLATFORM_BASE_URL", default="http://localhost:3000")

# Share of each released escrow kept by the platform, as a decimal string
PLATFORM_FEE_RATE = env.str("PLATFORM_FEE_RATE", default="0.10")

# Hours past end_date before the daily sweep expires an unrenewed subscription.
# Stripe pays renewal invoices after the period rolls over.
SUBSCRIPTION_EXPIRY_GRACE_HOURS = env.int("SUBSCRIPTION_EXPIRY_GRACE_HOURS", default=24)

# =============================================================================
# Static Files
# =============================================================================
STATIC_URL = env("STATIC_URL", default="/static/")
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

# =============================================================================
# Logging
# =============================================================================
# Services log with extra={...} context (payment_id, stripe_event_id, ...);
# the console format keeps the logger name so payments lines are greppable.
LOG_LEVEL = env("LOG_LEVEL")
LOG_HANDLERS = ["console"]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {"handlers": LOG_HANDLERS, "level": LOG_LEVEL},
    "loggers": {
        "django.request": {"handlers": LOG_HANDLERS, "level": "ERROR", "propagate": False},
        "celery": {"handlers": LOG_HANDLERS, "level": LOG_LEVEL, "propagate": False},
        "payments": {"handlers": LOG_HANDLERS, "level": LOG_LEVEL, "propagate": False},
        # The SDK logs every request at INFO
        "stripe": {"handlers": LOG_HANDLERS, "level": "WARNING", "propagate": False},
    },
}

if env("LOG_TO_FILE"):
    LOG_DIR = BASE_DIR / "logs"
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    LOGGING["handlers"]["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": LOG_DIR / env("LOG_FILE_NAME", default="payments.log"),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "formatter": "verbose",
        "encoding": "utf-8",
    }
    LOG_HANDLERS.append("file")

# =============================================================================
# Security (production)
# =============================================================================
if not DEBUG:
    SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=31536000)
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
