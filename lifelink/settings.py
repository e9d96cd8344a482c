"""
Django settings for the LifeLink project

Values come from environment variables; a local .env file is loaded first
when present.
"""
import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env', override=False)


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, '') else default


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-lifelink-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]


# ---------------------------
# Applications
# ---------------------------
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'rest_framework_simplejwt',

    'accounts',
    'donors.apps.DonorsConfig',
    'requisitions.apps.RequisitionsConfig',
    'api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'lifelink.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'lifelink.wsgi.application'

AUTH_USER_MODEL = 'accounts.CustomUser'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ---------------------------
# Database
# PostgreSQL when POSTGRES_DB is set, SQLite otherwise
# ---------------------------
if os.environ.get('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ['POSTGRES_DB'],
            'USER': os.environ.get('POSTGRES_USER', 'postgres'),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', ''),
            'HOST': os.environ.get('POSTGRES_HOST', 'localhost'),
            'PORT': os.environ.get('POSTGRES_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }


# ---------------------------
# Cache (Redis in production, local memory otherwise)
# ---------------------------
REDIS_URL = os.environ.get('REDIS_URL', '')

if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
            'KEY_PREFIX': 'lifelink',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'lifelink-default',
        }
    }


# ---------------------------
# Internationalisation / static
# ---------------------------
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ---------------------------
# Django REST Framework + JWT
# ---------------------------
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'EXCEPTION_HANDLER': 'api.exceptions.lifelink_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=env_int('JWT_ACCESS_MINUTES', 60)),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=env_int('JWT_REFRESH_DAYS', 7)),
}


# ---------------------------
# Email
# ---------------------------
EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'LifeLink <noreply@lifelink.local>')


# ---------------------------
# Celery
# ---------------------------
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL or 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', None)
CELERY_TASK_ALWAYS_EAGER = env_bool('CELERY_TASK_ALWAYS_EAGER', False)
CELERY_TASK_IGNORE_RESULT = True
CELERY_TIMEZONE = TIME_ZONE

LIFELINK_EXPIRY_SWEEP_SECONDS = env_int('LIFELINK_EXPIRY_SWEEP_SECONDS', 300)

CELERY_BEAT_SCHEDULE = {
    'expire-stale-requisitions': {
        'task': 'requisitions.tasks.expire_stale_requisitions_task',
        'schedule': LIFELINK_EXPIRY_SWEEP_SECONDS,
    },
}


# ---------------------------
# LifeLink engine
# ---------------------------
LIFELINK_DONATION_COOLDOWN_DAYS = env_int('LIFELINK_DONATION_COOLDOWN_DAYS', 90)
LIFELINK_REQUISITION_MAX_LIFETIME_HOURS = env_int('LIFELINK_REQUISITION_MAX_LIFETIME_HOURS', 72)
LIFELINK_BROADCAST_CAP = env_int('LIFELINK_BROADCAST_CAP', 200)
LIFELINK_SELECTED_CAP = env_int('LIFELINK_SELECTED_CAP', 50)
LIFELINK_SEARCH_LIMIT_CEILING = env_int('LIFELINK_SEARCH_LIMIT_CEILING', 200)

LIFELINK_NOTIFICATION_CHANNEL = os.environ.get('LIFELINK_NOTIFICATION_CHANNEL', 'lifelink.channels.EmailChannel')
LIFELINK_AUDIT_SINK = os.environ.get('LIFELINK_AUDIT_SINK', 'accounts.audit.DatabaseAuditSink')

# seconds
LIFELINK_CACHE_TTLS = {
    'dashboard': env_int('LIFELINK_DASHBOARD_TTL', 60),
    'blood_group_stats': env_int('LIFELINK_STATS_TTL', 300),
}

# action -> (limit, window seconds)
LIFELINK_RATE_LIMITS = {
    'create_requisition': (10, 3600),
    'notify_donors': (30, 3600),
    'respond': (60, 3600),
    'search_donors': (120, 3600),
    'add_donation': (10, 3600),
}


# ---------------------------
# Logging
# ---------------------------
LIFELINK_LOG_LEVEL = os.environ.get('LIFELINK_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        name: {'handlers': ['console'], 'level': LIFELINK_LOG_LEVEL, 'propagate': False}
        for name in ('lifelink', 'accounts', 'donors', 'requisitions', 'api', 'algorithms')
    },
}
