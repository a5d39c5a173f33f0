"""
Django base settings for course_tracker project.
Shared settings between development, production and test.
"""

from pathlib import Path
from decouple import config, Csv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-me-in-production')

# Application definition
DJANGO_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

THIRD_PARTY_APPS = [
    'django_filters',
    'django_q',
]

LOCAL_APPS = [
    'apps.accounts',
    'apps.courses',
    'apps.activities',
    'apps.notifications',
    'apps.dashboard',
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# =============================================================================
# AUTHENTICATION - CRITICAL: Custom User Model
# =============================================================================
# Must be set BEFORE first migration
AUTH_USER_MODEL = 'accounts.User'

# Authentication backends
AUTHENTICATION_BACKENDS = [
    'apps.accounts.backends.EmailAuthBackend',
    'django.contrib.auth.backends.ModelBackend',
]

# API clients authenticate through the admin login form
LOGIN_URL = 'admin:login'


# =============================================================================
# PASSWORD VALIDATION
# =============================================================================
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 12,
        }
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Password hashing - use Argon2 as primary
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.Argon2PasswordHasher',
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
    'django.contrib.auth.hashers.PBKDF2SHA1PasswordHasher',
]


# =============================================================================
# INTERNATIONALIZATION & TIMEZONE
# =============================================================================
LANGUAGE_CODE = 'en-us'

# Deadlines fall at local midnight in this zone
TIME_ZONE = config('TIME_ZONE', default='UTC')

USE_I18N = True

USE_TZ = True

DATE_FORMAT = 'j M Y'
TIME_FORMAT = 'g:i A'
DATETIME_FORMAT = 'j M Y, g:i A'


# =============================================================================
# STATIC FILES
# =============================================================================
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# =============================================================================
# EMAIL SETTINGS
# =============================================================================
EMAIL_BACKEND = config(
    'EMAIL_BACKEND',
    default='django.core.mail.backends.console.EmailBackend'
)
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')

DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='noreply@coursetracker.local')
# Keep below Q_CLUSTER['timeout']
EMAIL_TIMEOUT = config('EMAIL_TIMEOUT', default=30, cast=int)


# =============================================================================
# ACTIVITY DEADLINES
# =============================================================================
# Week N is due (N-1)*7 + 7 + grace days after the offering start date
ACTIVITY_DEADLINE_GRACE_DAYS = config('ACTIVITY_DEADLINE_GRACE_DAYS', default=2, cast=int)

# Weekly reminder window
ACTIVITY_DUE_SOON_DAYS = config('ACTIVITY_DUE_SOON_DAYS', default=3, cast=int)


# =============================================================================
# NOTIFICATIONS
# =============================================================================
NOTIFICATION_LOG_TTL_DAYS = config('NOTIFICATION_LOG_TTL_DAYS', default=7, cast=int)
NOTIFICATION_RECENT_MAX = config('NOTIFICATION_RECENT_MAX', default=100, cast=int)
NOTIFICATION_COMPLETED_RETENTION_HOURS = config(
    'NOTIFICATION_COMPLETED_RETENTION_HOURS', default=24, cast=int
)
NOTIFICATION_FAILED_RETENTION_DAYS = config(
    'NOTIFICATION_FAILED_RETENTION_DAYS', default=7, cast=int
)


# =============================================================================
# DJANGO-Q2 SETTINGS (Background Tasks)
# =============================================================================
Q_CLUSTER = {
    'name': 'course_tracker',
    'workers': config('Q_WORKERS', default=2, cast=int),
    'recycle': 500,
    'timeout': 60,
    'retry': 120,
    'compress': True,
    'save_limit': 250,
    'queue_limit': 500,
    'cpu_affinity': 1,
    'label': 'Django Q2',
    'orm': 'default',
    # Retries are scheduled by the delivery worker, not by the broker
    'max_attempts': 1,
}

# ACTIVE jobs older than this are treated as a failed attempt
NOTIFICATION_STALLED_JOB_SECONDS = config(
    'NOTIFICATION_STALLED_JOB_SECONDS', default=Q_CLUSTER['retry'], cast=int
)


# =============================================================================
# DEFAULT PRIMARY KEY FIELD TYPE
# =============================================================================
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
