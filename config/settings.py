"""
Django settings for the template online tester.
"""

import os
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    'DJANGO_SECRET_KEY',
    'django-insecure-q7m2!x0v#hd9c$4lz8k@e1w+u3n6r5t_ya(b)jgp*sofi^v2m'
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DJANGO_DEBUG', 'True') == 'True'

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost 127.0.0.1 [::1]').split()

# Application definition
INSTALLED_APPS = [
    'django.contrib.staticfiles',
    # Local apps
    'onlinetester',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# The tester keeps no persistent state.
DATABASES = {}

# Internationalization – the tester activates the requested locale and time
# zone per render, these are only the process defaults.
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedStaticFilesStorage',
    },
}

# ---------------------------------------------------------------------------
# Template online tester
# ---------------------------------------------------------------------------
# Request field limits (characters).
TESTER_MAX_TEMPLATE_LENGTH = os.environ.get('TESTER_MAX_TEMPLATE_LENGTH', '10000')
TESTER_MAX_DATA_MODEL_LENGTH = os.environ.get('TESTER_MAX_DATA_MODEL_LENGTH', '10000')

# Values used when a request leaves a setting blank.
TESTER_DEFAULT_OUTPUT_FORMAT = os.environ.get('TESTER_DEFAULT_OUTPUT_FORMAT', 'undefined')
TESTER_DEFAULT_LOCALE = os.environ.get('TESTER_DEFAULT_LOCALE', 'en_US')
TESTER_DEFAULT_TIME_ZONE = os.environ.get('TESTER_DEFAULT_TIME_ZONE', 'America/Los_Angeles')

# Rendering engine: worker pool, admission queue and per-render limits.
RENDER_MAX_OUTPUT_LENGTH = os.environ.get('RENDER_MAX_OUTPUT_LENGTH', '100000')
RENDER_MAX_THREADS = os.environ.get('RENDER_MAX_THREADS', '4')
RENDER_MAX_QUEUE_LENGTH = os.environ.get('RENDER_MAX_QUEUE_LENGTH', '8')
RENDER_TIMEOUT_SECONDS = os.environ.get('RENDER_TIMEOUT_SECONDS', '5')

# ---------------------------------------------------------------------------
# Logging – one file per day, 7-day retention, stored in ./logs/
# ---------------------------------------------------------------------------
LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name} {module}.{funcName}:{lineno} – {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
        'simple': {
            'format': '{asctime} [{levelname}] {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
            'level': 'DEBUG',
        },
        'file_debug': {
            'class': 'logging.handlers.TimedRotatingFileHandler',
            'filename': str(LOGS_DIR / 'app.log'),
            'when': 'midnight',
            'interval': 1,
            'backupCount': 7,
            'encoding': 'utf-8',
            'formatter': 'verbose',
            'level': 'DEBUG',
        },
    },
    'root': {
        'handlers': ['console', 'file_debug'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file_debug'],
            'level': 'INFO',
            'propagate': False,
        },
        'onlinetester': {
            'handlers': ['console', 'file_debug'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}
