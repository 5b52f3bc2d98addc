import os
from pathlib import Path
from decouple import config, Csv

BASE_DIR = Path(__file__).resolve().parent.parent

# --- Security / Hosts ---
SECRET_KEY = config('SECRET_KEY', default='django-insecure-medcore-dev-key-change-me')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='127.0.0.1,localhost,testserver', cast=Csv())
CSRF_TRUSTED_ORIGINS = config('CSRF_TRUSTED_ORIGINS', default='', cast=Csv())


LOG_DIR = Path(BASE_DIR) / "logs"
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,

    "formatters": {
        "verbose": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        },
    },

    "handlers": {
        "file": {
            "class": "logging.FileHandler",
            "filename": str(LOG_DIR / "django_errors.log"),
            "formatter": "verbose",
        },
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },

    "loggers": {
        # Engine messages (billing, sync, recycle bin) go to the console
        "apps": {
            "handlers": ["console"],
            "level": config('APPS_LOG_LEVEL', default='INFO'),
            "propagate": False,
        },
    },

    "root": {  # catches all logs
        "handlers": ["console", "file"],
        "level": "ERROR",   # only errors go to the file
    },
}

# If behind Nginx TLS termination:
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
USE_X_FORWARDED_HOST = True

# --- Apps ---
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # 3rd-party
    'rest_framework',
    'rest_framework.authtoken',
    'corsheaders',
    'django_filters',
    'drf_spectacular',

    # Local
    'common',
    'apps.storage',
    'apps.records',
    'apps.hospital',
    'apps.registry',
    'apps.billing',
    'apps.commissions',
    'apps.recycle_bin',
    'apps.backup',
]

# --- Middleware ---
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'medcore.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [os.path.join(BASE_DIR, 'templates')],
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

WSGI_APPLICATION = 'medcore.wsgi.application'

# --- Database (use discrete env vars) ---
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER'),
            'PASSWORD': config('DB_PASSWORD'),
            'HOST':     config('DB_HOST', default='localhost'),
            'PORT':     config('DB_PORT', default='5432'),
            'CONN_MAX_AGE': 600,
            'OPTIONS': {},
        }
    }

# --- Caches ---
# "local_store" is the offline record cache every collection is written
# through; it must survive process restarts, hence the file backend.
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'medcore-default',
    },
    'local_store': {
        'BACKEND': 'django.core.cache.backends.filebased.FileBasedCache',
        'LOCATION': config('LOCAL_STORE_DIR', default=str(BASE_DIR / 'local_store')),
        'TIMEOUT': None,
        'OPTIONS': {'MAX_ENTRIES': 10000},
    },
}

# --- Remote record store (mirror of the local cache) ---
RECORD_STORE = {
    'BASE_URL': config('RECORD_STORE_URL', default=''),
    'TOKEN': config('RECORD_STORE_TOKEN', default=''),
    'TIMEOUT': config('RECORD_STORE_TIMEOUT', default=5.0, cast=float),
    'ASYNC_WRITES': config('RECORD_STORE_ASYNC_WRITES', default=True, cast=bool),
    'MAX_WORKERS': config('RECORD_STORE_MAX_WORKERS', default=4, cast=int),
    'OUTBOX_ENABLED': config('RECORD_STORE_OUTBOX_ENABLED', default=True, cast=bool),
    'START_ONLINE': config('RECORD_STORE_START_ONLINE', default=True, cast=bool),
}

# --- Hospital defaults (merged under the stored configuration) ---
HOSPITAL_DEFAULTS = {
    'name': config('HOSPITAL_NAME', default='MedCore Clinic'),
    'address': config('HOSPITAL_ADDRESS', default=''),
    'phone': config('HOSPITAL_PHONE', default=''),
    'email': config('HOSPITAL_EMAIL', default=''),
    'website': config('HOSPITAL_WEBSITE', default=''),
    'social_media': config('HOSPITAL_SOCIAL_MEDIA', default=''),
    'tagline': config('HOSPITAL_TAGLINE', default=''),
    'currency_symbol': config('HOSPITAL_CURRENCY_SYMBOL', default='Tk'),
    'date_format': config('HOSPITAL_DATE_FORMAT', default='DD/MM/YYYY'),
    'invoice_id_prefix': config('INVOICE_ID_PREFIX', default='INV'),
    'invoice_id_date_format': config('INVOICE_ID_DATE_FORMAT', default='YYYYMM'),
    'invoice_id_padding': config('INVOICE_ID_PADDING', default=4, cast=int),
    'invoice_id_separator': config('INVOICE_ID_SEPARATOR', default='-'),
}

# --- Auth / Passwords ---
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# --- DRF ---
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    # Amounts go out as JSON numbers, matching the stored records
    'COERCE_DECIMAL_TO_STRING': False,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'MedCore Billing & Ledger API',
    'DESCRIPTION': 'Billing, payments, commissions, recycle bin and record sync for a small clinic',
    'VERSION': '1.0.0',
}

# --- CORS ---
CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:3000,http://127.0.0.1:3000',
    cast=Csv()
)
CORS_ALLOW_CREDENTIALS = True

# --- I18N / TZ ---
LANGUAGE_CODE = 'en-us'
TIME_ZONE = config('TIME_ZONE', default='Asia/Dhaka')
USE_I18N = True
USE_TZ = True

# --- Static / Media ---
STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage'},
}

MEDIA_URL = '/media/'
MEDIA_ROOT = os.path.join(BASE_DIR, 'media')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
