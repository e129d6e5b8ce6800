"""
Django settings for server project.

The service keeps all of its state on the filesystem, so there are
no databases, sessions or templates configured here.

For the full list of settings and their config, see
https://docs.djangoproject.com/en/5.1/ref/settings/
"""

from typing import Final

from server.settings.components import config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='')

# Application definition:

INSTALLED_APPS: Final = (
    # Our apps:
    'server.apps.authorization',
    'server.apps.files',
)

MIDDLEWARE: Final = (
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
)

ROOT_URLCONF = 'server.urls'

WSGI_APPLICATION = 'server.wsgi.application'

DATABASES: Final[dict[str, dict[str, str]]] = {}

# Internationalization
# https://docs.djangoproject.com/en/5.1/topics/i18n/

LANGUAGE_CODE = 'en-us'

USE_I18N = False

TIME_ZONE = 'UTC'
USE_TZ = True

# Uploads are streamed by the files app, Django never buffers them:
DATA_UPLOAD_MAX_MEMORY_SIZE = None

# `/d/<name>` and `/upload/<name>` must not be redirected:
APPEND_SLASH = False
