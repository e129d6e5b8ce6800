"""
This file contains all the settings used in production.

This file is required and if development.py is present these
values are overridden.
"""

from server.settings.components import config

DEBUG = False

ALLOWED_HOSTS = [
    # We use `DOMAIN_NAME` variable to allow subdomains:
    config('DOMAIN_NAME'),
]

SECURE_CONTENT_TYPE_NOSNIFF = True

SECRET_KEY = config('DJANGO_SECRET_KEY')
