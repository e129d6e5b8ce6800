"""WSGI entry point of the file server.

Served by cheroot through ``python -m django run_file_server``, or by
any other WSGI server pointed at ``server.wsgi:application``.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'server.settings')

application = get_wsgi_application()
