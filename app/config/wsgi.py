"""
WSGI entry point, for gunicorn-style deployments.

The API is served over ASGI (config.asgi) by default; both load the same
settings module.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
