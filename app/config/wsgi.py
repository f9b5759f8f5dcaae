"""
WSGI config for the marketplace chat backend.

The project is served through ASGI (see asgi.py) so that WebSocket delivery
works. WSGI is kept for REST-only deployments and management tooling; it does
not serve the ws/chat/ route.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
