"""
ASGI config for the Django application.

Exposes the ASGI callable as a module-level variable named ``application``
for Uvicorn. The service is plain HTTP; there are no WebSocket routes.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
