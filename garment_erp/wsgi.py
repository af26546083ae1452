"""
WSGI config for garment_erp project.

Exposes the WSGI callable as a module-level variable named ``application``;
gunicorn_config.py points gunicorn at it.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'garment_erp.settings')

application = get_wsgi_application()
