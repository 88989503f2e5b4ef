"""
WSGI config for the restoration project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "restoration.settings_template")

application = get_wsgi_application()
