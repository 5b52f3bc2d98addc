"""
WSGI config for the MedCore project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'medcore.settings')

application = get_wsgi_application()
