#!/usr/bin/env python3
"""
WSGI Entry Point for Production Deployment
Use with: gunicorn wsgi:app
"""

import os

# Set production environment
os.environ.setdefault('FLASK_ENV', 'production')

# Import application factory
from rosterdesk.main import create_app

# Create application instance
app = create_app()
