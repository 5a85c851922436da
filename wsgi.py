"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-admin
    gunicorn wsgi:app
"""

from bugtracker import create_app

app = create_app()
