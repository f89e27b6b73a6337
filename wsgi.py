"""
PilotGB Control Tower WSGI entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi seed-demo
    flask --app wsgi db migrate -m "description"
"""

from app import create_app

app = create_app()
