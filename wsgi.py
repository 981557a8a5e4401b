"""WSGI entry point for production deployment with Gunicorn.

This module creates the Flask application instance for Gunicorn.
Configuration is read from environment variables (see matchpoint.config),
most importantly:
- MATCHPOINT_REDIS_URL: Redis URL for room state (required with more than one process)
- TMDB_API_KEY: key for the content catalog
"""

from matchpoint.server import create_app, socketio

app = create_app()

# Gunicorn will use the 'app' object
__all__ = ["app", "socketio"]
