"""Celery worker entry point.

Builds the Flask app after eventlet has been monkey patched by the
matchpoint_cli package __init__.py, so tasks run inside its app context.
"""
from matchpoint import create_app

flask_app = create_app()
celery_app = flask_app.extensions["celery"]

# Export celery_app for celery command line
__all__ = ["celery_app"]
