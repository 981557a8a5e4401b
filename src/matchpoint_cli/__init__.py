"""CLI entry point package with eventlet monkey patching.

This package provides CLI entry points that apply eventlet monkey patching
BEFORE importing any matchpoint modules. This prevents conflicts between
eventlet and Flask/SocketIO/Celery.

Importing ``matchpoint`` directly (tests, WSGI servers) does not patch.
"""
import eventlet

# Apply eventlet monkey patching FIRST, before any other imports
eventlet.monkey_patch()
