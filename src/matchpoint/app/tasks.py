"""Celery tasks."""

import logging
from datetime import timedelta

from celery import shared_task
from flask import current_app

from .stale_cleanup import reap_stale_rooms

log = logging.getLogger(__name__)


@shared_task
def reap_stale_rooms_task(max_age_hours: float | None = None) -> int:
    """Periodic sweep of abandoned rooms.

    Runs inside the Flask app context (see ``celery_init_app``), so it uses
    the same Redis client and configuration as the web process.
    """
    if max_age_hours is None:
        max_age_hours = current_app.extensions["config"].room_max_age_hours
    deleted = reap_stale_rooms(
        current_app.extensions["redis"], max_age=timedelta(hours=max_age_hours)
    )
    log.info(f"Stale room sweep deleted {deleted} room(s)")
    return deleted
