"""Utility and system routes.

Handles health checks, versioning and manual maintenance.
"""

import logging
from datetime import timedelta

from flask import Blueprint, current_app, request

from matchpoint.models import ReapRequest, ReapResponse

from .stale_cleanup import reap_stale_rooms

log = logging.getLogger(__name__)

utility = Blueprint("utility", __name__)


@utility.route("/health")
def health_check():
    """Health check endpoint for server status verification."""
    return {"status": "ok"}, 200


@utility.route("/api/version")
def get_version():
    """Get the MatchPoint server version."""
    import matchpoint

    return {"version": matchpoint.__version__}, 200


@utility.route("/api/admin/reap", methods=["POST"])
def reap_rooms():
    """Delete stale rooms now instead of waiting for the periodic task.

    Request: ``{"maxAgeHours": 24}`` (optional, defaults to the configured age)

    Response: ``{"deleted": 3}``
    """
    body = ReapRequest.model_validate(request.get_json(silent=True) or {})
    config = current_app.extensions["config"]
    max_age_hours = body.max_age_hours or config.room_max_age_hours

    deleted = reap_stale_rooms(
        current_app.extensions["redis"], max_age=timedelta(hours=max_age_hours)
    )
    log.info(f"Manual reap removed {deleted} room(s)")
    return ReapResponse(deleted=deleted).to_wire(), 200
