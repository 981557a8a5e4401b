"""Error handlers translating exceptions into JSON responses."""

import logging

from flask import Blueprint
from pydantic import ValidationError

from matchpoint.exceptions import MatchPointException

log = logging.getLogger(__name__)

errors = Blueprint("errors", __name__)


@errors.app_errorhandler(MatchPointException)
def handle_matchpoint_exception(e: MatchPointException):
    if e.status_code >= 500:
        log.error(f"{type(e).__name__}: {e.message}")
    return {"error": e.message, "code": e.code}, e.status_code


@errors.app_errorhandler(ValidationError)
def handle_validation_error(e: ValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in e.errors()
    )
    return {"error": f"Invalid request: {details}", "code": "invalid_payload"}, 400
