"""Room session routes.

Handles room creation, joining, the read model, pool generation, voting
and finishing. Every state change is followed by a room:update push.
"""

import logging

from flask import Blueprint, current_app, request

from matchpoint.exceptions import PoolGenerationError
from matchpoint.models import (
    CreateRoomRequest,
    CreateRoomResponse,
    HostActionRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    RoomState,
    VoteRequest,
)
from matchpoint.room_codes import normalize_room_code
from matchpoint.server import socketio

from .room_manager import emit_room_update

log = logging.getLogger(__name__)

rooms = Blueprint("rooms", __name__)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _push_room_state(room_code: str) -> RoomState:
    """Load the room state and broadcast it to the room's subscribers."""
    state = current_app.extensions["room_service"].get_room_state(room_code)
    emit_room_update(socketio, state)
    return state


@rooms.route("/api/rooms", methods=["POST"])
def create_room():
    """Create a room with the caller as host.

    Request
    -------
    {
        "hostName": "Alice",
        "contentKind": "movie" | "tv",
        "genreIds": [28, 12],
        "providerIds": ["8", "119"]
    }

    Response (201)
    --------------
    {"roomCode": "K7QX", "identityToken": "host-..."}
    """
    body = CreateRoomRequest.model_validate(_json_body())
    room_service = current_app.extensions["room_service"]

    room_code, host_token = room_service.create_room(body.host_name, body.filters())
    return CreateRoomResponse(room_code=room_code, identity_token=host_token).to_wire(), 201


@rooms.route("/api/rooms/<string:room_code>/join", methods=["POST"])
def join_room(room_code: str):
    """Join a waiting room.

    Request: ``{"userName": "Bob"}``

    Response: ``{"identityToken": "user-...", "filters": {...}}``
    """
    room_code = normalize_room_code(room_code)
    body = JoinRoomRequest.model_validate(_json_body())
    room_service = current_app.extensions["room_service"]

    token, filters = room_service.join_room(room_code, body.user_name)
    _push_room_state(room_code)
    return JoinRoomResponse(identity_token=token, filters=filters).to_wire(), 200


@rooms.route("/api/rooms/<string:room_code>", methods=["GET"])
def get_room_state(room_code: str):
    """Get the full read model of a room."""
    room_service = current_app.extensions["room_service"]
    return room_service.get_room_state(room_code).to_wire(), 200


@rooms.route("/api/rooms/<string:room_code>/pool", methods=["POST"])
def generate_pool(room_code: str):
    """Build the content pool and start voting.

    Request: ``{"identityToken": "host-..."}`` (required only when host
    enforcement is enabled)

    On catalog failure the room ends up ``failed`` and the error is returned;
    subscribers receive the failed state as well.
    """
    room_code = normalize_room_code(room_code)
    body = HostActionRequest.model_validate(_json_body())
    pool_service = current_app.extensions["pool_service"]

    try:
        pool_service.generate_pool(room_code, body.identity_token)
    except PoolGenerationError:
        _push_room_state(room_code)
        raise

    return _push_room_state(room_code).to_wire(), 200


@rooms.route("/api/rooms/<string:room_code>/votes", methods=["POST"])
def submit_vote(room_code: str):
    """Record a like/dislike.

    Request
    -------
    {
        "identityToken": "user-...",
        "contentId": 550,
        "value": "like" | "dislike",
        "displayMeta": {"title": "...", "posterPath": "...", "releaseDate": "..."}
    }

    Response: ``{"recorded": true, "matched": false, "match": null}``
    """
    room_code = normalize_room_code(room_code)
    body = VoteRequest.model_validate(_json_body())
    vote_service = current_app.extensions["vote_service"]

    result = vote_service.submit_vote(
        room_code,
        body.identity_token,
        body.content_id,
        body.value,
        body.display_meta,
    )
    if result.recorded:
        _push_room_state(room_code)
    return result.to_wire(), 200


@rooms.route("/api/rooms/<string:room_code>/finish", methods=["POST"])
def finish_session(room_code: str):
    """End voting. Repeated calls return the final state unchanged."""
    room_code = normalize_room_code(room_code)
    body = HostActionRequest.model_validate(_json_body())
    room_service = current_app.extensions["room_service"]

    if room_service.finish_session(room_code, body.identity_token):
        return _push_room_state(room_code).to_wire(), 200
    return room_service.get_room_state(room_code).to_wire(), 200
