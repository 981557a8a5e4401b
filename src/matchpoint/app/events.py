"""Socket.IO handlers for subscribing to room updates.

Clients poll ``GET /api/rooms/<code>`` or subscribe here to receive
``room:update`` pushes. Both deliver the same read model.
"""

import logging

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from matchpoint.exceptions import RoomNotFoundError
from matchpoint.room_codes import normalize_room_code
from matchpoint.server import socketio

from .constants import SocketEvents, room_channel

log = logging.getLogger(__name__)


@socketio.on(SocketEvents.ROOM_SUBSCRIBE)
def handle_room_subscribe(data):
    """Subscribe the client to room:<code> and send it the current state."""
    room_code = normalize_room_code((data or {}).get("roomCode", ""))
    if not room_code:
        return {"status": "error", "message": "roomCode required"}

    room_service = current_app.extensions["room_service"]
    try:
        state = room_service.get_room_state(room_code)
    except RoomNotFoundError as e:
        return {"status": "error", "code": e.code, "message": e.message}

    join_room(room_channel(room_code))
    emit(SocketEvents.ROOM_UPDATE, state.to_wire(), to=request.sid)

    log.debug(f"Client {request.sid} subscribed to {room_channel(room_code)}")
    return {"status": "joined", "room": room_channel(room_code)}


@socketio.on(SocketEvents.ROOM_UNSUBSCRIBE)
def handle_room_unsubscribe(data):
    room_code = normalize_room_code((data or {}).get("roomCode", ""))
    if not room_code:
        return {"status": "error", "message": "roomCode required"}

    leave_room(room_channel(room_code))
    log.debug(f"Client {request.sid} left {room_channel(room_code)}")
    return {"status": "left", "room": room_channel(room_code)}
