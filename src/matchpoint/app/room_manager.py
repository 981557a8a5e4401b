"""WebSocket push of the room read model."""

import logging

from flask_socketio import SocketIO

from matchpoint.models import RoomState

from .constants import SocketEvents, room_channel

log = logging.getLogger(__name__)


def emit_room_update(socketio: SocketIO, state: RoomState) -> None:
    """Emit room:update with the full room state to every subscriber of the room.

    The payload is the same document ``GET /api/rooms/<code>`` returns, so
    clients can treat pushes and polls interchangeably.

    Parameters
    ----------
    socketio : SocketIO
        Flask-SocketIO instance
    state : RoomState
        Current read model of the room
    """
    socketio.emit(
        SocketEvents.ROOM_UPDATE,
        state.to_wire(),
        to=room_channel(state.room_code),
        namespace="/",
    )
    log.debug(
        f"Emitted room:update for '{state.room_code}' "
        f"(status={state.status.value}, matches={len(state.matches)})"
    )
