"""Constants for the MatchPoint application."""


class SocketEvents:
    """Socket.IO event names."""

    ROOM_UPDATE = "room:update"
    ROOM_SUBSCRIBE = "room:subscribe"
    ROOM_UNSUBSCRIBE = "room:unsubscribe"


def room_channel(room_code: str) -> str:
    """Socket.IO room that receives updates for one session room."""
    return f"room:{room_code}"
