from . import events  # noqa: E402
from .error_handlers import errors
from .room_routes import rooms
from .utility_routes import utility

__all__ = ["events", "errors", "rooms", "utility"]
