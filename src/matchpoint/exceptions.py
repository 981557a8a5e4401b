"""MatchPoint exception classes.

Every exception carries the HTTP status and machine-readable code the
web layer reports to clients.
"""


class MatchPointException(Exception):
    """Base exception for all MatchPoint errors."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__)

    @property
    def message(self) -> str:
        return str(self.args[0])


class RoomCodeAllocationError(MatchPointException):
    """Could not allocate a room code, try again later."""

    status_code = 503
    code = "room_code_exhausted"


class RoomNotFoundError(MatchPointException):
    """Room not found."""

    status_code = 404
    code = "room_not_found"


class RoomNotJoinableError(MatchPointException):
    """The session in this room has already started."""

    status_code = 409
    code = "room_already_started"


class InvalidTransitionError(MatchPointException):
    """Raised when a room status change is not allowed from its current status."""

    status_code = 409
    code = "invalid_transition"


class RoomNotVotingError(InvalidTransitionError):
    """Votes are only accepted while the room is voting."""

    code = "room_not_voting"


class PoolAlreadyRequestedError(MatchPointException):
    """Pool generation was already requested for this room."""

    status_code = 409
    code = "pool_already_requested"


class PoolGenerationError(MatchPointException):
    """Could not build a content pool for this room."""

    status_code = 502
    code = "pool_generation_failed"


class ParticipantNotFoundError(MatchPointException):
    """Identity token does not belong to a participant of this room."""

    status_code = 403
    code = "unknown_participant"


class NotHostError(MatchPointException):
    """Only the host can perform this action."""

    status_code = 403
    code = "not_host"


class CatalogError(MatchPointException):
    """Raised when the external content catalog cannot be queried."""

    status_code = 502
    code = "catalog_unavailable"
