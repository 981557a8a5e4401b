"""Room lifecycle state machine.

    waiting --> voting --> matched
       |
       +------> failed

``matched`` is only reached by an explicit finish. ``failed`` is only reached
when pool generation fails; there is no way back to ``waiting``, a failed room
is abandoned and a new one created.
"""

from matchpoint.exceptions import InvalidTransitionError
from matchpoint.models import RoomStatus

TRANSITIONS: dict[RoomStatus, frozenset[RoomStatus]] = {
    RoomStatus.WAITING: frozenset({RoomStatus.VOTING, RoomStatus.FAILED}),
    RoomStatus.VOTING: frozenset({RoomStatus.MATCHED}),
    RoomStatus.MATCHED: frozenset(),
    RoomStatus.FAILED: frozenset(),
}

TERMINAL = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def check_transition(current: RoomStatus, target: RoomStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is an allowed edge."""
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move room from '{current.value}' to '{target.value}'"
        )


def can_join(status: RoomStatus) -> bool:
    """Participants may only join before the pool is generated."""
    return status is RoomStatus.WAITING


def accepts_votes(status: RoomStatus) -> bool:
    return status is RoomStatus.VOTING
