"""Redis key management for MatchPoint.

Centralizes Redis key construction to avoid duplication and errors.
All key construction should go through these classes.

Every room lives in its own ``room:{code}`` namespace so all read-model
lookups are keyed by room code and never scan other rooms.
"""

from dataclasses import dataclass


class GlobalKeys:
    """Keys shared by all rooms."""

    # Sorted set: room code -> created_at timestamp (reaper index)
    ROOMS_BY_CREATED_AT = "rooms:created_at"


@dataclass
class RoomKeys:
    """Redis keys for room-related data.

    Centralizes all room-scoped key construction.
    """

    room_code: str

    def room(self) -> str:
        """Room document hash (status, filters, created_at, host token, ...)."""
        return f"room:{self.room_code}"

    def pool(self) -> str:
        """Ordered content pool list."""
        return f"room:{self.room_code}:pool"

    def participants(self) -> str:
        """Participants hash (identity token -> participant JSON)."""
        return f"room:{self.room_code}:participants"

    def votes(self) -> str:
        """Votes hash (vote field -> vote value)."""
        return f"room:{self.room_code}:votes"

    def likes(self, content_id: int) -> str:
        """Set of identity tokens that liked a content item.

        Parameters
        ----------
        content_id : int
            Content identifier

        Returns
        -------
        str
            Redis key for the likes set
        """
        return f"room:{self.room_code}:likes:{content_id}"

    def matches(self) -> str:
        """Matches hash (content id -> match JSON)."""
        return f"room:{self.room_code}:matches"

    def liked_content(self) -> str:
        """Set of content ids that have a likes set in this room.

        Lets the reaper delete every ``likes:{content_id}`` key without scanning.
        """
        return f"room:{self.room_code}:liked"

    @staticmethod
    def vote_field(content_id: int, identity_token: str) -> str:
        """Field of the votes hash for one (content, participant) pair."""
        return f"{content_id}:{identity_token}"

    @staticmethod
    def parse_vote_field(field: str) -> tuple[int, str]:
        """Split a votes hash field into content id and identity token."""
        content_id, identity_token = field.split(":", 1)
        return int(content_id), identity_token
