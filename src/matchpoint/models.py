"""Pydantic models shared between the service layer, REST API and WebSocket events.

Field names are snake_case in Python and camelCase on the wire.
"""

import enum
import typing as t

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RoomCode = t.NewType("RoomCode", str)
IdentityToken = t.NewType("IdentityToken", str)
ContentId = t.NewType("ContentId", int)


class RoomStatus(str, enum.Enum):
    WAITING = "waiting"
    VOTING = "voting"
    MATCHED = "matched"
    FAILED = "failed"


class ContentKind(str, enum.Enum):
    MOVIE = "movie"
    TV = "tv"


class VoteValue(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, t.Any]:
        """Serialize with camelCase keys for clients."""
        return self.model_dump(mode="json", by_alias=True)


class RoomFilters(WireModel):
    """Content selection criteria supplied at room creation."""

    content_kind: ContentKind = ContentKind.MOVIE
    genre_ids: list[int] = Field(default_factory=list)
    provider_ids: list[str] = Field(default_factory=list)


class DisplayMeta(WireModel):
    """Display fields sent along with a vote so matches render without a refetch."""

    title: str | None = None
    poster_path: str | None = None
    release_date: str | None = None


class Participant(WireModel):
    identity_token: IdentityToken
    display_name: str
    is_host: bool = False
    joined_at: float


class Vote(WireModel):
    content_id: ContentId
    identity_token: IdentityToken
    value: VoteValue


class Match(WireModel):
    """A content item every participant liked."""

    content_id: ContentId
    title: str = "Unknown"
    poster_path: str | None = None
    release_date: str | None = None
    matched_at: float


class RoomState(WireModel):
    """Composite read model of a room.

    This is the single source of truth clients render from, delivered both
    by polling and by ``room:update`` socket events.
    """

    room_code: RoomCode
    status: RoomStatus
    filters: RoomFilters
    content_pool: list[ContentId] = Field(default_factory=list)
    matches: list[Match] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)
    votes: list[Vote] = Field(default_factory=list)
    created_at: float
    failure_reason: str | None = None


class VoteResult(WireModel):
    """Outcome of a vote submission."""

    recorded: bool
    matched: bool = False
    match: Match | None = None


# =============================================================================
# Request / response bodies
# =============================================================================


class CreateRoomRequest(WireModel):
    host_name: str = Field(min_length=1, max_length=64)
    content_kind: ContentKind = ContentKind.MOVIE
    genre_ids: list[int] = Field(default_factory=list)
    provider_ids: list[str] = Field(default_factory=list)

    def filters(self) -> RoomFilters:
        return RoomFilters(
            content_kind=self.content_kind,
            genre_ids=self.genre_ids,
            provider_ids=self.provider_ids,
        )


class CreateRoomResponse(WireModel):
    room_code: RoomCode
    identity_token: IdentityToken


class JoinRoomRequest(WireModel):
    user_name: str = Field(min_length=1, max_length=64)


class JoinRoomResponse(WireModel):
    identity_token: IdentityToken
    filters: RoomFilters


class VoteRequest(WireModel):
    identity_token: IdentityToken
    content_id: ContentId
    value: VoteValue
    display_meta: DisplayMeta | None = None


class HostActionRequest(WireModel):
    identity_token: IdentityToken | None = None


class ReapRequest(WireModel):
    max_age_hours: float | None = Field(default=None, gt=0)


class ReapResponse(WireModel):
    deleted: int
