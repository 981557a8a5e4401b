"""Vote recording and unanimous match detection."""

import logging
import time

from redis import Redis  # type: ignore

from matchpoint.analytics import matches_found, votes_submitted
from matchpoint.app.redis_keys import RoomKeys
from matchpoint.exceptions import (
    ParticipantNotFoundError,
    RoomNotFoundError,
    RoomNotVotingError,
)
from matchpoint.models import (
    ContentId,
    DisplayMeta,
    Match,
    RoomStatus,
    VoteResult,
    VoteValue,
)
from matchpoint.room_codes import normalize_room_code
from matchpoint.session import accepts_votes

log = logging.getLogger(__name__)


class VoteService:
    """Records votes and commits matches once every participant liked an item.

    Quorum is unanimity over the participants present when the deciding like
    arrives: N is read live from the participants hash on every like, never
    cached. Matches committed earlier are not re-validated if N changes.

    Parameters
    ----------
    redis_client : Redis
        Redis client instance for data operations
    """

    def __init__(self, redis_client: Redis):
        self.r = redis_client

    def submit_vote(
        self,
        room_code: str,
        identity_token: str,
        content_id: int,
        value: VoteValue | str,
        display_meta: DisplayMeta | None = None,
    ) -> VoteResult:
        """Record a vote and check for a match if it is a like.

        The first vote of a participant on a content item wins. Repeating the
        vote, or sending a different value later, is a successful no-op that
        records nothing. A repeated like still re-runs the quorum check.

        Parameters
        ----------
        room_code : str
            Room identifier
        identity_token : str
            Token issued to the voter on create/join
        content_id : int
            Voted content item
        value : VoteValue | str
            ``like`` or ``dislike``
        display_meta : DisplayMeta | None
            Display fields stored with the match if this vote completes one

        Returns
        -------
        VoteResult
            Whether the vote was recorded and whether it committed a match

        Raises
        ------
        RoomNotFoundError
            If the room does not exist
        RoomNotVotingError
            If the room is not in ``voting``
        ParticipantNotFoundError
            If the token does not belong to a participant of the room
        """
        room_code = normalize_room_code(room_code)
        keys = RoomKeys(room_code)
        value = VoteValue(value)

        pipe = self.r.pipeline()
        pipe.hget(keys.room(), "status")
        pipe.hexists(keys.participants(), identity_token)
        status, is_participant = pipe.execute()

        if status is None:
            raise RoomNotFoundError(f"Room '{room_code}' not found")
        if not accepts_votes(RoomStatus(status)):
            raise RoomNotVotingError(
                f"Room '{room_code}' is not accepting votes ({status})"
            )
        if not is_participant:
            log.warning(f"Vote from unknown token in room '{room_code}'")
            raise ParticipantNotFoundError(
                f"Not a participant of room '{room_code}'"
            )

        field = RoomKeys.vote_field(content_id, identity_token)
        if not self.r.hsetnx(keys.votes(), field, value.value):
            log.debug(
                f"Duplicate vote on {content_id} in room '{room_code}' ignored"
            )
            if self.r.hget(keys.votes(), field) != VoteValue.LIKE.value:
                return VoteResult(recorded=False)
            # The stored like may predate a failed likes-set write; redo both
            # idempotent steps so a retry can still complete the match.
            self._record_like(keys, content_id, identity_token)
            match = self.check_quorum(room_code, content_id, display_meta)
            return VoteResult(recorded=False, matched=match is not None, match=match)

        votes_submitted.labels(value=value.value).inc()
        log.debug(f"Recorded {value.value} on {content_id} in room '{room_code}'")

        if value is VoteValue.DISLIKE:
            return VoteResult(recorded=True)

        self._record_like(keys, content_id, identity_token)
        match = self.check_quorum(room_code, content_id, display_meta)
        return VoteResult(recorded=True, matched=match is not None, match=match)

    def _record_like(self, keys: RoomKeys, content_id: int, identity_token: str) -> None:
        pipe = self.r.pipeline()
        pipe.sadd(keys.likes(content_id), identity_token)
        pipe.sadd(keys.liked_content(), content_id)
        pipe.execute()

    def check_quorum(
        self,
        room_code: str,
        content_id: int,
        display_meta: DisplayMeta | None = None,
    ) -> Match | None:
        """Commit a match for ``content_id`` if all current participants liked it.

        Safe to call repeatedly or concurrently: the match is written with
        HSETNX, so at most one entry per content id is ever stored.

        Returns
        -------
        Match | None
            The newly committed match, or None if there is no quorum or the
            match already existed
        """
        keys = RoomKeys(room_code)

        pipe = self.r.pipeline()
        pipe.hkeys(keys.participants())
        pipe.smembers(keys.likes(content_id))
        participants, likes = pipe.execute()

        participants = set(participants)
        n_participants = len(participants)
        n_likes = len(likes & participants)
        if n_participants == 0 or n_likes < n_participants:
            return None

        meta = display_meta or DisplayMeta()
        match = Match(
            content_id=ContentId(content_id),
            title=meta.title or "Unknown",
            poster_path=meta.poster_path,
            release_date=meta.release_date,
            matched_at=time.time(),
        )
        if not self.r.hsetnx(keys.matches(), str(content_id), match.model_dump_json()):
            log.debug(f"Match on {content_id} in room '{room_code}' already committed")
            return None

        matches_found.inc()
        log.info(
            f"Match in room '{room_code}': {content_id} liked by all "
            f"{n_participants} participants"
        )
        return match
