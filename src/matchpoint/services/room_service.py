"""Room lifecycle and read model.

Rooms, participants, votes and matches are stored in Redis under the
``room:{code}`` namespace (see ``RoomKeys``). Status changes run inside
optimistic transactions (WATCH/MULTI) on the room hash, which gives
per-room atomicity without any in-process locks: every decision is
recomputed from the store.

Note: Pylance may show type errors for Redis operations suggesting they
return Awaitables. These are false positives - we use synchronous Redis.
"""

import json
import logging
import time
import uuid

from redis import Redis  # type: ignore
from redis.client import Pipeline

from matchpoint.analytics import participants_joined, rooms_created
from matchpoint.app.redis_keys import GlobalKeys, RoomKeys
from matchpoint.exceptions import (
    NotHostError,
    PoolAlreadyRequestedError,
    RoomCodeAllocationError,
    RoomNotFoundError,
    RoomNotJoinableError,
)
from matchpoint.models import (
    ContentId,
    IdentityToken,
    Match,
    Participant,
    RoomCode,
    RoomFilters,
    RoomState,
    RoomStatus,
    Vote,
    VoteValue,
)
from matchpoint.room_codes import generate_room_code, is_valid_room_code, normalize_room_code
from matchpoint.session import can_join, check_transition

log = logging.getLogger(__name__)

DEFAULT_ROOM_CODE_ATTEMPTS = 10
DEFAULT_POOL_CLAIM_TIMEOUT = 60.0


def _parse_filters(data: dict[str, str]) -> RoomFilters:
    return RoomFilters(
        content_kind=data["content_kind"],
        genre_ids=json.loads(data.get("genre_ids", "[]")),
        provider_ids=json.loads(data.get("provider_ids", "[]")),
    )


def _parse_status(room_code: str, data: dict[str, str]) -> RoomStatus:
    # A room hash without status is either missing or still being created
    if "status" not in data:
        raise RoomNotFoundError(f"Room '{room_code}' not found")
    return RoomStatus(data["status"])


class RoomService:
    """Handles room creation, joining, status transitions and the read model.

    Parameters
    ----------
    redis_client : Redis
        Redis client instance for data operations
    room_code_attempts : int
        Maximum number of codes tried before room creation gives up
    enforce_host : bool
        If True, host-only actions require the host's identity token.
        Otherwise host privilege is a client-side convention.
    pool_claim_timeout : float
        Seconds after which an unfinished pool generation claim of a waiting
        room may be taken over by a new request
    """

    def __init__(
        self,
        redis_client: Redis,
        room_code_attempts: int = DEFAULT_ROOM_CODE_ATTEMPTS,
        enforce_host: bool = False,
        pool_claim_timeout: float = DEFAULT_POOL_CLAIM_TIMEOUT,
    ):
        self.r = redis_client
        self.room_code_attempts = room_code_attempts
        self.enforce_host = enforce_host
        self.pool_claim_timeout = pool_claim_timeout

    def room_exists(self, room_code: str) -> bool:
        """Check if a room exists (and is fully created)."""
        keys = RoomKeys(room_code)
        return bool(self.r.hexists(keys.room(), "status"))

    def create_room(
        self, host_name: str, filters: RoomFilters
    ) -> tuple[RoomCode, IdentityToken]:
        """Create a room in ``waiting`` with the host as its first participant.

        Parameters
        ----------
        host_name : str
            Display name of the host
        filters : RoomFilters
            Content selection criteria used for pool generation

        Returns
        -------
        tuple[RoomCode, IdentityToken]
            The allocated room code and the host's identity token

        Raises
        ------
        RoomCodeAllocationError
            If no free room code was found within the attempt budget
        """
        created_at = time.time()
        room_code = self._allocate_room_code(created_at)
        keys = RoomKeys(room_code)

        host_token = IdentityToken(f"host-{uuid.uuid4()}")
        host = Participant(
            identity_token=host_token,
            display_name=host_name,
            is_host=True,
            joined_at=created_at,
        )

        pipe = self.r.pipeline()
        pipe.hset(
            keys.room(),
            mapping={
                "content_kind": filters.content_kind.value,
                "genre_ids": json.dumps(filters.genre_ids),
                "provider_ids": json.dumps(filters.provider_ids),
                "host_token": host_token,
            },
        )
        pipe.hset(keys.participants(), host_token, host.model_dump_json())
        pipe.hset(keys.room(), "status", RoomStatus.WAITING.value)
        pipe.execute()

        rooms_created.labels(content_kind=filters.content_kind.value).inc()
        log.info(f"Created room '{room_code}' for host '{host_name}'")
        return room_code, host_token

    def _allocate_room_code(self, created_at: float) -> RoomCode:
        """Claim an unused room code.

        The room hash and its entry in the creation index are written in one
        WATCH/MULTI transaction: two concurrent creators can never both obtain
        the same code, and a claimed code is always visible to the reaper.
        """
        for attempt in range(1, self.room_code_attempts + 1):
            room_code = generate_room_code()
            if self._claim_room_code(room_code, created_at):
                return room_code
            log.debug(f"Room code collision on '{room_code}' (attempt {attempt})")

        log.error(
            f"Could not allocate a room code after {self.room_code_attempts} attempts"
        )
        raise RoomCodeAllocationError(
            "Could not allocate a room code, please try again later"
        )

    def _claim_room_code(self, room_code: RoomCode, created_at: float) -> bool:
        keys = RoomKeys(room_code)

        def _claim(pipe: Pipeline) -> bool:
            if pipe.exists(keys.room()):
                return False
            pipe.multi()
            pipe.hset(keys.room(), "created_at", created_at)
            pipe.zadd(GlobalKeys.ROOMS_BY_CREATED_AT, {room_code: created_at})
            return True

        return self.r.transaction(_claim, keys.room(), value_from_callable=True)

    def join_room(
        self, room_code: str, user_name: str
    ) -> tuple[IdentityToken, RoomFilters]:
        """Add a participant to a waiting room.

        Raises
        ------
        RoomNotFoundError
            If the room does not exist (e.g. a mistyped code)
        RoomNotJoinableError
            If the room already left ``waiting``
        """
        room_code = normalize_room_code(room_code)
        if not is_valid_room_code(room_code):
            raise RoomNotFoundError(f"Room '{room_code}' not found")

        keys = RoomKeys(room_code)
        token = IdentityToken(f"user-{uuid.uuid4()}")

        def _join(pipe: Pipeline) -> RoomFilters:
            data = pipe.hgetall(keys.room())
            status = _parse_status(room_code, data)
            if not can_join(status):
                raise RoomNotJoinableError(
                    f"Room '{room_code}' has already started ({status.value})"
                )
            participant = Participant(
                identity_token=token,
                display_name=user_name,
                is_host=False,
                joined_at=time.time(),
            )
            pipe.multi()
            pipe.hset(keys.participants(), token, participant.model_dump_json())
            return _parse_filters(data)

        filters = self.r.transaction(_join, keys.room(), value_from_callable=True)

        participants_joined.inc()
        log.info(f"'{user_name}' joined room '{room_code}'")
        return token, filters

    def get_status(self, room_code: str) -> RoomStatus:
        keys = RoomKeys(room_code)
        return _parse_status(room_code, self.r.hgetall(keys.room()))

    def get_filters(self, room_code: str) -> RoomFilters:
        keys = RoomKeys(room_code)
        data = self.r.hgetall(keys.room())
        _parse_status(room_code, data)
        return _parse_filters(data)

    def get_room_state(self, room_code: str) -> RoomState:
        """Assemble the composite read model of a room.

        All lookups are keyed by room code and batched into one pipeline.

        Raises
        ------
        RoomNotFoundError
            If the room does not exist
        """
        room_code = normalize_room_code(room_code)
        keys = RoomKeys(room_code)

        pipe = self.r.pipeline()
        pipe.hgetall(keys.room())
        pipe.lrange(keys.pool(), 0, -1)
        pipe.hgetall(keys.participants())
        pipe.hgetall(keys.votes())
        pipe.hgetall(keys.matches())
        room, pool, participants, votes, matches = pipe.execute()

        status = _parse_status(room_code, room)

        participant_models = sorted(
            (Participant.model_validate_json(raw) for raw in participants.values()),
            key=lambda p: p.joined_at,
        )
        match_models = sorted(
            (Match.model_validate_json(raw) for raw in matches.values()),
            key=lambda m: m.matched_at,
        )
        vote_models = []
        for field, value in votes.items():
            content_id, identity_token = RoomKeys.parse_vote_field(field)
            vote_models.append(
                Vote(
                    content_id=ContentId(content_id),
                    identity_token=IdentityToken(identity_token),
                    value=VoteValue(value),
                )
            )

        return RoomState(
            room_code=room_code,
            status=status,
            filters=_parse_filters(room),
            content_pool=[ContentId(int(content_id)) for content_id in pool],
            matches=match_models,
            participants=participant_models,
            votes=vote_models,
            created_at=float(room["created_at"]),
            failure_reason=room.get("failure_reason"),
        )

    def check_host(self, room_code: str, identity_token: str | None) -> None:
        """Raise NotHostError unless ``identity_token`` is the room host's token.

        No-op when host enforcement is disabled.
        """
        if not self.enforce_host:
            return
        keys = RoomKeys(room_code)
        data = self.r.hgetall(keys.room())
        _parse_status(room_code, data)
        if identity_token is None or identity_token != data.get("host_token"):
            log.warning(f"Rejected host-only action on room '{room_code}'")
            raise NotHostError(f"Only the host of room '{room_code}' can do this")

    def begin_pool_generation(self, room_code: str) -> RoomFilters:
        """Claim the one-shot pool generation of a waiting room.

        Returns
        -------
        RoomFilters
            The filters to build the pool from

        Raises
        ------
        RoomNotFoundError
            If the room does not exist
        InvalidTransitionError
            If the room is no longer waiting
        PoolAlreadyRequestedError
            If another request already started pool generation
        """
        keys = RoomKeys(room_code)

        def _claim(pipe: Pipeline) -> RoomFilters:
            data = pipe.hgetall(keys.room())
            status = _parse_status(room_code, data)
            check_transition(status, RoomStatus.VOTING)
            requested_at = data.get("pool_requested_at")
            if requested_at is not None:
                age = time.time() - float(requested_at)
                if age < self.pool_claim_timeout:
                    raise PoolAlreadyRequestedError(
                        f"Pool generation already requested for room '{room_code}'"
                    )
                # The claiming request died before it could fail the room
                log.warning(
                    f"Retaking pool generation claim of room '{room_code}' "
                    f"after {age:.0f}s"
                )
            pipe.multi()
            pipe.hset(keys.room(), "pool_requested_at", time.time())
            return _parse_filters(data)

        return self.r.transaction(_claim, keys.room(), value_from_callable=True)

    def start_voting(self, room_code: str, pool: list[ContentId]) -> None:
        """Store the content pool and move the room to ``voting``.

        Any previous matches are cleared.
        """
        keys = RoomKeys(room_code)

        def _start(pipe: Pipeline) -> None:
            status = _parse_status(room_code, pipe.hgetall(keys.room()))
            check_transition(status, RoomStatus.VOTING)
            pipe.multi()
            pipe.delete(keys.pool(), keys.matches())
            if pool:
                pipe.rpush(keys.pool(), *pool)
            pipe.hset(keys.room(), "status", RoomStatus.VOTING.value)

        self.r.transaction(_start, keys.room())
        log.info(f"Room '{room_code}' is voting on {len(pool)} items")

    def mark_failed(self, room_code: str, reason: str) -> None:
        """Move a waiting room to ``failed`` and record why."""
        keys = RoomKeys(room_code)

        def _fail(pipe: Pipeline) -> None:
            status = _parse_status(room_code, pipe.hgetall(keys.room()))
            check_transition(status, RoomStatus.FAILED)
            pipe.multi()
            pipe.hset(
                keys.room(),
                mapping={"status": RoomStatus.FAILED.value, "failure_reason": reason},
            )

        self.r.transaction(_fail, keys.room())
        log.warning(f"Room '{room_code}' failed: {reason}")

    def finish_session(
        self, room_code: str, identity_token: str | None = None
    ) -> bool:
        """Move a voting room to ``matched``, with or without matches.

        Finishing an already matched room is a no-op.

        Returns
        -------
        bool
            True if the status changed, False if the room was already matched

        Raises
        ------
        RoomNotFoundError
            If the room does not exist
        InvalidTransitionError
            If the room is waiting or failed
        NotHostError
            If host enforcement is enabled and the token is not the host's
        """
        room_code = normalize_room_code(room_code)
        self.check_host(room_code, identity_token)
        keys = RoomKeys(room_code)

        def _finish(pipe: Pipeline) -> bool:
            status = _parse_status(room_code, pipe.hgetall(keys.room()))
            if status is RoomStatus.MATCHED:
                return False
            check_transition(status, RoomStatus.MATCHED)
            pipe.multi()
            pipe.hset(keys.room(), "status", RoomStatus.MATCHED.value)
            return True

        changed = self.r.transaction(_finish, keys.room(), value_from_callable=True)
        if changed:
            log.info(f"Room '{room_code}' finished")
        return changed

