"""Tests for RoomService.

Each test is a function that checks one behaviour against an in-memory Redis.
"""

import time

import pytest
import redis

from matchpoint.app.stale_cleanup import reap_stale_rooms
from matchpoint.exceptions import (
    InvalidTransitionError,
    NotHostError,
    PoolAlreadyRequestedError,
    RoomCodeAllocationError,
    RoomNotFoundError,
    RoomNotJoinableError,
)
from matchpoint.models import ContentKind, RoomFilters, RoomStatus
from matchpoint.room_codes import is_valid_room_code
from matchpoint.services import room_service as room_service_module
from matchpoint.services.room_service import RoomService


def _code_sequence(monkeypatch, codes):
    """Make the room code generator return ``codes`` in order, counting calls."""
    calls = []
    it = iter(codes)

    def fake_generate():
        calls.append(1)
        return next(it)

    monkeypatch.setattr(room_service_module, "generate_room_code", fake_generate)
    return calls


def test_create_room_returns_code_and_host_token(room_service, filters):
    """A new room gets a valid code and a host token."""
    room_code, host_token = room_service.create_room("Alice", filters)

    assert is_valid_room_code(room_code)
    assert host_token.startswith("host-")
    assert room_service.room_exists(room_code)


def test_create_room_starts_waiting_with_host(room_service, filters):
    """The host is the only participant of a new, waiting room."""
    room_code, host_token = room_service.create_room("Alice", filters)
    state = room_service.get_room_state(room_code)

    assert state.status is RoomStatus.WAITING
    assert state.filters == filters
    assert state.content_pool == []
    assert state.matches == []
    assert len(state.participants) == 1
    host = state.participants[0]
    assert host.identity_token == host_token
    assert host.display_name == "Alice"
    assert host.is_host is True


def test_create_room_indexes_creation_time(room_service, redis_client, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    score = redis_client.zscore("rooms:created_at", room_code)
    assert score == pytest.approx(room_service.get_room_state(room_code).created_at)


def test_create_room_retries_on_collision(room_service, filters, monkeypatch):
    """A taken code is skipped and the next free one is used."""
    _code_sequence(monkeypatch, ["AAAA", "AAAA", "AAAA", "BBBB"])

    first, _ = room_service.create_room("Alice", filters)
    second, _ = room_service.create_room("Bob", filters)

    assert first == "AAAA"
    assert second == "BBBB"


def test_create_room_gives_up_after_attempt_budget(redis_client, filters, monkeypatch):
    """Creation fails once every attempt collided."""
    service = RoomService(redis_client, room_code_attempts=3)
    calls = _code_sequence(monkeypatch, ["AAAA"] * 10)
    service.create_room("Alice", filters)
    calls.clear()

    with pytest.raises(RoomCodeAllocationError):
        service.create_room("Bob", filters)
    assert len(calls) == 3


def test_default_attempt_budget_is_ten(room_service, filters, monkeypatch):
    calls = _code_sequence(monkeypatch, ["AAAA"] * 20)
    room_service.create_room("Alice", filters)
    calls.clear()

    with pytest.raises(RoomCodeAllocationError):
        room_service.create_room("Bob", filters)
    assert len(calls) == 10


def test_join_room_adds_participant(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    token, room_filters = room_service.join_room(room_code, "Bob")

    assert token.startswith("user-")
    assert room_filters == filters
    participants = room_service.get_room_state(room_code).participants
    assert [p.display_name for p in participants] == ["Alice", "Bob"]
    assert participants[1].is_host is False


def test_join_room_accepts_lowercase_code(room_service, filters):
    """Codes typed in lowercase or with whitespace still resolve."""
    room_code, _ = room_service.create_room("Alice", filters)
    room_service.join_room(f" {room_code.lower()} ", "Bob")
    assert len(room_service.get_room_state(room_code).participants) == 2


def test_join_room_issues_distinct_tokens(room_service, filters):
    room_code, host_token = room_service.create_room("Alice", filters)
    bob, _ = room_service.join_room(room_code, "Bob")
    also_bob, _ = room_service.join_room(room_code, "Bob")
    assert len({host_token, bob, also_bob}) == 3


@pytest.mark.parametrize("room_code", ["ZZZZ", "nope", ""])
def test_join_unknown_room_raises(room_service, room_code):
    with pytest.raises(RoomNotFoundError):
        room_service.join_room(room_code, "Bob")


def test_join_voting_room_is_rejected(voting_room, room_service):
    """No participant is created for a room that already started."""
    room_code, tokens = voting_room

    with pytest.raises(RoomNotJoinableError):
        room_service.join_room(room_code, "Dave")
    assert len(room_service.get_room_state(room_code).participants) == len(tokens)


def test_join_failed_room_is_rejected(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    room_service.begin_pool_generation(room_code)
    room_service.mark_failed(room_code, "catalog down")

    with pytest.raises(RoomNotJoinableError):
        room_service.join_room(room_code, "Bob")


def test_get_room_state_unknown_room(room_service):
    with pytest.raises(RoomNotFoundError):
        room_service.get_room_state("ZZZZ")


def test_begin_pool_generation_is_one_shot(room_service, filters):
    """A second pool request while the first is in flight is rejected."""
    room_code, _ = room_service.create_room("Alice", filters)
    assert room_service.begin_pool_generation(room_code) == filters

    with pytest.raises(PoolAlreadyRequestedError):
        room_service.begin_pool_generation(room_code)


def test_start_voting_stores_pool(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    room_service.begin_pool_generation(room_code)
    room_service.start_voting(room_code, [3, 1, 2])

    state = room_service.get_room_state(room_code)
    assert state.status is RoomStatus.VOTING
    assert state.content_pool == [3, 1, 2]


def test_start_voting_resets_matches(room_service, redis_client, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    redis_client.hset(
        f"room:{room_code}:matches", "1", '{"contentId": 1, "matchedAt": 0}'
    )
    room_service.start_voting(room_code, [1])
    assert room_service.get_room_state(room_code).matches == []


def test_mark_failed_records_reason(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    room_service.mark_failed(room_code, "No content found")

    state = room_service.get_room_state(room_code)
    assert state.status is RoomStatus.FAILED
    assert state.failure_reason == "No content found"


def test_finish_session_moves_voting_room_to_matched(voting_room, room_service):
    room_code, _ = voting_room
    assert room_service.finish_session(room_code) is True
    assert room_service.get_status(room_code) is RoomStatus.MATCHED


def test_finish_session_twice_is_noop(voting_room, room_service):
    room_code, _ = voting_room
    room_service.finish_session(room_code)
    assert room_service.finish_session(room_code) is False
    assert room_service.get_status(room_code) is RoomStatus.MATCHED


def test_finish_waiting_room_raises(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    with pytest.raises(InvalidTransitionError):
        room_service.finish_session(room_code)


def test_host_enforcement_rejects_guests(redis_client, filters):
    service = RoomService(redis_client, enforce_host=True)
    room_code, host_token = service.create_room("Alice", filters)
    guest_token, _ = service.join_room(room_code, "Bob")

    with pytest.raises(NotHostError):
        service.check_host(room_code, guest_token)
    with pytest.raises(NotHostError):
        service.check_host(room_code, None)
    service.check_host(room_code, host_token)


def test_host_check_disabled_by_default(room_service, filters):
    room_code, _ = room_service.create_room("Alice", filters)
    room_service.check_host(room_code, None)


def test_rooms_are_isolated(room_service):
    """Data of one room never shows up in another."""
    movies = RoomFilters(content_kind=ContentKind.MOVIE)
    shows = RoomFilters(content_kind=ContentKind.TV, genre_ids=[18])
    a, _ = room_service.create_room("Alice", movies)
    b, _ = room_service.create_room("Bob", shows)
    room_service.join_room(a, "Carol")

    assert len(room_service.get_room_state(a).participants) == 2
    assert len(room_service.get_room_state(b).participants) == 1
    assert room_service.get_filters(b) == shows


def test_fresh_pool_claim_is_not_retaken(redis_client, filters):
    service = RoomService(redis_client, pool_claim_timeout=60.0)
    room_code, _ = service.create_room("Alice", filters)
    service.begin_pool_generation(room_code)

    with pytest.raises(PoolAlreadyRequestedError):
        service.begin_pool_generation(room_code)


def test_expired_pool_claim_is_retaken(redis_client, filters):
    """A waiting room whose claim outlived the timeout can be claimed again."""
    service = RoomService(redis_client, pool_claim_timeout=60.0)
    room_code, _ = service.create_room("Alice", filters)
    service.begin_pool_generation(room_code)
    redis_client.hset(f"room:{room_code}", "pool_requested_at", time.time() - 61)

    assert service.begin_pool_generation(room_code) == filters
    requested_at = float(redis_client.hget(f"room:{room_code}", "pool_requested_at"))
    assert requested_at == pytest.approx(time.time(), abs=5)


def test_interrupted_create_is_still_reaped(room_service, redis_client, filters, monkeypatch):
    """A claimed code is indexed even if creation stops right after the claim."""
    _code_sequence(monkeypatch, ["AAAA"])

    def crash(**kwargs):
        raise redis.ConnectionError("connection reset")

    monkeypatch.setattr(room_service_module, "Participant", crash)

    with pytest.raises(redis.ConnectionError):
        room_service.create_room("Alice", filters)

    assert redis_client.zscore("rooms:created_at", "AAAA") is not None
    assert not room_service.room_exists("AAAA")

    assert reap_stale_rooms(redis_client, now=time.time() + 48 * 3600) == 1
    assert not redis_client.exists("room:AAAA")
    assert redis_client.zscore("rooms:created_at", "AAAA") is None
