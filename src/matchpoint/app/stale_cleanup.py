"""Deletion of abandoned rooms.

Rooms are never closed explicitly, so every room older than a cutoff is
removed together with all of its child data. Child keys are deleted before
the room document: an interrupted run leaves at worst a room without
children, which the next run still finds through the index.
"""

import logging
import time
import typing as t
from datetime import timedelta

from matchpoint.analytics import rooms_reaped

from .redis_keys import GlobalKeys, RoomKeys

log = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)


def find_stale_rooms(
    redis_client: t.Any, max_age: timedelta = DEFAULT_MAX_AGE, now: float | None = None
) -> list[str]:
    """Return codes of rooms created more than ``max_age`` before ``now``."""
    now = time.time() if now is None else now
    cutoff = now - max_age.total_seconds()
    # "(" makes the bound exclusive: a room exactly max_age old is kept
    return list(
        redis_client.zrangebyscore(GlobalKeys.ROOMS_BY_CREATED_AT, "-inf", f"({cutoff}")
    )


def delete_room(redis_client: t.Any, room_code: str) -> None:
    """Delete one room, children first, and drop it from the index."""
    keys = RoomKeys(room_code)
    children = [
        keys.likes(content_id)
        for content_id in redis_client.smembers(keys.liked_content())
    ]
    children.extend([keys.participants(), keys.votes(), keys.matches(), keys.pool()])

    redis_client.delete(*children)
    # Index of the likes sets goes last so an interrupted run can still find them
    redis_client.delete(keys.liked_content())
    redis_client.delete(keys.room())
    redis_client.zrem(GlobalKeys.ROOMS_BY_CREATED_AT, room_code)


def reap_stale_rooms(
    redis_client: t.Any, max_age: timedelta = DEFAULT_MAX_AGE, now: float | None = None
) -> int:
    """Delete every room older than ``max_age``.

    Parameters
    ----------
    redis_client
        Redis client
    max_age : timedelta
        Rooms created longer ago than this are deleted
    now : float | None
        Reference timestamp, defaults to the current time

    Returns
    -------
    int
        Number of rooms deleted
    """
    stale = find_stale_rooms(redis_client, max_age, now)
    if not stale:
        log.debug("No stale rooms to reap")
        return 0

    for room_code in stale:
        delete_room(redis_client, room_code)
        log.debug(f"Reaped room '{room_code}'")

    rooms_reaped.inc(len(stale))
    log.info(f"Reaped {len(stale)} stale room(s) older than {max_age}")
    return len(stale)
