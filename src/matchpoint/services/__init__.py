"""Service layer for MatchPoint business logic.

This package contains service classes that encapsulate domain logic
and Redis operations, keeping the route handlers thin.
"""

from .pool_service import PoolService
from .room_service import RoomService
from .vote_service import VoteService

__all__ = ["PoolService", "RoomService", "VoteService"]
