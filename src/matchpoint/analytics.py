"""Prometheus metrics for MatchPoint analytics.

This module provides Prometheus metrics for monitoring session activity.
"""

from prometheus_client import Counter

rooms_created = Counter(
    'matchpoint_rooms_created',
    'Number of rooms created',
    ['content_kind']  # Labels: 'movie' or 'tv'
)

participants_joined = Counter(
    'matchpoint_participants_joined',
    'Number of participants that joined an existing room'
)

votes_submitted = Counter(
    'matchpoint_votes_submitted',
    'Number of recorded votes (duplicates excluded)',
    ['value']  # Labels: 'like' or 'dislike'
)

matches_found = Counter(
    'matchpoint_matches_found',
    'Number of content items that reached unanimous likes'
)

pool_generations = Counter(
    'matchpoint_pool_generations',
    'Number of pool generation attempts',
    ['outcome']  # Labels: 'success' or 'failure'
)

rooms_reaped = Counter(
    'matchpoint_rooms_reaped',
    'Number of stale rooms deleted by the reaper'
)
