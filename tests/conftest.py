import random
import time

import fakeredis
import pytest

from matchpoint.catalog import ContentCatalog
from matchpoint.config import MatchPointConfig
from matchpoint.models import ContentId, ContentKind, RoomFilters
from matchpoint.server import create_app, socketio
from matchpoint.services import PoolService, RoomService, VoteService


class FakeCatalog(ContentCatalog):
    """In-memory catalog.

    Page ``p`` holds ids ``p * 100 .. p * 100 + per_page - 1``; pages after
    ``last_page`` are empty, like TMDB past the end of the results.
    """

    def __init__(
        self,
        per_page: int = 20,
        last_page: int = 500,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.per_page = per_page
        self.last_page = last_page
        self.error = error
        self.delay = delay
        self.calls: list[int] = []

    def discover(self, content_kind, genre_ids, provider_ids, page):
        self.calls.append(page)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if page > self.last_page:
            return []
        return [ContentId(page * 100 + i) for i in range(self.per_page)]


@pytest.fixture
def redis_client():
    """Isolated in-memory Redis for a single test."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def filters() -> RoomFilters:
    return RoomFilters(content_kind=ContentKind.MOVIE, genre_ids=[28], provider_ids=["8"])


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def room_service(redis_client) -> RoomService:
    return RoomService(redis_client)


@pytest.fixture
def vote_service(redis_client) -> VoteService:
    return VoteService(redis_client)


@pytest.fixture
def pool_service(room_service, catalog) -> PoolService:
    return PoolService(room_service, catalog, timeout=2.0, rng=random.Random(42))


@pytest.fixture
def voting_room(room_service, pool_service, filters):
    """A room with host and two guests that is already voting.

    Returns
    -------
    tuple[str, list[str]]
        Room code and identity tokens (host first)
    """
    room_code, host_token = room_service.create_room("Alice", filters)
    bob, _ = room_service.join_room(room_code, "Bob")
    carol, _ = room_service.join_room(room_code, "Carol")
    pool_service.generate_pool(room_code)
    return room_code, [host_token, bob, carol]


@pytest.fixture
def config(monkeypatch) -> MatchPointConfig:
    for key in ("MATCHPOINT_REDIS_URL", "MATCHPOINT_ENFORCE_HOST", "MATCHPOINT_SERVER_URL"):
        monkeypatch.delenv(key, raising=False)
    config = MatchPointConfig()
    config.socketio_async_mode = "threading"
    config.celery_enabled = False
    return config


@pytest.fixture
def app(config, catalog):
    app = create_app(config=config, catalog=catalog)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socket_client(app, client):
    sio_client = socketio.test_client(app, flask_test_client=client)
    yield sio_client
    if sio_client.is_connected():
        sio_client.disconnect()
