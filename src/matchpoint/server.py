import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import fakeredis
import redis
from celery import Celery, Task
from flask import Flask
from flask_socketio import SocketIO
from prometheus_client import make_wsgi_app
from werkzeug.middleware.dispatcher import DispatcherMiddleware

if TYPE_CHECKING:
    from matchpoint.catalog import ContentCatalog
    from matchpoint.config import MatchPointConfig

log = logging.getLogger(__name__)

socketio = SocketIO(cors_allowed_origins="*")


def celery_init_app(app: Flask) -> Celery:
    class FlaskTask(Task):
        def __call__(self, *args: object, **kwargs: object) -> object:
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config["CELERY"])
    celery_app.set_default()
    app.extensions["celery"] = celery_app
    return celery_app


def redis_init_app(app: Flask, redis_url: str | None) -> redis.Redis:
    if redis_url is None:
        # Private in-process server: data lives as long as this app
        r = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    else:
        r = redis.Redis.from_url(redis_url, decode_responses=True)
    app.extensions["redis"] = r
    return r


def services_init_app(app: Flask, catalog: "ContentCatalog | None" = None) -> None:
    """Initialize service layer with Redis client and content catalog.

    Must be called after redis_init_app.

    Parameters
    ----------
    app : Flask
        Application whose extensions receive the services
    catalog : ContentCatalog | None
        Content source for pool generation. Defaults to TMDB.
    """
    from matchpoint.catalog import TMDBCatalog
    from matchpoint.services import PoolService, RoomService, VoteService

    config = app.extensions["config"]
    redis_client = app.extensions["redis"]

    if catalog is None:
        catalog = TMDBCatalog(
            api_key=config.tmdb_api_key,
            base_url=config.tmdb_base_url,
            watch_region=config.watch_region,
            timeout=config.catalog_timeout,
        )

    room_service = RoomService(
        redis_client,
        room_code_attempts=config.room_code_attempts,
        enforce_host=config.enforce_host,
        # A pool build fetches at most twice, each bounded by the catalog timeout
        pool_claim_timeout=config.catalog_timeout * 2 + 30,
    )
    app.extensions["catalog"] = catalog
    app.extensions["room_service"] = room_service
    app.extensions["vote_service"] = VoteService(redis_client)
    app.extensions["pool_service"] = PoolService(
        room_service,
        catalog,
        pool_size=config.pool_size,
        pages=config.pool_pages,
        max_start_page=config.pool_max_start_page,
        timeout=config.catalog_timeout,
    )


def create_app(
    config: "MatchPointConfig | None" = None,
    redis_url: str | None = None,
    catalog: "ContentCatalog | None" = None,
) -> Flask:
    """Create and configure Flask application.

    Parameters
    ----------
    config : MatchPointConfig | None
        Configuration object. If None, loads from environment via get_config().
    redis_url : str | None
        Override the configured Redis URL.
    catalog : ContentCatalog | None
        Override the content catalog (TMDB by default).

    Returns
    -------
    Flask
        Configured Flask application instance.
    """
    from matchpoint.config import get_config as _get_config

    if config is None:
        config = _get_config()

    if redis_url is not None:
        config.redis_url = redis_url

    log_level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    log.info(f"Logging configured at level: {config.log_level}")

    app = Flask(__name__)

    app.extensions["config"] = config
    app.config["SECRET_KEY"] = config.flask_secret_key

    from matchpoint.app import errors, rooms, tasks, utility  # noqa: F401

    app.register_blueprint(utility)
    app.register_blueprint(rooms)
    app.register_blueprint(errors)

    beat_schedule = {
        "reap-stale-rooms": {
            "task": "matchpoint.app.tasks.reap_stale_rooms_task",
            "schedule": timedelta(minutes=config.reaper_interval_minutes),
        },
    }

    # Without Redis there is no broker a separate worker could share,
    # so tasks run in-process.
    if config.redis_url is None:
        app.config.from_mapping(
            CELERY={
                "broker_url": "memory://",
                "task_always_eager": True,
                "task_ignore_result": True,
                "beat_schedule": beat_schedule,
            },
        )
    else:
        app.config.from_mapping(
            CELERY=dict(
                broker_url=config.redis_url,
                result_backend=config.redis_url,
                task_ignore_result=True,
                beat_schedule=beat_schedule,
            ),
        )

    app.config.from_prefixed_env()
    celery_init_app(app)
    redis_init_app(app, config.redis_url)
    services_init_app(app, catalog)

    # Redis message queue lets several server processes share socket rooms
    if config.redis_url:
        log.info(f"Configuring SocketIO with Redis message queue: {config.redis_url}")
        socketio.init_app(
            app,
            message_queue=config.redis_url,
            async_mode=config.socketio_async_mode,
            cors_allowed_origins="*",
        )
    else:
        log.info("Configuring SocketIO without message queue (single worker mode)")
        socketio.init_app(
            app, async_mode=config.socketio_async_mode, cors_allowed_origins="*"
        )

    app.wsgi_app = DispatcherMiddleware(app.wsgi_app, {
        '/metrics': make_wsgi_app()
    })
    log.info("Prometheus metrics endpoint enabled at /metrics")

    return app
