import json
import subprocess
from datetime import timedelta

import redis
import typer

from matchpoint import __version__
from matchpoint.app.stale_cleanup import reap_stale_rooms
from matchpoint.app.tasks import reap_stale_rooms_task
from matchpoint.config import get_config
from matchpoint.exceptions import RoomNotFoundError
from matchpoint.server import create_app, socketio
from matchpoint.services import RoomService
from matchpoint.start_celery import run_celery_worker

app = typer.Typer(help="MatchPoint group swipe session server.")


def _reap_periodically(interval_seconds: float) -> None:
    """Run the stale room sweep in-process (in-memory mode has no worker)."""
    while True:
        socketio.sleep(interval_seconds)
        reap_stale_rooms_task.delay()


def _redis_client(redis_url: str | None) -> redis.Redis:
    if redis_url is None:
        typer.echo(
            "✗ Error: a Redis URL is required. In-memory rooms only exist "
            "inside the running server.",
            err=True,
        )
        raise typer.Exit(1)
    return redis.Redis.from_url(redis_url, decode_responses=True)


@app.command()
def serve(
    port: int = typer.Option(5000, envvar="MATCHPOINT_SERVER_PORT"),
    host: str = typer.Option(
        "localhost",
        envvar="MATCHPOINT_SERVER_HOST",
        help="Server hostname or IP address to bind to.",
    ),
    redis_url: str | None = typer.Option(
        None,
        envvar="MATCHPOINT_REDIS_URL",
        help="Redis server URL (e.g., `redis://localhost:6379`). If not provided, an in-memory store will be used.",
    ),
    celery: bool | None = typer.Option(
        None,
        "--celery/--no-celery",
        help="Run the periodic room sweep. Defaults to MATCHPOINT_CELERY_ENABLED.",
        show_default=False,
    ),
    debug: bool = False,
):
    """Run the MatchPoint server."""
    config = get_config()

    if redis_url is not None:
        config.redis_url = redis_url
    config.server_host = host
    config.server_port = port
    if celery is not None:
        config.celery_enabled = celery

    # Revalidate after overrides
    config._validate()

    flask_app = create_app(config=config)

    worker = None
    if config.celery_enabled and config.redis_url is not None:
        worker = run_celery_worker(config)
    elif config.celery_enabled:
        typer.echo("No Redis configured: running the room sweep inside the server.")
        socketio.start_background_task(
            _reap_periodically, config.reaper_interval_minutes * 60
        )

    typer.echo(f"✓ MatchPoint {__version__} listening on {config.server_url}")

    try:
        socketio.run(flask_app, debug=debug, host=config.server_host, port=config.server_port)
    finally:
        if worker is not None:
            worker.terminate()
            try:
                worker.wait(timeout=5)
            except subprocess.TimeoutExpired:
                typer.echo(
                    "Celery worker did not shut down gracefully, forcing termination..."
                )
                worker.kill()
                worker.wait()
            typer.echo("Celery worker closed.")
        typer.echo("Server stopped.")


@app.command()
def reap(
    max_age_hours: float | None = typer.Option(
        None, help="Delete rooms older than this. Defaults to MATCHPOINT_ROOM_MAX_AGE_HOURS."
    ),
    redis_url: str | None = typer.Option(None, envvar="MATCHPOINT_REDIS_URL"),
):
    """Delete stale rooms now."""
    config = get_config()
    if max_age_hours is None:
        max_age_hours = config.room_max_age_hours
    if max_age_hours <= 0:
        typer.echo("✗ Error: --max-age-hours must be positive", err=True)
        raise typer.Exit(1)

    r = _redis_client(redis_url or config.redis_url)
    deleted = reap_stale_rooms(r, max_age=timedelta(hours=max_age_hours))
    typer.echo(f"✓ Deleted {deleted} room(s) older than {max_age_hours}h")


@app.command()
def show(
    room_code: str = typer.Argument(..., help="Room code, case-insensitive."),
    redis_url: str | None = typer.Option(None, envvar="MATCHPOINT_REDIS_URL"),
):
    """Print the current state of a room as JSON."""
    config = get_config()
    room_service = RoomService(_redis_client(redis_url or config.redis_url))
    try:
        state = room_service.get_room_state(room_code)
    except RoomNotFoundError as e:
        typer.echo(f"✗ Error: {e.message}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(state.to_wire(), indent=2))
