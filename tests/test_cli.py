"""Tests for the MatchPoint CLI."""

import json
import time
from unittest.mock import MagicMock

import pytest
import redis
from typer.testing import CliRunner

from matchpoint.cli import app
from matchpoint.models import RoomFilters
from matchpoint.services import RoomService

runner = CliRunner()


@pytest.fixture
def cli_redis(monkeypatch, redis_client):
    """Route the CLI's Redis connection to the in-memory test server."""
    from matchpoint import config as config_module

    monkeypatch.delenv("MATCHPOINT_REDIS_URL", raising=False)
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(
        redis.Redis, "from_url", classmethod(lambda cls, url, **kwargs: redis_client)
    )
    return redis_client


def test_reap_requires_redis(monkeypatch):
    from matchpoint import config as config_module

    monkeypatch.delenv("MATCHPOINT_REDIS_URL", raising=False)
    monkeypatch.setattr(config_module, "_config", None)

    result = runner.invoke(app, ["reap"])

    assert result.exit_code == 1
    assert "Redis URL is required" in result.output


def test_reap_deletes_old_rooms(cli_redis):
    room_code, _ = RoomService(cli_redis).create_room("Alice", RoomFilters())
    cli_redis.zadd("rooms:created_at", {room_code: time.time() - 5 * 3600})

    result = runner.invoke(
        app, ["reap", "--max-age-hours", "4", "--redis-url", "redis://localhost:6379"]
    )

    assert result.exit_code == 0
    assert "Deleted 1 room(s)" in result.output
    assert not RoomService(cli_redis).room_exists(room_code)


def test_reap_rejects_non_positive_age(cli_redis):
    result = runner.invoke(
        app, ["reap", "--max-age-hours", "0", "--redis-url", "redis://localhost:6379"]
    )
    assert result.exit_code == 1


def test_show_prints_room_state(cli_redis):
    room_code, _ = RoomService(cli_redis).create_room("Alice", RoomFilters())

    result = runner.invoke(
        app, ["show", room_code.lower(), "--redis-url", "redis://localhost:6379"]
    )

    assert result.exit_code == 0
    state = json.loads(result.stdout)
    assert state["roomCode"] == room_code
    assert state["status"] == "waiting"


def test_show_unknown_room(cli_redis):
    result = runner.invoke(app, ["show", "ZZZZ", "--redis-url", "redis://localhost:6379"])
    assert result.exit_code == 1
    assert "not found" in result.output


@pytest.fixture
def serve_mocks(monkeypatch):
    """Stub out the app, socket server and worker so `serve` returns at once."""
    from matchpoint import cli as cli_module
    from matchpoint import config as config_module

    monkeypatch.delenv("MATCHPOINT_REDIS_URL", raising=False)
    monkeypatch.delenv("MATCHPOINT_CELERY_ENABLED", raising=False)
    monkeypatch.setattr(config_module, "_config", None)

    mocks = {
        "create_app": MagicMock(),
        "socketio": MagicMock(),
        "run_celery_worker": MagicMock(),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(cli_module, name, mock)
    return mocks


def test_serve_honors_celery_disabled_env(serve_mocks, monkeypatch):
    monkeypatch.setenv("MATCHPOINT_CELERY_ENABLED", "false")

    result = runner.invoke(app, ["serve", "--redis-url", "redis://localhost:6379"])

    assert result.exit_code == 0, result.output
    config = serve_mocks["create_app"].call_args.kwargs["config"]
    assert config.celery_enabled is False
    serve_mocks["run_celery_worker"].assert_not_called()
    serve_mocks["socketio"].start_background_task.assert_not_called()
    serve_mocks["socketio"].run.assert_called_once()


def test_serve_celery_flag_overrides_env(serve_mocks, monkeypatch):
    monkeypatch.setenv("MATCHPOINT_CELERY_ENABLED", "false")

    result = runner.invoke(
        app, ["serve", "--celery", "--redis-url", "redis://localhost:6379"]
    )

    assert result.exit_code == 0, result.output
    serve_mocks["run_celery_worker"].assert_called_once()
    serve_mocks["run_celery_worker"].return_value.terminate.assert_called_once()


def test_serve_no_celery_skips_in_process_sweep(serve_mocks):
    result = runner.invoke(app, ["serve", "--no-celery"])

    assert result.exit_code == 0, result.output
    serve_mocks["run_celery_worker"].assert_not_called()
    serve_mocks["socketio"].start_background_task.assert_not_called()


def test_serve_without_redis_sweeps_in_process(serve_mocks):
    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 0, result.output
    serve_mocks["run_celery_worker"].assert_not_called()
    serve_mocks["socketio"].start_background_task.assert_called_once()
