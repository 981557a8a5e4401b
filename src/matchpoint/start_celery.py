"""Utils for running the Celery worker that executes the periodic room sweep."""

import os
import platform
import subprocess
import typing as t

if t.TYPE_CHECKING:
    from matchpoint.config import MatchPointConfig


def run_celery_worker(config: "MatchPointConfig") -> subprocess.Popen:
    """Run a celery worker with an embedded beat scheduler.

    Parameters
    ----------
    config : MatchPointConfig
        Configuration object. All values are passed to the worker as
        environment variables so it builds the same app as the server.

    Returns
    -------
    subprocess.Popen
        Running celery worker process.
    """
    my_env = os.environ.copy()

    if platform.system() == "Darwin" and platform.processor() == "arm":
        # fix celery worker issue on apple silicon
        my_env["OBJC_DISABLE_INITIALIZE_FORK_SAFETY"] = "YES"

    if config.redis_url is not None:
        my_env["MATCHPOINT_REDIS_URL"] = config.redis_url
    my_env["MATCHPOINT_SERVER_HOST"] = config.server_host
    my_env["MATCHPOINT_SERVER_PORT"] = str(config.server_port)
    my_env["MATCHPOINT_LOG_LEVEL"] = config.log_level
    my_env["MATCHPOINT_ROOM_MAX_AGE_HOURS"] = str(config.room_max_age_hours)
    my_env["MATCHPOINT_REAPER_INTERVAL_MINUTES"] = str(config.reaper_interval_minutes)
    my_env["MATCHPOINT_ENFORCE_HOST"] = "true" if config.enforce_host else "false"
    my_env["FLASK_SECRET_KEY"] = config.flask_secret_key

    worker = subprocess.Popen(
        # eventlet worker - use matchpoint_cli.celery for proper monkey patching
        [
            "celery",
            "-A",
            "matchpoint_cli.celery",
            "worker",
            "--beat",
            "--loglevel=info",
            "--pool=eventlet",
        ],
        env=my_env,
    )
    return worker
