"""Centralized configuration management for MatchPoint.

Reads from environment variables with sensible defaults.
All components (CLI, server, Celery) use this module for configuration.

Environment variables follow the pattern MATCHPOINT_* for application settings.
``FLASK_SECRET_KEY`` and ``TMDB_API_KEY`` keep their conventional names.

Example:
    >>> from matchpoint.config import get_config
    >>> config = get_config()
    >>> print(config.pool_size)
    60
"""

import logging
import os
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    """Parse boolean from environment variable string."""
    return value.lower() in ("true", "1", "yes", "on")


def _getenv_int(key: str, default: int) -> int:
    """Get integer from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"Invalid integer value for {key}={value}, using default {default}")
        return default


def _getenv_float(key: str, default: float) -> float:
    """Get float from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        log.warning(f"Invalid float value for {key}={value}, using default {default}")
        return default


@dataclass
class MatchPointConfig:
    """MatchPoint configuration loaded from environment variables.

    All fields have defaults that work for local development.
    Production deployments should override via environment variables.

    Attributes
    ----------
    redis_url : str | None
        Redis connection URL. None means in-process fakeredis (single process only).
    server_host : str
        Server bind host address.
    server_port : int
        Server bind port number.
    server_url : str | None
        Full server URL. Auto-generated from host/port if None.
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    flask_secret_key : str
        Flask session secret key. MUST change in production!
    tmdb_api_key : str | None
        TMDB API key used by the content catalog.
    tmdb_base_url : str
        TMDB REST API root.
    watch_region : str
        Region used together with provider filters.
    catalog_timeout : float
        Seconds allowed for fetching the candidate pool from the catalog.
    pool_size : int
        Maximum number of content ids in a room's pool.
    pool_pages : int
        Number of consecutive catalog pages fetched per pool.
    pool_max_start_page : int
        Upper bound of the random first page requested from the catalog.
    room_code_attempts : int
        Room code allocation attempts before giving up.
    room_max_age_hours : float
        Age after which the reaper deletes a room.
    reaper_interval_minutes : int
        Celery beat interval of the stale room sweep.
    enforce_host : bool
        Require the host identity token for pool generation and finishing.
    celery_enabled : bool
        Enable Celery background task processing.
    socketio_async_mode : str | None
        Flask-SocketIO async mode. None lets Flask-SocketIO pick.
    """

    # Core server configuration
    redis_url: str | None = field(
        default_factory=lambda: os.getenv("MATCHPOINT_REDIS_URL")
    )
    server_host: str = field(
        default_factory=lambda: os.getenv("MATCHPOINT_SERVER_HOST", "localhost")
    )
    server_port: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_SERVER_PORT", 5000)
    )
    server_url: str | None = field(
        default_factory=lambda: os.getenv("MATCHPOINT_SERVER_URL")
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("MATCHPOINT_LOG_LEVEL", "WARNING")
    )

    # Security
    flask_secret_key: str = field(
        default_factory=lambda: os.getenv(
            "FLASK_SECRET_KEY", "dev-secret-key-change-in-production"
        )
    )
    enforce_host: bool = field(
        default_factory=lambda: _parse_bool(
            os.getenv("MATCHPOINT_ENFORCE_HOST", "false")
        )
    )

    # Content catalog
    tmdb_api_key: str | None = field(default_factory=lambda: os.getenv("TMDB_API_KEY"))
    tmdb_base_url: str = field(
        default_factory=lambda: os.getenv(
            "MATCHPOINT_TMDB_BASE_URL", "https://api.themoviedb.org/3"
        )
    )
    watch_region: str = field(
        default_factory=lambda: os.getenv("MATCHPOINT_WATCH_REGION", "IN")
    )
    catalog_timeout: float = field(
        default_factory=lambda: _getenv_float("MATCHPOINT_CATALOG_TIMEOUT", 10.0)
    )

    # Sessions
    pool_size: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_POOL_SIZE", 60)
    )
    pool_pages: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_POOL_PAGES", 3)
    )
    pool_max_start_page: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_POOL_MAX_START_PAGE", 20)
    )
    room_code_attempts: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_ROOM_CODE_ATTEMPTS", 10)
    )

    # Cleanup
    room_max_age_hours: float = field(
        default_factory=lambda: _getenv_float("MATCHPOINT_ROOM_MAX_AGE_HOURS", 24.0)
    )
    reaper_interval_minutes: int = field(
        default_factory=lambda: _getenv_int("MATCHPOINT_REAPER_INTERVAL_MINUTES", 60)
    )

    # Optional features
    celery_enabled: bool = field(
        default_factory=lambda: _parse_bool(
            os.getenv("MATCHPOINT_CELERY_ENABLED", "true")
        )
    )
    socketio_async_mode: str | None = field(
        default_factory=lambda: os.getenv("MATCHPOINT_SOCKETIO_ASYNC_MODE")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()
        self._log_config()

    def _validate(self):
        """Validate configuration values.

        Raises
        ------
        ValueError
            If configuration is invalid.
        """
        if not 1 <= self.server_port <= 65535:
            raise ValueError(
                f"Invalid port number: {self.server_port}. Must be between 1 and 65535"
            )

        if self.pool_size < 1:
            raise ValueError(f"Invalid pool size: {self.pool_size}. Must be at least 1")

        if self.pool_pages < 1:
            raise ValueError(
                f"Invalid pool pages: {self.pool_pages}. Must be at least 1"
            )

        if self.pool_max_start_page < 1:
            raise ValueError(
                f"Invalid pool start page bound: {self.pool_max_start_page}. "
                "Must be at least 1"
            )

        if self.room_code_attempts < 1:
            raise ValueError(
                f"Invalid room code attempts: {self.room_code_attempts}. "
                "Must be at least 1"
            )

        if self.catalog_timeout <= 0:
            raise ValueError(
                f"Invalid catalog timeout: {self.catalog_timeout}s. Must be positive"
            )

        if self.room_max_age_hours <= 0:
            raise ValueError(
                f"Invalid room max age: {self.room_max_age_hours}h. Must be positive"
            )

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            log.warning(
                f"Invalid log level '{self.log_level}', using WARNING. "
                f"Valid levels: {', '.join(valid_levels)}"
            )
            self.log_level = "WARNING"

        # Auto-generate server_url unless it came from the environment
        if os.getenv("MATCHPOINT_SERVER_URL") is None:
            url_host = self.server_host
            if url_host == "0.0.0.0":
                url_host = "localhost"
            self.server_url = f"http://{url_host}:{self.server_port}"

    def _log_config(self):
        """Log configuration for debugging (excludes sensitive data)."""
        log.info("=" * 80)
        log.info("MatchPoint Configuration:")
        log.info(f"  Redis URL: {self.redis_url or 'None (in-memory mode)'}")
        log.info(f"  Server: {self.server_url}")
        log.info(f"  Log Level: {self.log_level}")
        log.info(f"  TMDB API Key: {'Set' if self.tmdb_api_key else 'Not set'}")
        log.info(f"  Watch Region: {self.watch_region}")
        log.info(
            f"  Pool: {self.pool_size} items from {self.pool_pages} page(s), "
            f"timeout {self.catalog_timeout}s"
        )
        log.info(f"  Room Max Age: {self.room_max_age_hours}h")
        log.info(f"  Host Enforcement: {'Enabled' if self.enforce_host else 'Disabled'}")
        log.info(f"  Celery: {'Enabled' if self.celery_enabled else 'Disabled'}")
        log.info("=" * 80)


# Global config instance (singleton pattern)
_config: MatchPointConfig | None = None


def get_config() -> MatchPointConfig:
    """Get or create the global configuration instance.

    Returns
    -------
    MatchPointConfig
        Global configuration instance loaded from environment variables.
    """
    global _config
    if _config is None:
        _config = MatchPointConfig()
    return _config


def reload_config() -> MatchPointConfig:
    """Reload configuration from environment.

    Useful for testing or when environment variables change at runtime.

    Returns
    -------
    MatchPointConfig
        Newly created configuration instance.
    """
    global _config
    _config = MatchPointConfig()
    return _config
