"""Content catalog used to build room pools.

The session core only needs content ids for a set of filters. ``TMDBCatalog``
fetches them from TMDB's discover endpoint; tests and alternative sources
implement ``ContentCatalog`` directly.
"""

import abc
import logging

import requests

from matchpoint.exceptions import CatalogError
from matchpoint.models import ContentId, ContentKind

log = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"


class ContentCatalog(abc.ABC):
    """Source of candidate content ids for a room."""

    @abc.abstractmethod
    def discover(
        self,
        content_kind: ContentKind,
        genre_ids: list[int],
        provider_ids: list[str],
        page: int,
    ) -> list[ContentId]:
        """Return one page of content ids matching the filters.

        Raises
        ------
        CatalogError
            If the catalog cannot be queried
        """


class TMDBCatalog(ContentCatalog):
    """TMDB ``/discover/{movie|tv}`` client.

    Genres and providers are OR-combined (pipe-separated), results sorted by
    popularity. Provider filters are scoped to ``watch_region``.

    Parameters
    ----------
    api_key : str | None
        TMDB API key. Requests fail with CatalogError if missing.
    base_url : str
        TMDB REST API root
    watch_region : str
        ISO 3166-1 region used together with provider filters
    timeout : float
        Per-request timeout in seconds
    session : requests.Session | None
        HTTP session, created if not given
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = TMDB_BASE_URL,
        watch_region: str = "IN",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.watch_region = watch_region
        self.timeout = timeout
        self.session = session or requests.Session()

    def discover(
        self,
        content_kind: ContentKind,
        genre_ids: list[int],
        provider_ids: list[str],
        page: int,
    ) -> list[ContentId]:
        if not self.api_key:
            raise CatalogError("TMDB_API_KEY is not configured")

        params: dict[str, str | int] = {
            "api_key": self.api_key,
            "sort_by": "popularity.desc",
            "page": page,
        }
        if genre_ids:
            params["with_genres"] = "|".join(str(genre_id) for genre_id in genre_ids)
        if provider_ids:
            params["with_watch_providers"] = "|".join(provider_ids)
            params["watch_region"] = self.watch_region

        url = f"{self.base_url}/discover/{ContentKind(content_kind).value}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            log.warning(f"TMDB discover failed for page {page}: {e}")
            raise CatalogError(f"TMDB request failed: {e}") from e
        except ValueError as e:
            raise CatalogError(f"TMDB returned invalid JSON: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise CatalogError("TMDB response has no 'results' list")

        return [
            ContentId(int(item["id"]))
            for item in results
            if isinstance(item, dict) and item.get("id") is not None
        ]
