"""Content pool generation for rooms.

Moves a room out of ``waiting``: either to ``voting`` with a shuffled pool,
or to ``failed`` when the catalog errors, times out or finds nothing.
"""

import itertools
import logging
import random
from concurrent.futures import ThreadPoolExecutor, wait

from matchpoint.analytics import pool_generations
from matchpoint.catalog import ContentCatalog
from matchpoint.exceptions import (
    CatalogError,
    InvalidTransitionError,
    PoolGenerationError,
)
from matchpoint.models import ContentId, RoomFilters
from matchpoint.room_codes import normalize_room_code
from matchpoint.services.room_service import RoomService

log = logging.getLogger(__name__)


def dedupe(ids: list[ContentId]) -> list[ContentId]:
    """Drop repeated ids, keeping the first occurrence."""
    return list(dict.fromkeys(ids))


class PoolService:
    """Builds a room's candidate pool from a content catalog.

    Parameters
    ----------
    room_service : RoomService
        Used for the status transitions of the room
    catalog : ContentCatalog
        External source of content ids
    pool_size : int
        Maximum pool length
    pages : int
        Consecutive catalog pages fetched per pool
    max_start_page : int
        The first page is drawn uniformly from ``1..max_start_page``
    timeout : float
        Deadline in seconds for fetching all pages
    rng : random.Random | None
        Random source for the start page and the shuffle
    """

    def __init__(
        self,
        room_service: RoomService,
        catalog: ContentCatalog,
        pool_size: int = 60,
        pages: int = 3,
        max_start_page: int = 20,
        timeout: float = 10.0,
        rng: random.Random | None = None,
    ):
        self.room_service = room_service
        self.catalog = catalog
        self.pool_size = pool_size
        self.pages = pages
        self.max_start_page = max_start_page
        self.timeout = timeout
        self.rng = rng or random.SystemRandom()

    def _fetch_pages(self, filters: RoomFilters, start_page: int) -> list[ContentId]:
        """Fetch ``self.pages`` pages concurrently and merge them in page order.

        Raises
        ------
        CatalogError
            If a page fails or the pages are not fetched within ``self.timeout``
        """
        pages = range(start_page, start_page + self.pages)
        executor = ThreadPoolExecutor(max_workers=self.pages)
        try:
            futures = [
                executor.submit(
                    self.catalog.discover,
                    filters.content_kind,
                    filters.genre_ids,
                    filters.provider_ids,
                    page,
                )
                for page in pages
            ]
            _, not_done = wait(futures, timeout=self.timeout)
            if not_done:
                raise CatalogError(
                    f"Content catalog did not respond within {self.timeout}s"
                )
            batches = [future.result() for future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return list(itertools.chain.from_iterable(batches))

    def build_pool(self, filters: RoomFilters) -> list[ContentId]:
        """Return a deduplicated, shuffled pool of at most ``pool_size`` ids.

        Starts at a random page so repeated sessions with the same filters
        see different content. If that page range is past the end of the
        results, the first pages are used instead.
        """
        start_page = self.rng.randint(1, self.max_start_page)
        ids = dedupe(self._fetch_pages(filters, start_page))
        if not ids and start_page > 1:
            log.debug(f"No results from page {start_page}, retrying from page 1")
            ids = dedupe(self._fetch_pages(filters, 1))

        # random.shuffle is an unbiased Fisher-Yates permutation
        self.rng.shuffle(ids)
        return ids[: self.pool_size]

    def generate_pool(
        self, room_code: str, identity_token: str | None = None
    ) -> list[ContentId]:
        """Materialize the room's pool and start voting.

        Pool generation is one-shot: on failure the room is marked ``failed``
        (visible to every participant through the read model) and the error
        is raised to the caller as well.

        Raises
        ------
        RoomNotFoundError
            If the room does not exist
        InvalidTransitionError
            If the room is not waiting
        PoolAlreadyRequestedError
            If pool generation is already running or done
        NotHostError
            If host enforcement is enabled and the token is not the host's
        PoolGenerationError
            If the catalog failed, returned no content, or the pool could not
            be stored
        """
        room_code = normalize_room_code(room_code)
        self.room_service.check_host(room_code, identity_token)
        filters = self.room_service.begin_pool_generation(room_code)

        try:
            pool = self.build_pool(filters)
        except Exception as e:
            log.exception(f"Pool generation for room '{room_code}' failed")
            reason = f"Content catalog error: {e}"
            self._fail(room_code, reason)
            raise PoolGenerationError(reason) from e

        if not pool:
            reason = "No content found for the selected filters"
            self._fail(room_code, reason)
            raise PoolGenerationError(reason)

        try:
            self.room_service.start_voting(room_code, pool)
        except InvalidTransitionError:
            # Another request took over the claim and already moved the room
            raise
        except Exception as e:
            log.exception(f"Could not start voting in room '{room_code}'")
            reason = f"Could not start voting: {e}"
            self._fail(room_code, reason)
            raise PoolGenerationError(reason) from e
        pool_generations.labels(outcome="success").inc()
        return pool

    def _fail(self, room_code: str, reason: str) -> None:
        pool_generations.labels(outcome="failure").inc()
        self.room_service.mark_failed(room_code, reason)
