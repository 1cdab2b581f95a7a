"""Catalog fetching: every movie across every library, in parallel."""

import structlog

from ..models import Library, MovieRecord
from .errors import RetrievalError
from .jellyfin import JellyfinClient
from .retrieval import DEFAULT_PAGE_SIZE, fetch_all_pages, run_bounded

MAX_CONCURRENT_LIBRARY_FETCHES = 5


class CatalogFetcher:
    """Retrieves the full movie catalog visible to the configured account.

    Libraries are fetched concurrently, at most ``max_concurrent`` at a time.
    The catalog is all or nothing: if any library fails the whole fetch
    fails and no movies are returned.
    """

    def __init__(
        self,
        client: JellyfinClient,
        account_id: str | None = None,
        max_concurrent: int = MAX_CONCURRENT_LIBRARY_FETCHES,
        page_size: int = DEFAULT_PAGE_SIZE,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the catalog fetcher.

        Args:
            client: Jellyfin API client
            account_id: Account whose libraries are listed (defaults to the client's admin user)
            max_concurrent: Maximum number of libraries fetched at the same time
            page_size: Items requested per page
            logger: Logger to use (defaults to this module's logger)
        """
        self.client = client
        self.account_id = account_id or client.admin_user_id
        self.max_concurrent = max_concurrent
        self.page_size = page_size
        self.log = logger or structlog.stdlib.get_logger(__name__)

    async def fetch_all_movies(self) -> list[MovieRecord]:
        """Fetch every movie from every library.

        Returns:
            All movies, with empty play states

        Raises:
            RetrievalError: If listing libraries or fetching any library fails
        """
        self.log.info("Fetching all movies", account_id=self.account_id)

        try:
            libraries = await self.client.list_libraries(self.account_id)
        except RetrievalError as e:
            self.log.error("Failed to list libraries", account_id=self.account_id, error=str(e))
            raise
        self.log.info("Libraries found", count=len(libraries))

        try:
            per_library = await run_bounded(libraries, self._fetch_library, self.max_concurrent)
        except RetrievalError as e:
            self.log.error("Catalog fetch failed", target=e.target, error=e.message)
            raise

        movies = [movie for library_movies in per_library for movie in library_movies]
        self.log.info("Total movies fetched", count=len(movies), libraries=len(libraries))
        return movies

    async def _fetch_library(self, library: Library) -> list[MovieRecord]:
        """Page through one library's movies."""
        self.log.debug("Fetching movies from library", library=library.name, library_id=library.id)

        async def fetch_page(start_index: int, limit: int):
            return await self.client.list_movies(library.id, start_index, limit)

        try:
            movies = await fetch_all_pages(fetch_page, self.page_size)
        except RetrievalError as e:
            raise RetrievalError(
                f"Failed to get movies from library '{library.name}'",
                target=f"library '{library.name}' ({library.id})",
                original_error=e.original_error or e,
                url=e.url,
                status_code=e.status_code,
            ) from e

        self.log.info("Library fetched", library=library.name, movies=len(movies))
        return movies
