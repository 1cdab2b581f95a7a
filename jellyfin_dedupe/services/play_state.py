"""Play-state aggregation: which movies each user has played."""

import asyncio

import structlog

from ..models import UserRecord
from .errors import RetrievalError
from .jellyfin import JellyfinClient
from .retrieval import DEFAULT_PAGE_SIZE, fetch_all_pages, run_bounded

MAX_CONCURRENT_USER_FETCHES = 5


class PlayStateAggregator:
    """Builds a ``user ID -> played movie IDs`` mapping for a list of users.

    Users are fetched concurrently, at most ``max_concurrent`` at a time, in a
    pool independent of the catalog fetch. A single failed user aborts the
    whole aggregation: a missing user would make every movie look unplayed
    for them.
    """

    def __init__(
        self,
        client: JellyfinClient,
        max_concurrent: int = MAX_CONCURRENT_USER_FETCHES,
        page_size: int = DEFAULT_PAGE_SIZE,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            client: Jellyfin API client
            max_concurrent: Maximum number of users fetched at the same time
            page_size: Items requested per page
            logger: Logger to use (defaults to this module's logger)
        """
        self.client = client
        self.max_concurrent = max_concurrent
        self.page_size = page_size
        self.log = logger or structlog.stdlib.get_logger(__name__)

    async def fetch_play_states(self, users: list[UserRecord]) -> dict[str, set[str]]:
        """Fetch the set of played movie IDs for every user.

        Args:
            users: Users to fetch, typically the full user list

        Returns:
            Mapping of user ID to the IDs of the movies that user has played

        Raises:
            RetrievalError: If fetching any user's played movies fails
        """
        self.log.info("Fetching played movies", users=len(users), max_concurrent=self.max_concurrent)

        seen_by_user: dict[str, set[str]] = {}
        lock = asyncio.Lock()

        async def fetch_user(user: UserRecord) -> None:
            seen = await self._fetch_user(user)
            async with lock:
                seen_by_user[user.id] = seen

        try:
            await run_bounded(users, fetch_user, self.max_concurrent)
        except RetrievalError as e:
            self.log.error("Play state aggregation failed", target=e.target, error=e.message)
            raise

        self.log.info("Played movies fetched for all users", users=len(seen_by_user))
        return seen_by_user

    async def _fetch_user(self, user: UserRecord) -> set[str]:
        """Page through the movies one user has played."""
        self.log.debug("Fetching played movies for user", user=user.name, user_id=user.id)

        async def fetch_page(start_index: int, limit: int):
            return await self.client.list_played_movies(user.id, start_index, limit)

        try:
            movies = await fetch_all_pages(fetch_page, self.page_size)
        except RetrievalError as e:
            raise RetrievalError(
                f"Failed to get played movies for user '{user.name}'",
                target=f"user '{user.name}' ({user.id})",
                original_error=e.original_error or e,
                url=e.url,
                status_code=e.status_code,
            ) from e

        seen = {movie.id for movie in movies}
        self.log.info("Played movies fetched", user=user.name, played=len(seen))
        return seen
