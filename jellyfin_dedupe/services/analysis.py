"""Analysis orchestration: fetch, reconcile, detect, and act on verdicts."""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

import structlog

from ..models import DuplicateVerdict, MovieRecord, PlayState, PlayStatusDiscrepancy, UserRecord
from .catalog import CatalogFetcher
from .duplicates import DuplicateEngine, split_verdicts
from .errors import RetrievalError, ValidationError
from .jellyfin import JellyfinClient
from .play_state import MAX_CONCURRENT_USER_FETCHES, PlayStateAggregator
from .reconciler import reconcile
from .retrieval import run_bounded

MIN_ITEM_ID_LENGTH = 32
MAX_ITEM_ID_LENGTH = 36


def validate_item_id(item_id: str, field_name: str = "movie_id") -> str:
    """Check that an ID looks like a Jellyfin GUID (with or without dashes).

    Raises:
        ValidationError: If the ID is empty or has the wrong length
    """
    if not item_id:
        raise ValidationError(f"{field_name} must not be empty", field=field_name, value=item_id)
    if not MIN_ITEM_ID_LENGTH <= len(item_id) <= MAX_ITEM_ID_LENGTH:
        raise ValidationError(
            f"{field_name} has an invalid length",
            field=field_name,
            value=item_id,
            constraints=[f"between {MIN_ITEM_ID_LENGTH} and {MAX_ITEM_ID_LENGTH} characters"],
        )
    return item_id


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run."""
    movies: list[MovieRecord]
    users: list[UserRecord]
    verdicts: list[DuplicateVerdict] = field(default_factory=list)

    @property
    def potential_duplicates(self) -> list[DuplicateVerdict]:
        return split_verdicts(self.verdicts)[0]

    @property
    def potential_mismatches(self) -> list[DuplicateVerdict]:
        return split_verdicts(self.verdicts)[1]

    @property
    def user_names(self) -> dict[str, str]:
        return {user.id: user.name for user in self.users}


class AnalysisService:
    """Runs the duplicate analysis end to end and applies operator actions.

    The catalog fetch and the user/play-state fetch run concurrently. If
    either fails the run fails; nothing partial is returned.
    """

    def __init__(
        self,
        client: JellyfinClient,
        catalog: CatalogFetcher | None = None,
        aggregator: PlayStateAggregator | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the analysis service.

        Args:
            client: Jellyfin API client
            catalog: Catalog fetcher (built from ``client`` when omitted)
            aggregator: Play-state aggregator (built from ``client`` when omitted)
            logger: Logger to use (defaults to this module's logger)
        """
        self.client = client
        self.log = logger or structlog.stdlib.get_logger(__name__)
        self.catalog = catalog or CatalogFetcher(client, logger=self.log)
        self.aggregator = aggregator or PlayStateAggregator(client, logger=self.log)

    async def run(self) -> AnalysisResult:
        """Fetch everything, reconcile and find duplicates.

        Raises:
            RetrievalError: If any part of the fetch fails
        """
        self.log.info("Starting duplicate analysis")

        catalog_task = asyncio.create_task(self.catalog.fetch_all_movies())
        history_task = asyncio.create_task(self._fetch_viewing_history())
        tasks = (catalog_task, history_task)
        try:
            movies, (users, seen_by_user) = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        reconciled = reconcile(movies, seen_by_user, users)
        engine = DuplicateEngine(user_names={user.id: user.name for user in users}, logger=self.log)
        verdicts = engine.find_duplicates(reconciled)

        result = AnalysisResult(movies=reconciled, users=users, verdicts=verdicts)
        self.log.info(
            "Analysis finished",
            movies=len(reconciled),
            users=len(users),
            potential_duplicates=len(result.potential_duplicates),
            potential_mismatches=len(result.potential_mismatches),
        )
        return result

    async def _fetch_viewing_history(self) -> tuple[list[UserRecord], dict[str, set[str]]]:
        users = await self.client.list_users()
        seen_by_user = await self.aggregator.fetch_play_states(users)
        return users, seen_by_user

    async def enrich_play_counts(self, verdict: DuplicateVerdict, users: Iterable[UserRecord]) -> DuplicateVerdict:
        """Replace the pair's play states with exact per-user states, including play counts.

        Raises:
            RetrievalError: If any single lookup fails
        """
        users = list(users)
        self.log.info("Fetching exact play counts", movie_a=verdict.movie_a.id, movie_b=verdict.movie_b.id)

        async def exact_states(movie: MovieRecord) -> dict[str, PlayState]:
            states = await run_bounded(
                users,
                lambda user: self.client.get_single_play_state(movie.id, user.id),
                MAX_CONCURRENT_USER_FETCHES,
            )
            return {user.id: state for user, state in zip(users, states)}

        states_a = await exact_states(verdict.movie_a)
        states_b = await exact_states(verdict.movie_b)
        return replace(
            verdict,
            movie_a=replace(verdict.movie_a, play_states=states_a),
            movie_b=replace(verdict.movie_b, play_states=states_b),
        )

    async def mark_movie_as_seen(self, movie_id: str, user_id: str) -> None:
        """Mark one movie as played for one user.

        Raises:
            ValidationError: If either ID is malformed
            RemoteActionError: If the server rejects the request
        """
        validate_item_id(movie_id, "movie_id")
        validate_item_id(user_id, "user_id")

        movie_name = await self._name_or_id(self.client.get_movie_name, movie_id)
        user_name = await self._name_or_id(self.client.get_user_name, user_id)

        self.log.info("Marking movie as seen", movie=movie_name, movie_id=movie_id, user=user_name, user_id=user_id)
        await self.client.mark_played(movie_id, user_id)

    async def _name_or_id(self, lookup, item_id: str) -> str:
        try:
            name = await lookup(item_id)
        except RetrievalError as e:
            self.log.warning("Name lookup failed, using ID", item_id=item_id, error=e.message)
            return item_id
        return name or item_id

    async def sync_play_status(self, verdict: DuplicateVerdict) -> list[PlayStatusDiscrepancy]:
        """Mark the under-played copy as played for every discrepancy user.

        Stops at the first failure; discrepancies applied before it stay applied.

        Returns:
            The discrepancies that were applied
        """
        applied = []
        for discrepancy in verdict.discrepancies:
            await self.mark_movie_as_seen(discrepancy.movie_to_update, discrepancy.user_id)
            applied.append(discrepancy)

        self.log.info("Play status synchronized", applied=len(applied), movie_a=verdict.movie_a.id, movie_b=verdict.movie_b.id)
        return applied

    async def delete_movie(self, movie_id: str) -> None:
        """Delete a movie from the server.

        Raises:
            ValidationError: If the ID is malformed
            RemoteActionError: If the server rejects the request
        """
        validate_item_id(movie_id, "movie_id")
        self.log.warning("Deleting movie", movie_id=movie_id)
        await self.client.delete_movie(movie_id)
