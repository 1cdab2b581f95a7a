"""Duplicate detection over a reconciled movie catalog."""

from collections import defaultdict
from collections.abc import Iterable, Mapping

import structlog

from ..models import DuplicateVerdict, MovieRecord, PlayStatusDiscrepancy
from .similarity import path_similarity

DUPLICATE_SIMILARITY_THRESHOLD = 95


def has_identical_play_status(movie_a: MovieRecord, movie_b: MovieRecord) -> bool:
    """Whether every user has the same played flag on both movies.

    A movie without any play states cannot be compared, so the answer is
    False rather than vacuously True.
    """
    if not movie_a.play_states or not movie_b.play_states:
        return False

    played_a = {user_id: state.played for user_id, state in movie_a.play_states.items()}
    played_b = {user_id: state.played for user_id, state in movie_b.play_states.items()}
    return played_a == played_b


def play_status_discrepancies(
    movie_a: MovieRecord,
    movie_b: MovieRecord,
    user_names: Mapping[str, str] | None = None,
) -> list[PlayStatusDiscrepancy]:
    """List the users who played exactly one of the two movies.

    Users who played A but not B come first, each pointing at B as the movie
    to update, followed by users who played B but not A.
    """
    user_names = user_names or {}
    discrepancies = []

    for source, other in ((movie_a, movie_b), (movie_b, movie_a)):
        for user_id, state in source.play_states.items():
            if not state.played:
                continue
            other_state = other.play_states.get(user_id)
            if other_state is not None and other_state.played:
                continue
            discrepancies.append(PlayStatusDiscrepancy(
                user_id=user_id,
                user_name=user_names.get(user_id, user_id),
                movie_to_update=other.id,
                movie_name=other.name,
            ))

    return discrepancies


def split_verdicts(
    verdicts: Iterable[DuplicateVerdict],
) -> tuple[list[DuplicateVerdict], list[DuplicateVerdict]]:
    """Split verdicts into potential duplicates and potential mismatches."""
    duplicates: list[DuplicateVerdict] = []
    mismatches: list[DuplicateVerdict] = []
    for verdict in verdicts:
        (duplicates if verdict.is_duplicate else mismatches).append(verdict)
    return duplicates, mismatches


class DuplicateEngine:
    """Finds pairs of movies sharing a name and year and judges each pair.

    Grouping is by exact ``(name, year)``; titles are not normalized.
    Every pair in a group is reported, duplicate or not, so that near misses
    show up as potential mismatches.
    """

    def __init__(
        self,
        user_names: Mapping[str, str] | None = None,
        threshold: int = DUPLICATE_SIMILARITY_THRESHOLD,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            user_names: User ID to display name, used in discrepancies
            threshold: Minimum path similarity for a pair to count as a duplicate
            logger: Logger to use (defaults to this module's logger)
        """
        self.user_names = dict(user_names or {})
        self.threshold = threshold
        self.log = logger or structlog.stdlib.get_logger(__name__)

    def find_duplicates(self, movies: Iterable[MovieRecord]) -> list[DuplicateVerdict]:
        """Compare every pair of movies within each name-year group."""
        groups: dict[tuple[str, int], list[MovieRecord]] = defaultdict(list)
        for movie in movies:
            groups[movie.group_key].append(movie)

        verdicts = []
        for key, group in groups.items():
            if len(group) < 2:
                continue
            self.log.debug("Comparing group", name=key[0], year=key[1], size=len(group))
            for i in range(len(group)):
                for j in range(i + 1, len(group)):
                    verdicts.append(self.compare(group[i], group[j]))

        duplicates = sum(1 for verdict in verdicts if verdict.is_duplicate)
        self.log.info(
            "Duplicate analysis complete",
            pairs=len(verdicts),
            duplicates=duplicates,
            mismatches=len(verdicts) - duplicates,
        )
        return verdicts

    def compare(self, movie_a: MovieRecord, movie_b: MovieRecord) -> DuplicateVerdict:
        """Build the verdict for one pair."""
        similarity = path_similarity(movie_a.path, movie_b.path)
        return DuplicateVerdict(
            movie_a=movie_a,
            movie_b=movie_b,
            similarity=similarity,
            is_duplicate=similarity >= self.threshold,
            has_identical_play_status=has_identical_play_status(movie_a, movie_b),
            discrepancies=play_status_discrepancies(movie_a, movie_b, self.user_names),
        )
