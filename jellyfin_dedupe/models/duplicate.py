"""Duplicate detection result models."""

from dataclasses import dataclass, field
from typing import Any

from .media import MovieRecord


@dataclass(frozen=True)
class PlayStatusDiscrepancy:
    """A user who watched one copy of a duplicate pair but not the other."""
    user_id: str
    user_name: str
    movie_to_update: str  # ID of the copy the user has not played
    movie_name: str

    def to_dict(self) -> dict[str, str]:
        """Serialize for JSON output."""
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "movie_to_update": self.movie_to_update,
            "movie_name": self.movie_name,
        }


@dataclass(frozen=True)
class DuplicateVerdict:
    """Comparison result for one pair of movies sharing a name and year."""
    movie_a: MovieRecord
    movie_b: MovieRecord
    similarity: int
    is_duplicate: bool
    has_identical_play_status: bool
    discrepancies: list[PlayStatusDiscrepancy] = field(default_factory=list)

    @property
    def has_play_status_discrepancy(self) -> bool:
        """Whether any user has watched only one of the two copies."""
        return len(self.discrepancies) > 0

    @property
    def pair_ids(self) -> frozenset[str]:
        """Unordered pair of movie IDs."""
        return frozenset((self.movie_a.id, self.movie_b.id))

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "movie1": self.movie_a.to_dict(),
            "movie2": self.movie_b.to_dict(),
            "similarity": self.similarity,
            "is_duplicate": self.is_duplicate,
            "has_identical_play_status": self.has_identical_play_status,
            "has_play_status_discrepancy": self.has_play_status_discrepancy,
            "play_status_discrepancies": [d.to_dict() for d in self.discrepancies],
        }
