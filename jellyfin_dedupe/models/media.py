"""Media catalog data models."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PlayState:
    """Watch state of one movie for one user."""
    played: bool
    play_count: int = 0  # Best effort, 0 when unknown


@dataclass(frozen=True)
class UserRecord:
    """A media server user."""
    id: str
    name: str

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "UserRecord":
        """Build a user from a `/Users` response entry."""
        return cls(id=str(item["Id"]), name=str(item.get("Name") or ""))


@dataclass(frozen=True)
class Library:
    """A library (view) visible to an account."""
    id: str
    name: str

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Library":
        """Build a library from a `/Users/{id}/Views` response entry."""
        return cls(id=str(item["Id"]), name=str(item.get("Name") or ""))


@dataclass(frozen=True)
class MovieRecord:
    """A movie item as stored on the media server.

    ``play_states`` maps user ID to that user's :class:`PlayState`. It is
    empty when the record comes straight from the catalog and holds exactly
    one entry per known user once reconciled.
    """
    id: str
    name: str
    production_year: int = 0  # 0 = unknown
    path: str = ""
    provider_ids: dict[str, str] = field(default_factory=dict)
    play_states: dict[str, PlayState] = field(default_factory=dict)

    @property
    def group_key(self) -> tuple[str, int]:
        """Key shared by movies that are candidate duplicates of each other."""
        return (self.name, self.production_year)

    @property
    def played_by(self) -> set[str]:
        """IDs of users who have played this movie."""
        return {user_id for user_id, state in self.play_states.items() if state.played}

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "MovieRecord":
        """Build a movie from an `/Items` response entry.

        Missing optional fields fall back to defaults instead of failing:
        year to 0, path to an empty string.
        """
        year_raw = item.get("ProductionYear")
        try:
            production_year = int(year_raw) if year_raw is not None else 0
        except (TypeError, ValueError):
            production_year = 0

        provider_raw = item.get("ProviderIds") or {}
        provider_ids = {
            str(key): str(value)
            for key, value in provider_raw.items()
            if value
        } if isinstance(provider_raw, dict) else {}

        return cls(
            id=str(item["Id"]),
            name=str(item.get("Name") or ""),
            production_year=production_year,
            path=str(item.get("Path") or ""),
            provider_ids=provider_ids,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "id": self.id,
            "name": self.name,
            "production_year": self.production_year,
            "path": self.path,
            "provider_ids": dict(self.provider_ids),
            "play_states": {
                user_id: {"played": state.played, "play_count": state.play_count}
                for user_id, state in self.play_states.items()
            },
        }


@dataclass(frozen=True)
class ItemPage:
    """One page of a paginated item listing."""
    items: list[MovieRecord]
    total_count: int
