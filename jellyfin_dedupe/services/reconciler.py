"""Merge the catalog with per-user viewing history."""

from collections.abc import Iterable, Mapping
from dataclasses import replace

from ..models import MovieRecord, PlayState, UserRecord

NOT_PLAYED = PlayState(played=False, play_count=0)
PLAYED = PlayState(played=True, play_count=0)


def reconcile(
    movies: Iterable[MovieRecord],
    seen_by_user: Mapping[str, set[str]],
    users: Iterable[UserRecord],
) -> list[MovieRecord]:
    """Attach one play state per user to every movie.

    Users absent from ``seen_by_user`` are treated as having played nothing.
    Play counts are left at 0; exact counts are fetched on demand.

    Returns:
        New movie records; the input records are not modified
    """
    user_ids = [user.id for user in users]
    empty: set[str] = set()

    reconciled = []
    for movie in movies:
        play_states = {
            user_id: PLAYED if movie.id in seen_by_user.get(user_id, empty) else NOT_PLAYED
            for user_id in user_ids
        }
        reconciled.append(replace(movie, play_states=play_states))
    return reconciled
