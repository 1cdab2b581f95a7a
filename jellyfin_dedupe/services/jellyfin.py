"""Jellyfin API client: catalog, users, play state and item actions."""

import asyncio
from typing import Any

import httpx
import structlog

from ..models import ItemPage, Library, MovieRecord, PlayState, UserRecord
from .errors import RemoteActionError, RetrievalError
from .http_client import HttpClientService

# Fields the duplicate analysis depends on. Without Path a movie can never
# match, without ProductionYear it only groups with other year-0 movies.
MOVIE_FIELDS = "ProviderIds,ProductionYear,Path,UserData"

SUCCESS_STATUS_CODES = (200, 204)


class JellyfinClient:
    """Thin typed layer over the Jellyfin REST endpoints used by the analysis.

    Read calls raise :class:`RetrievalError`; side effects raise
    :class:`RemoteActionError` when the server does not answer 200 or 204.
    """

    def __init__(
        self,
        http_client: HttpClientService,
        admin_user_id: str,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.http_client = http_client
        self.admin_user_id = admin_user_id
        self.log = logger or structlog.stdlib.get_logger(__name__)
        self._user_names: dict[str, str] = {}
        self._cache_lock = asyncio.Lock()

    async def _get_json(self, path: str, target: str, params: dict[str, str] | None = None) -> Any:
        try:
            return await self.http_client.get_json(path, params=params)
        except (httpx.HTTPError, ValueError) as e:
            raise RetrievalError(
                f"Failed to fetch {target}",
                target=target,
                original_error=e,
                url=f"{self.http_client.base_url}{path}",
            ) from e

    @staticmethod
    def _parse_page(data: Any, target: str) -> ItemPage:
        if not isinstance(data, dict):
            raise RetrievalError(f"Unexpected response while fetching {target}", target=target)
        try:
            items = [MovieRecord.from_api(item) for item in data.get("Items") or []]
            total = data.get("TotalRecordCount")
            total_count = int(total) if total is not None else len(items)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RetrievalError(
                f"Malformed item listing while fetching {target}",
                target=target,
                original_error=e,
            ) from e
        return ItemPage(items=items, total_count=total_count)

    async def list_libraries(self, account_id: str | None = None) -> list[Library]:
        """List the libraries (views) visible to an account."""
        account_id = account_id or self.admin_user_id
        if not account_id:
            raise RetrievalError("No account ID configured for listing libraries", target="libraries")

        data = await self._get_json(f"/Users/{account_id}/Views", target="libraries")
        items = data.get("Items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise RetrievalError("Unexpected response while fetching libraries", target="libraries")

        try:
            libraries = [Library.from_api(item) for item in items]
        except (KeyError, TypeError, AttributeError) as e:
            raise RetrievalError("Malformed library listing", target="libraries", original_error=e) from e
        self.log.debug("Libraries listed", account_id=account_id, count=len(libraries))
        return libraries

    async def list_movies(self, library_id: str, start_index: int, limit: int) -> ItemPage:
        """Fetch one page of movies from a library."""
        target = f"movies of library {library_id}"
        data = await self._get_json(
            "/Items",
            target=target,
            params={
                "Recursive": "true",
                "IncludeItemTypes": "Movie",
                "Fields": MOVIE_FIELDS,
                "ParentId": library_id,
                "StartIndex": str(start_index),
                "Limit": str(limit),
            },
        )
        return self._parse_page(data, target)

    async def list_users(self) -> list[UserRecord]:
        """Fetch every user and seed the user name cache."""
        data = await self._get_json("/Users", target="users")
        if not isinstance(data, list):
            raise RetrievalError("Unexpected response while fetching users", target="users")

        users = [UserRecord.from_api(item) for item in data]
        async with self._cache_lock:
            for user in users:
                self._user_names[user.id] = user.name

        self.log.info("Users fetched", count=len(users))
        return users

    async def list_played_movies(self, user_id: str, start_index: int, limit: int) -> ItemPage:
        """Fetch one page of the movies a user has played."""
        target = f"played movies of user {user_id}"
        data = await self._get_json(
            "/Items",
            target=target,
            params={
                "Recursive": "true",
                "IncludeItemTypes": "Movie",
                "Fields": MOVIE_FIELDS,
                "Filters": "IsPlayed",
                "UserId": user_id,
                "StartIndex": str(start_index),
                "Limit": str(limit),
            },
        )
        return self._parse_page(data, target)

    async def get_single_play_state(self, movie_id: str, user_id: str) -> PlayState:
        """Fetch the exact play state, including play count, of one movie for one user."""
        data = await self._get_json(
            f"/Users/{user_id}/Items/{movie_id}",
            target=f"play state of movie {movie_id} for user {user_id}",
        )
        user_data = (data.get("UserData") if isinstance(data, dict) else None) or {}
        played = bool(user_data.get("Played", False))
        play_count = user_data.get("PlayCount") or 0
        return PlayState(played=played, play_count=max(int(play_count), 0))

    async def get_movie_name(self, movie_id: str) -> str:
        """Look up a movie's display name."""
        data = await self._get_json(
            f"/Users/{self.admin_user_id}/Items/{movie_id}",
            target=f"movie {movie_id}",
            params={"Fields": MOVIE_FIELDS},
        )
        name = data.get("Name") if isinstance(data, dict) else None
        if name:
            return str(name)

        data = await self._get_json(f"/Items/{movie_id}", target=f"movie {movie_id}")
        return str(data.get("Name") or "") if isinstance(data, dict) else ""

    async def get_user_name(self, user_id: str) -> str:
        """Look up a user's name, reading through the shared cache."""
        async with self._cache_lock:
            cached = self._user_names.get(user_id)
        if cached is not None:
            return cached

        data = await self._get_json(f"/Users/{user_id}", target=f"user {user_id}")
        name = str(data.get("Name") or "") if isinstance(data, dict) else ""

        async with self._cache_lock:
            self._user_names[user_id] = name
        return name

    async def mark_played(self, movie_id: str, user_id: str) -> None:
        """Mark a movie as played for a user."""
        path = f"/Users/{user_id}/PlayedItems/{movie_id}"
        await self._send_action("mark_played", "post", path)
        self.log.info("Movie marked as played", movie_id=movie_id, user_id=user_id)

    async def delete_movie(self, movie_id: str) -> None:
        """Delete a movie item (and its files) from the server."""
        path = f"/Items/{movie_id}"
        await self._send_action("delete_movie", "delete", path)
        self.log.info("Movie deleted", movie_id=movie_id)

    async def _send_action(self, action: str, method: str, path: str) -> None:
        url = f"{self.http_client.base_url}{path}"
        try:
            if method == "post":
                response = await self.http_client.post(path)
            else:
                response = await self.http_client.delete(path)
        except httpx.HTTPError as e:
            self.log.error("Network error during remote action", action=action, url=url, error=str(e))
            raise RemoteActionError(f"{action} failed: {e}", action=action, original_error=e, url=url) from e

        self.log.debug("Remote action response", action=action, status_code=response.status_code)
        if response.status_code not in SUCCESS_STATUS_CODES:
            self.log.warning(
                "Unexpected status for remote action",
                action=action,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise RemoteActionError(
                f"{action} failed with status {response.status_code}",
                action=action,
                url=url,
                status_code=response.status_code,
            )
