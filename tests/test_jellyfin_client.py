"""Tests for the Jellyfin API client against a mocked transport."""

import json
from collections.abc import Callable

import httpx
import pytest

from jellyfin_dedupe.models import PlayState
from jellyfin_dedupe.services.errors import RemoteActionError, RetrievalError
from jellyfin_dedupe.services.http_client import AUTH_HEADER, HttpClientService
from jellyfin_dedupe.services.jellyfin import MOVIE_FIELDS, JellyfinClient

BASE_URL = "http://jellyfin.test"
ADMIN = "a" * 32
MOVIE = "b" * 32
USER = "c" * 32


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    max_retries: int = 0,
) -> tuple[JellyfinClient, list[httpx.Request]]:
    """Build a client whose requests are answered by ``handler`` and recorded."""
    requests: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    http_client = HttpClientService(
        base_url=BASE_URL,
        api_key="secret",
        max_retries=max_retries,
        base_delay=0,
        transport=httpx.MockTransport(recording_handler),
    )
    return JellyfinClient(http_client, admin_user_id=ADMIN), requests


class TestReads:
    """Tests for catalog and user reads."""

    @pytest.mark.asyncio
    async def test_list_libraries(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/Users/{ADMIN}/Views"
            return httpx.Response(200, json={"Items": [{"Id": "lib1", "Name": "Movies"}]})

        client, requests = make_client(handler)
        libraries = await client.list_libraries()

        assert [(lib.id, lib.name) for lib in libraries] == [("lib1", "Movies")]
        assert requests[0].headers[AUTH_HEADER] == "secret"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[{"Id": "lib1"}], {"TotalRecordCount": 1}, {"Items": None}, {"Items": [{"Name": "no id"}]}])
    async def test_malformed_library_listing_is_an_error(self, body: object) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(RetrievalError) as exc_info:
            await client.list_libraries()

        assert exc_info.value.target == "libraries"

    @pytest.mark.asyncio
    async def test_empty_library_listing(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, json={"Items": []}))

        assert await client.list_libraries() == []

    @pytest.mark.asyncio
    async def test_list_movies_requests_fields_and_parses(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "Items": [
                    {
                        "Id": "m1",
                        "Name": "Heat",
                        "ProductionYear": 1995,
                        "Path": "/m/heat.mkv",
                        "ProviderIds": {"Tmdb": "949", "Imdb": ""},
                    },
                    {"Id": "m2", "Name": "Untitled"},
                ],
                "TotalRecordCount": 42,
            })

        client, requests = make_client(handler)
        page = await client.list_movies("lib1", 100, 50)

        params = requests[0].url.params
        assert requests[0].url.path == "/Items"
        assert params["Fields"] == MOVIE_FIELDS
        assert params["ParentId"] == "lib1"
        assert params["IncludeItemTypes"] == "Movie"
        assert params["Recursive"] == "true"
        assert params["StartIndex"] == "100"
        assert params["Limit"] == "50"

        assert page.total_count == 42
        heat, untitled = page.items
        assert heat.production_year == 1995
        assert heat.path == "/m/heat.mkv"
        assert heat.provider_ids == {"Tmdb": "949"}
        assert untitled.production_year == 0
        assert untitled.path == ""

    @pytest.mark.asyncio
    async def test_list_played_movies_filters_by_user(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Items": [{"Id": "m1", "Name": "Heat"}], "TotalRecordCount": 1})

        client, requests = make_client(handler)
        page = await client.list_played_movies(USER, 0, 100)

        params = requests[0].url.params
        assert params["Filters"] == "IsPlayed"
        assert params["UserId"] == USER
        assert [m.id for m in page.items] == ["m1"]

    @pytest.mark.asyncio
    async def test_server_error_becomes_retrieval_error(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(RetrievalError) as exc_info:
            await client.list_movies("lib1", 0, 100)

        assert exc_info.value.status_code == 500
        assert exc_info.value.target == "movies of library lib1"

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self) -> None:
        client, requests = make_client(lambda request: httpx.Response(401), max_retries=3)

        with pytest.raises(RetrievalError) as exc_info:
            await client.list_users()

        assert exc_info.value.status_code == 401
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_becomes_retrieval_error(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RetrievalError):
            await client.list_libraries()

    @pytest.mark.asyncio
    async def test_malformed_items_become_retrieval_error(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, json={"Items": [{"Name": "no id"}]}))

        with pytest.raises(RetrievalError):
            await client.list_movies("lib1", 0, 100)

    @pytest.mark.asyncio
    async def test_get_single_play_state(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/Users/{USER}/Items/{MOVIE}"
            return httpx.Response(200, json={"Id": MOVIE, "UserData": {"Played": True, "PlayCount": 3}})

        client, _ = make_client(handler)

        assert await client.get_single_play_state(MOVIE, USER) == PlayState(played=True, play_count=3)

    @pytest.mark.asyncio
    async def test_get_single_play_state_without_user_data(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, json={"Id": MOVIE}))

        assert await client.get_single_play_state(MOVIE, USER) == PlayState(played=False, play_count=0)

    @pytest.mark.asyncio
    async def test_get_movie_name_falls_back_to_items(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/Users/"):
                return httpx.Response(200, json={"Id": MOVIE})
            return httpx.Response(200, json={"Id": MOVIE, "Name": "Heat"})

        client, requests = make_client(handler)

        assert await client.get_movie_name(MOVIE) == "Heat"
        assert [r.url.path for r in requests] == [f"/Users/{ADMIN}/Items/{MOVIE}", f"/Items/{MOVIE}"]


class TestUserNameCache:
    """Tests for the user name read-through cache."""

    @pytest.mark.asyncio
    async def test_list_users_seeds_cache(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/Users"
            return httpx.Response(200, json=[{"Id": USER, "Name": "alice"}])

        client, requests = make_client(handler)
        users = await client.list_users()

        assert [(u.id, u.name) for u in users] == [(USER, "alice")]
        assert await client.get_user_name(USER) == "alice"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_cache_miss_fetches_once(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/Users/{USER}"
            return httpx.Response(200, json={"Id": USER, "Name": "bob"})

        client, requests = make_client(handler)

        assert await client.get_user_name(USER) == "bob"
        assert await client.get_user_name(USER) == "bob"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_non_list_user_response(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(200, json={"Items": []}))

        with pytest.raises(RetrievalError):
            await client.list_users()


class TestActions:
    """Tests for side-effecting calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 204])
    async def test_mark_played_success(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == f"/Users/{USER}/PlayedItems/{MOVIE}"
            return httpx.Response(status)

        client, requests = make_client(handler)
        await client.mark_played(MOVIE, USER)

        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_mark_played_failure_carries_status(self) -> None:
        client, requests = make_client(lambda request: httpx.Response(500), max_retries=3)

        with pytest.raises(RemoteActionError) as exc_info:
            await client.mark_played(MOVIE, USER)

        assert exc_info.value.status_code == 500
        assert exc_info.value.action == "mark_played"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_delete_movie(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            assert request.url.path == f"/Items/{MOVIE}"
            return httpx.Response(204)

        client, _ = make_client(handler)
        await client.delete_movie(MOVIE)

    @pytest.mark.asyncio
    async def test_delete_movie_not_found(self) -> None:
        client, _ = make_client(lambda request: httpx.Response(404, text=json.dumps({"error": "missing"})))

        with pytest.raises(RemoteActionError) as exc_info:
            await client.delete_movie(MOVIE)

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == f"{BASE_URL}/Items/{MOVIE}"

    @pytest.mark.asyncio
    async def test_network_error_becomes_remote_action_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(handler)

        with pytest.raises(RemoteActionError) as exc_info:
            await client.delete_movie(MOVIE)

        assert isinstance(exc_info.value.original_error, httpx.ConnectError)
