"""
Tests for TMDBClient - TMDB API client implementation.

Uses respx to mock httpx calls and verifies:
- Search returns SearchResult objects and sends the year filter
- Details returns MovieDetails, None on 404
- Cache is checked BEFORE API calls, and bypassed for refreshes
- /find resolves an IMDb id
- Auth errors and retries
"""

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from src.adapters.api.cache import APICache
from src.adapters.api.tmdb_client import TMDBClient
from src.core.exceptions import AuthError, ProtocolError, TransientNetworkError
from src.core.ports.api_clients import IMetadataClient, MovieDetails, SearchResult
from tests.fixtures.factories import make_details
from tests.fixtures.tmdb_responses import (
    TMDB_FIND_EMPTY_RESPONSE,
    TMDB_FIND_RESPONSE,
    TMDB_MOVIE_DETAILS_INCEPTION,
    TMDB_NOT_FOUND_RESPONSE,
    TMDB_SEARCH_EMPTY_RESPONSE,
    TMDB_SEARCH_RESPONSE,
)

BASE = "https://api.themoviedb.org/3"


@pytest.fixture
def mock_cache() -> AsyncMock:
    """Mock APICache for testing."""
    cache = AsyncMock(spec=APICache)
    cache.get.return_value = None  # Cache miss by default
    return cache


@pytest.fixture
def tmdb_client(mock_cache: AsyncMock) -> TMDBClient:
    """TMDBClient instance with mocked cache and no retry wait."""
    return TMDBClient(
        api_key="test_api_key",
        cache=mock_cache,
        max_attempts=2,
        initial_wait=0,
        max_wait=0,
    )


class TestTMDBClientInterface:
    """Test TMDBClient implements IMetadataClient correctly."""

    def test_implements_interface(self, tmdb_client: TMDBClient):
        assert isinstance(tmdb_client, IMetadataClient)

    def test_source_property_returns_tmdb(self, tmdb_client: TMDBClient):
        assert tmdb_client.source == "tmdb"


class TestTMDBSearch:
    """Tests for TMDBClient.search() method."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_returns_search_results(self, tmdb_client: TMDBClient, mock_cache: AsyncMock):
        """search() should return results in TMDB order."""
        route = respx.get(f"{BASE}/search/movie").mock(
            return_value=httpx.Response(200, json=TMDB_SEARCH_RESPONSE)
        )

        results = await tmdb_client.search("Inception", year=2010)

        assert [r.id for r in results] == ["27205", "64956"]
        assert all(isinstance(r, SearchResult) for r in results)
        assert results[0].title == "Inception"
        assert results[0].year == 2010
        assert results[0].source == "tmdb"
        request = route.calls.last.request
        assert request.url.params["query"] == "Inception"
        assert request.url.params["year"] == "2010"
        assert request.url.params["api_key"] == "test_api_key"

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_returns_empty_list_on_no_results(self, tmdb_client: TMDBClient):
        respx.get(f"{BASE}/search/movie").mock(
            return_value=httpx.Response(200, json=TMDB_SEARCH_EMPTY_RESPONSE)
        )

        assert await tmdb_client.search("NonExistentMovie12345") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_rejected_query_is_protocol_error(self, tmdb_client: TMDBClient, mock_cache: AsyncMock):
        """TMDB answers 422 to some queries: not retried, nothing cached."""
        route = respx.get(f"{BASE}/search/movie").mock(return_value=httpx.Response(422))

        with pytest.raises(ProtocolError):
            await tmdb_client.search("Broken")
        assert route.call_count == 1
        mock_cache.set_search.assert_not_awaited()

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_uses_cache_first(self, tmdb_client: TMDBClient, mock_cache: AsyncMock):
        """A cached result is returned without any API call."""
        cached = [SearchResult(id="27205", title="Inception", year=2010, source="tmdb")]
        mock_cache.get.return_value = cached
        route = respx.get(f"{BASE}/search/movie")

        results = await tmdb_client.search("Inception", year=2010)

        assert results == cached
        assert not route.called
        mock_cache.get.assert_awaited_once_with("tmdb:search:inception:2010")

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_caches_results(self, tmdb_client: TMDBClient, mock_cache: AsyncMock):
        respx.get(f"{BASE}/search/movie").mock(
            return_value=httpx.Response(200, json=TMDB_SEARCH_RESPONSE)
        )

        await tmdb_client.search("Inception")

        mock_cache.set_search.assert_awaited_once()
        assert mock_cache.set_search.await_args.args[0] == "tmdb:search:inception:"


class TestTMDBDetails:
    """Tests for TMDBClient.get_details()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_details_returns_movie_details(self, tmdb_client: TMDBClient, mock_cache: AsyncMock):
        respx.get(f"{BASE}/movie/27205").mock(
            return_value=httpx.Response(200, json=TMDB_MOVIE_DETAILS_INCEPTION)
        )

        details = await tmdb_client.get_details(27205)

        assert isinstance(details, MovieDetails)
        assert details.tmdb_id == 27205
        assert details.title == "Inception"
        assert details.imdb_id == "tt1375666"
        assert details.runtime == 148
        assert details.release_date.year == 2010
        assert details.genres == ("Action", "Science Fiction", "Adventure")
        assert details.poster_path == "/oYuLEt3zVCKq57qu2F8dT7NIa6f.jpg"
        mock_cache.set_details.assert_awaited_once_with("tmdb:details:27205", details)

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_details_returns_none_on_404(self, tmdb_client: TMDBClient):
        respx.get(f"{BASE}/movie/999999").mock(
            return_value=httpx.Response(404, json=TMDB_NOT_FOUND_RESPONSE)
        )

        assert await tmdb_client.get_details(999999) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_details_bypasses_cache_when_refreshing(
        self, tmdb_client: TMDBClient, mock_cache: AsyncMock
    ):
        """use_cache=False always calls the API and rewrites the entry."""
        mock_cache.get.return_value = make_details(27205, "Old title")
        route = respx.get(f"{BASE}/movie/27205").mock(
            return_value=httpx.Response(200, json=TMDB_MOVIE_DETAILS_INCEPTION)
        )

        details = await tmdb_client.get_details(27205, use_cache=False)

        assert route.called
        assert details.title == "Inception"
        mock_cache.get.assert_not_awaited()
        mock_cache.set_details.assert_awaited_once()

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_details_rejects_payload_without_id(self, tmdb_client: TMDBClient):
        respx.get(f"{BASE}/movie/1").mock(return_value=httpx.Response(200, json={"title": "x"}))

        with pytest.raises(ProtocolError):
            await tmdb_client.get_details(1)

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_details_retries_server_errors(self, tmdb_client: TMDBClient):
        route = respx.get(f"{BASE}/movie/27205").mock(return_value=httpx.Response(502))

        with pytest.raises(TransientNetworkError):
            await tmdb_client.get_details(27205)
        assert route.call_count == 2


class TestTMDBFind:
    """Tests for TMDBClient.find_by_imdb_id()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_find_by_imdb_id(self, tmdb_client: TMDBClient):
        route = respx.get(f"{BASE}/find/tt1375666").mock(
            return_value=httpx.Response(200, json=TMDB_FIND_RESPONSE)
        )

        assert await tmdb_client.find_by_imdb_id("tt1375666") == 27205
        assert route.calls.last.request.url.params["external_source"] == "imdb_id"

    @pytest.mark.asyncio
    @respx.mock
    async def test_find_by_imdb_id_without_match(self, tmdb_client: TMDBClient):
        respx.get(f"{BASE}/find/tt0000000").mock(
            return_value=httpx.Response(200, json=TMDB_FIND_EMPTY_RESPONSE)
        )

        assert await tmdb_client.find_by_imdb_id("tt0000000") is None


class TestTMDBAuth:
    """Authentication modes and errors."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_v4_token_sent_as_bearer(self, mock_cache: AsyncMock):
        token = "eyJ" + "a" * 60
        client = TMDBClient(api_key=token, cache=mock_cache)
        route = respx.get(f"{BASE}/movie/27205").mock(
            return_value=httpx.Response(200, json=TMDB_MOVIE_DETAILS_INCEPTION)
        )

        await client.get_details(27205)

        request = route.calls.last.request
        assert request.headers["Authorization"] == f"Bearer {token}"
        assert "api_key" not in request.url.params
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_key_raises_auth_error(self, tmdb_client: TMDBClient):
        respx.get(f"{BASE}/movie/27205").mock(return_value=httpx.Response(401))

        with pytest.raises(AuthError) as exc_info:
            await tmdb_client.get_details(27205)
        assert exc_info.value.provider == "tmdb"

    @pytest.mark.asyncio
    async def test_missing_key_raises_auth_error(self, mock_cache: AsyncMock):
        client = TMDBClient(api_key=None, cache=mock_cache)

        with pytest.raises(AuthError):
            await client.get_details(27205)


class TestTMDBImages:
    """Poster download."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_download_image(self, tmdb_client: TMDBClient):
        respx.get("https://image.tmdb.org/t/p/original/poster.jpg").mock(
            return_value=httpx.Response(200, content=b"\x89PNG")
        )

        assert await tmdb_client.download_image("/poster.jpg") == b"\x89PNG"

    @pytest.mark.asyncio
    @respx.mock
    async def test_download_image_missing(self, tmdb_client: TMDBClient):
        respx.get("https://image.tmdb.org/t/p/original/missing.jpg").mock(
            return_value=httpx.Response(404)
        )

        assert await tmdb_client.download_image("/missing.jpg") is None
