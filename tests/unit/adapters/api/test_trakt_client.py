"""
Tests for TraktClient - social history source.

Uses respx to mock httpx calls and verifies:
- Pagination driven by X-Pagination-Page-Count
- Token refresh before the first request, with callback
- Conversion of history and rating records to CanonicalPartial
"""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from src.adapters.api.trakt_client import TraktClient
from src.core.entities.user import TraktCredentials
from src.core.exceptions import AuthError, ProtocolError
from src.core.value_objects import CanonicalPartial, SourceKind
from tests.fixtures.trakt_responses import (
    TRAKT_HISTORY_PAGE,
    TRAKT_RATINGS_PAGE,
    TRAKT_TOKEN_RESPONSE,
    history_record,
)

BASE = "https://api.trakt.tv"


def _credentials(**fields) -> TraktCredentials:
    values = {"user_id": 1, "access_token": "access-token", "refresh_token": "refresh-token"}
    values.update(fields)
    return TraktCredentials(**values)


def _client(credentials: TraktCredentials, **kwargs) -> TraktClient:
    return TraktClient(
        client_id="client-id",
        client_secret="client-secret",
        credentials=credentials,
        max_attempts=1,
        initial_wait=0,
        max_wait=0,
        **kwargs,
    )


async def _collect(pages) -> list[list[dict]]:
    return [page async for page in pages]


class TestTraktPagination:
    """Paged reads of history and ratings."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_history_reads_all_announced_pages(self):
        route = respx.get(f"{BASE}/sync/history/movies").mock(
            side_effect=[
                httpx.Response(
                    200,
                    json=[history_record(1, 27205, "2023-01-01T10:00:00.000Z")],
                    headers={"X-Pagination-Page-Count": "2"},
                ),
                httpx.Response(
                    200,
                    json=[history_record(2, 603, "2023-01-02T10:00:00.000Z")],
                    headers={"X-Pagination-Page-Count": "2"},
                ),
            ]
        )
        client = _client(_credentials())

        pages = await _collect(client.iter_history_pages())

        assert [len(page) for page in pages] == [1, 1]
        assert route.call_count == 2
        assert route.calls[1].request.url.params["page"] == "2"
        assert route.calls[0].request.url.params["limit"] == "1000"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_requests_carry_authentication_headers(self):
        route = respx.get(f"{BASE}/sync/ratings/movies").mock(
            return_value=httpx.Response(200, json=TRAKT_RATINGS_PAGE)
        )
        client = _client(_credentials())

        pages = await _collect(client.iter_rating_pages())

        assert pages == [TRAKT_RATINGS_PAGE]
        headers = route.calls.last.request.headers
        assert headers["Authorization"] == "Bearer access-token"
        assert headers["trakt-api-key"] == "client-id"
        assert headers["trakt-api-version"] == "2"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_flattened_iteration(self):
        respx.get(f"{BASE}/sync/history/movies").mock(
            return_value=httpx.Response(200, json=TRAKT_HISTORY_PAGE, headers={"X-Pagination-Page-Count": "1"})
        )
        respx.get(f"{BASE}/sync/ratings/movies").mock(
            return_value=httpx.Response(200, json=TRAKT_RATINGS_PAGE, headers={"X-Pagination-Page-Count": "1"})
        )
        client = _client(_credentials())

        history = [record async for record in client.iter_history()]
        ratings = [record async for record in client.iter_ratings()]

        assert [record["id"] for record in history] == [1982346, 1982347]
        assert ratings == TRAKT_RATINGS_PAGE
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_page_ends_iteration(self):
        respx.get(f"{BASE}/sync/history/movies").mock(
            return_value=httpx.Response(200, json=[], headers={"X-Pagination-Page-Count": "5"})
        )
        client = _client(_credentials())

        assert await _collect(client.iter_history_pages()) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_list_body_is_protocol_error(self):
        respx.get(f"{BASE}/sync/history/movies").mock(
            return_value=httpx.Response(200, json={"error": "oops"})
        )
        client = _client(_credentials())

        with pytest.raises(ProtocolError):
            await _collect(client.iter_history_pages())

    @pytest.mark.asyncio
    @respx.mock
    async def test_rejected_token_raises_auth_error(self):
        respx.get(f"{BASE}/sync/history/movies").mock(return_value=httpx.Response(401))
        client = _client(_credentials())

        with pytest.raises(AuthError) as exc_info:
            await _collect(client.iter_history_pages())
        assert exc_info.value.provider == "trakt"


class TestTraktTokenRefresh:
    """Expired OAuth tokens."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_expired_token_is_refreshed_and_reported(self):
        token_route = respx.post(f"{BASE}/oauth/token").mock(
            return_value=httpx.Response(200, json=TRAKT_TOKEN_RESPONSE)
        )
        history_route = respx.get(f"{BASE}/sync/history/movies").mock(
            return_value=httpx.Response(200, json=TRAKT_HISTORY_PAGE)
        )
        callback = MagicMock()
        expired = _credentials(expires_at=datetime.utcnow() - timedelta(hours=1))
        client = _client(expired, on_token_refreshed=callback)

        await _collect(client.iter_history_pages())

        assert token_route.call_count == 1
        assert history_route.calls.last.request.headers["Authorization"] == "Bearer new-access-token"
        refreshed = callback.call_args.args[0]
        assert refreshed.access_token == "new-access-token"
        assert refreshed.refresh_token == "new-refresh-token"
        assert refreshed.expires_at > datetime.utcnow()
        assert client.credentials == refreshed

    @pytest.mark.asyncio
    @respx.mock
    async def test_valid_token_is_not_refreshed(self):
        token_route = respx.post(f"{BASE}/oauth/token")
        respx.get(f"{BASE}/sync/history/movies").mock(return_value=httpx.Response(200, json=[]))
        valid = _credentials(expires_at=datetime.utcnow() + timedelta(days=30))
        client = _client(valid)

        await _collect(client.iter_history_pages())

        assert not token_route.called

    @pytest.mark.asyncio
    async def test_expired_token_without_refresh_token(self):
        expired = _credentials(refresh_token=None, expires_at=datetime.utcnow() - timedelta(seconds=1))
        client = _client(expired)

        with pytest.raises(AuthError):
            await _collect(client.iter_history_pages())

    @pytest.mark.parametrize("status", [400, 401])
    @pytest.mark.asyncio
    @respx.mock
    async def test_refused_refresh_raises_auth_error(self, status: int):
        respx.post(f"{BASE}/oauth/token").mock(return_value=httpx.Response(status))
        expired = _credentials(expires_at=datetime.utcnow() - timedelta(seconds=1))
        callback = MagicMock()
        client = _client(expired, on_token_refreshed=callback)

        with pytest.raises(AuthError):
            await _collect(client.iter_history_pages())
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_client_id_is_configuration_error(self):
        client = TraktClient(client_id=None, client_secret=None, credentials=_credentials())

        with pytest.raises(ValueError):
            await _collect(client.iter_history_pages())


class TestTraktCanonicalPartial:
    """Conversion of Trakt records."""

    @pytest.fixture
    def client(self) -> TraktClient:
        return _client(_credentials())

    def test_source_identity(self, client: TraktClient):
        assert client.kind is SourceKind.SOCIAL
        assert client.name == "trakt"

    def test_history_record(self, client: TraktClient):
        partial = client.to_canonical_partial(TRAKT_HISTORY_PAGE[0])

        assert partial == CanonicalPartial(
            title="Inception",
            tmdb_id=27205,
            trakt_id=16662,
            imdb_id="tt1375666",
            year=2010,
            watch_date=date(2023, 7, 3),
        )

    def test_rating_record(self, client: TraktClient):
        partial = client.to_canonical_partial(TRAKT_RATINGS_PAGE[0])

        assert partial.rating == 9
        assert partial.watch_date is None
        assert partial.tmdb_id == 27205

    def test_watch_date_is_utc_day(self, client: TraktClient):
        record = history_record(1, 27205, "2023-07-03T23:59:59+00:00")

        assert client.to_canonical_partial(record).watch_date == date(2023, 7, 3)

    @pytest.mark.parametrize(
        "record",
        [
            {"watched_at": "2023-07-03T20:15:00.000Z"},
            {"movie": {"title": "x", "ids": []}, "watched_at": "2023-07-03T20:15:00.000Z"},
            {"movie": {"title": "x", "ids": {}}, "watched_at": "yesterday"},
            {"movie": {"title": "x", "ids": {}}, "rating": 11},
            "not a record",
        ],
    )
    def test_malformed_records_raise_protocol_error(self, client: TraktClient, record):
        with pytest.raises(ProtocolError):
            client.to_canonical_partial(record)
