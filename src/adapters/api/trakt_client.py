"""
Client Trakt (service social de suivi de films).

Expose l'historique de visionnage et les notes d'un utilisateur sous forme
de pages paginees, et convertit chaque enregistrement en CanonicalPartial.

Authentification : header trakt-api-key (client de l'application) et token
OAuth Bearer de l'utilisateur. Un token expire est rafraichi avant la
premiere requete puis reecrit via le callback on_token_refreshed.

Reference API: https://trakt.docs.apiary.io
"""

from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.retry import decode_json, request_with_retry
from src.core.entities.history import is_valid_rating
from src.core.entities.user import TraktCredentials
from src.core.exceptions import AuthError, ProtocolError
from src.core.ports.api_clients import ISocialClient
from src.core.value_objects import CanonicalPartial, SourceKind

PAGE_COUNT_HEADER = "X-Pagination-Page-Count"
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


def _parse_timestamp(value: Any) -> datetime:
    """Horodatage ISO 8601 Trakt (ex: 2024-01-01T20:00:00.000Z)."""
    if not isinstance(value, str):
        raise ProtocolError(f"Trakt timestamp is not a string: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ProtocolError(f"Invalid Trakt timestamp: {value!r}") from e


class TraktClient(ISocialClient):
    """
    Client API Trakt pour un utilisateur.

    Example:
        client = TraktClient(client_id="xxx", client_secret="yyy", credentials=creds)
        async for page in client.iter_history_pages():
            for record in page:
                partial = client.to_canonical_partial(record)
        await client.close()
    """

    BASE_URL = "https://api.trakt.tv"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        credentials: TraktCredentials,
        on_token_refreshed: Optional[Callable[[TraktCredentials], None]] = None,
        base_url: str = BASE_URL,
        page_size: int = 1000,
        timeout: float = 30.0,
        max_attempts: int = 5,
        initial_wait: float = 1.0,
        max_wait: float = 60.0,
    ) -> None:
        """
        Initialise le client Trakt.

        Args:
            client_id: ID client de l'application Trakt (header trakt-api-key)
            client_secret: Secret de l'application, requis pour rafraichir un token
            credentials: Token OAuth de l'utilisateur
            on_token_refreshed: Appele avec le nouveau token apres rafraichissement
            base_url: URL de l'API
            page_size: Enregistrements par page (max 1000)
            timeout: Timeout par requete en secondes
            max_attempts, initial_wait, max_wait: Politique de retry
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._credentials = credentials
        self._on_token_refreshed = on_token_refreshed
        self._base_url = base_url
        self._page_size = page_size
        self._timeout = timeout
        self._retry = {
            "max_attempts": max_attempts,
            "initial_wait": initial_wait,
            "max_wait": max_wait,
        }
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def kind(self) -> SourceKind:
        return SourceKind.SOCIAL

    @property
    def name(self) -> str:
        return "trakt"

    @property
    def credentials(self) -> TraktCredentials:
        return self._credentials

    def _get_client(self) -> httpx.AsyncClient:
        """Retourne le client HTTP, le cree si necessaire (lazy init)."""
        if self._client is None or self._client.is_closed:
            if not self._client_id:
                raise ValueError("Trakt client id is not configured (CINESYNC_TRAKT_CLIENT_ID)")
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Content-Type": "application/json",
                    "trakt-api-key": self._client_id,
                    "trakt-api-version": "2",
                },
                timeout=self._timeout,
            )
        return self._client

    async def _ensure_token(self) -> str:
        """
        S'assure que le token de l'utilisateur est utilisable.

        Raises:
            AuthError: Token expire sans refresh token, ou rafraichissement refuse
        """
        now = datetime.utcnow()
        if not self._credentials.is_expired(now):
            return self._credentials.access_token

        if not self._credentials.refresh_token or not self._client_secret:
            raise AuthError(self.name, "Trakt token expired and cannot be refreshed")

        logger.info("Rafraichissement du token Trakt", user_id=self._credentials.user_id)
        try:
            response = await request_with_retry(
                self._get_client(),
                "POST",
                "/oauth/token",
                provider=self.name,
                json={
                    "refresh_token": self._credentials.refresh_token,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "redirect_uri": OOB_REDIRECT_URI,
                    "grant_type": "refresh_token",
                },
                **self._retry,
            )
        except ProtocolError as e:
            # 400 invalid_grant : refresh token revoque ou deja utilise
            raise AuthError(self.name, f"Trakt refused the token refresh: {e}") from e
        data = decode_json(response, self.name)
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ProtocolError("Trakt token response without access_token")

        expires_in = data.get("expires_in")
        self._credentials = TraktCredentials(
            user_id=self._credentials.user_id,
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or self._credentials.refresh_token,
            expires_at=now + timedelta(seconds=expires_in) if expires_in else None,
        )
        if self._on_token_refreshed is not None:
            self._on_token_refreshed(self._credentials)
        return self._credentials.access_token

    async def _iter_pages(self, path: str) -> AsyncIterator[list[dict[str, Any]]]:
        """
        Parcourt un endpoint pagine page par page.

        S'arrete a la derniere page annoncee par X-Pagination-Page-Count
        ou a la premiere page vide.
        """
        page = 1
        while True:
            token = await self._ensure_token()
            response = await request_with_retry(
                self._get_client(),
                "GET",
                path,
                provider=self.name,
                params={"page": page, "limit": self._page_size},
                headers={"Authorization": f"Bearer {token}"},
                **self._retry,
            )
            records = decode_json(response, self.name)
            if not isinstance(records, list):
                raise ProtocolError(f"Trakt {path} did not return a list")

            logger.debug("Page Trakt recue", path=path, page=page, count=len(records))
            if not records:
                return
            yield records

            page_count = response.headers.get(PAGE_COUNT_HEADER)
            if page_count is None or not page_count.isdigit() or page >= int(page_count):
                return
            page += 1

    def iter_history_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        return self._iter_pages("/sync/history/movies")

    def iter_rating_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        return self._iter_pages("/sync/ratings/movies")

    async def iter_history(self) -> AsyncIterator[dict[str, Any]]:
        """Evenements de visionnage un par un."""
        async for page in self.iter_history_pages():
            for record in page:
                yield record

    async def iter_ratings(self) -> AsyncIterator[dict[str, Any]]:
        """Notes une par une."""
        async for page in self.iter_rating_pages():
            for record in page:
                yield record

    def to_canonical_partial(self, record: Any) -> CanonicalPartial:
        """
        Convertit un enregistrement d'historique ou de note.

        Un enregistrement d'historique porte watched_at, une note porte
        rating et rated_at.

        Raises:
            ProtocolError: Enregistrement malformé
        """
        if not isinstance(record, dict) or not isinstance(record.get("movie"), dict):
            raise ProtocolError(f"Trakt record without movie: {record!r}")

        movie = record["movie"]
        ids = movie.get("ids", {})
        if not isinstance(ids, dict):
            raise ProtocolError(f"Trakt movie ids malformed: {ids!r}")

        watch_date = None
        rating = None
        if "rating" in record:
            rating = record["rating"]
            if not is_valid_rating(rating):
                raise ProtocolError(f"Trakt rating out of range: {rating!r}")
        else:
            watch_date = _parse_timestamp(record.get("watched_at")).date()

        tmdb_id = ids.get("tmdb")
        trakt_id = ids.get("trakt")
        year = movie.get("year")
        return CanonicalPartial(
            title=movie.get("title") or "",
            tmdb_id=tmdb_id if isinstance(tmdb_id, int) else None,
            trakt_id=trakt_id if isinstance(trakt_id, int) else None,
            imdb_id=ids.get("imdb") or None,
            year=year if isinstance(year, int) else None,
            watch_date=watch_date,
            rating=rating,
        )

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
