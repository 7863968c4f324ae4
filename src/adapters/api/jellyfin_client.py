"""
Client Jellyfin (serveur media personnel).

Parcourt la bibliotheque de films d'un utilisateur Jellyfin, restreinte aux
items portant un ID TMDB, et expose pour chacun le statut "vu" et la date
de derniere lecture.

Authentification : header X-Emby-Token avec le token d'acces de l'utilisateur.
"""

from collections.abc import AsyncIterator
from datetime import date
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.retry import decode_json, request_with_retry
from src.core.entities.media_server import MediaServerItem
from src.core.entities.user import JellyfinCredentials
from src.core.exceptions import ProtocolError
from src.core.ports.api_clients import IMediaServerClient
from src.core.value_objects import CanonicalPartial, SourceKind


def _parse_played_date(value: Any) -> Optional[date]:
    """Jour de LastPlayedDate (ex: 2023-05-01T20:15:30.0000000Z)."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ProtocolError(f"Jellyfin LastPlayedDate is not a string: {value!r}")
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise ProtocolError(f"Invalid Jellyfin LastPlayedDate: {value!r}") from e


class JellyfinClient(IMediaServerClient):
    """
    Client Jellyfin pour la bibliotheque de films d'un utilisateur.

    Example:
        client = JellyfinClient(credentials=creds)
        async for page in client.iter_item_pages():
            items = [client.parse_item(raw) for raw in page]
        await client.close()
    """

    def __init__(
        self,
        credentials: JellyfinCredentials,
        page_size: int = 1000,
        timeout: float = 30.0,
        max_attempts: int = 5,
        initial_wait: float = 1.0,
        max_wait: float = 60.0,
    ) -> None:
        """
        Args:
            credentials: URL du serveur, ID utilisateur Jellyfin et token
            page_size: Items par page (Limit)
            timeout: Timeout par requete en secondes
            max_attempts, initial_wait, max_wait: Politique de retry
        """
        self._credentials = credentials
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
        return SourceKind.MEDIA_SERVER

    @property
    def name(self) -> str:
        return "jellyfin"

    def _get_client(self) -> httpx.AsyncClient:
        """Retourne le client HTTP, le cree si necessaire (lazy init)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._credentials.server_url.rstrip("/"),
                headers={
                    "Accept": "application/json",
                    "X-Emby-Token": self._credentials.access_token,
                },
                timeout=self._timeout,
            )
        return self._client

    async def iter_item_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """
        Parcourt les films de l'utilisateur par pages de page_size items.

        S'arrete quand StartIndex atteint TotalRecordCount ou sur une page vide.
        """
        path = f"/Users/{self._credentials.jellyfin_user_id}/Items"
        start_index = 0
        while True:
            response = await request_with_retry(
                self._get_client(),
                "GET",
                path,
                provider=self.name,
                params={
                    "Recursive": "true",
                    "IncludeItemTypes": "Movie",
                    "hasTmdbId": "true",
                    "filters": "IsNotFolder",
                    "fields": "ProviderIds",
                    "StartIndex": start_index,
                    "Limit": self._page_size,
                },
                **self._retry,
            )
            data = decode_json(response, self.name)
            if not isinstance(data, dict) or not isinstance(data.get("Items"), list):
                raise ProtocolError("Jellyfin items response without Items list")

            items = data["Items"]
            total = data.get("TotalRecordCount")
            logger.debug(
                "Page Jellyfin recue", start_index=start_index, count=len(items), total=total
            )
            if not items:
                return
            yield items

            start_index += len(items)
            if not isinstance(total, int) or start_index >= total:
                return

    def parse_item(self, raw: dict[str, Any]) -> Optional[MediaServerItem]:
        """
        Convertit un item Jellyfin.

        Returns:
            MediaServerItem, ou None si l'item n'a pas d'ID TMDB

        Raises:
            ProtocolError: Item sans Id, ID TMDB non numerique, ProviderIds ou UserData invalides
        """
        if not isinstance(raw, dict) or not raw.get("Id"):
            raise ProtocolError(f"Jellyfin item without Id: {raw!r}")

        provider_ids = raw.get("ProviderIds", {})
        if not isinstance(provider_ids, dict):
            raise ProtocolError(f"Jellyfin item {raw['Id']} has malformed ProviderIds")
        tmdb_value = provider_ids.get("Tmdb")
        if not tmdb_value:
            return None
        try:
            tmdb_id = int(tmdb_value)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Jellyfin item {raw['Id']} has invalid Tmdb id {tmdb_value!r}") from e

        user_data = raw.get("UserData", {})
        if not isinstance(user_data, dict):
            raise ProtocolError(f"Jellyfin item {raw['Id']} has malformed UserData")

        year = raw.get("ProductionYear")
        return MediaServerItem(
            item_id=str(raw["Id"]),
            tmdb_id=tmdb_id,
            title=raw.get("Name") or "",
            year=year if isinstance(year, int) else None,
            imdb_id=provider_ids.get("Imdb") or None,
            watched=bool(user_data.get("Played", False)),
            last_watch_date=_parse_played_date(user_data.get("LastPlayedDate")),
        )

    def to_canonical_partial(self, record: Any) -> CanonicalPartial:
        """
        Convertit un item (brut ou deja analyse) en CanonicalPartial.

        La date de visionnage n'est renseignee que pour un item vu.
        """
        item = record if isinstance(record, MediaServerItem) else self.parse_item(record)
        if item is None:
            raise ProtocolError("Jellyfin item without Tmdb id")
        return CanonicalPartial(
            title=item.title,
            tmdb_id=item.tmdb_id,
            jellyfin_id=item.item_id,
            imdb_id=item.imdb_id,
            year=item.year,
            watch_date=item.last_watch_date if item.watched else None,
        )

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
