"""
Implementation SQLModel du cache media-server par utilisateur.
"""

from datetime import datetime

from sqlalchemy import delete
from sqlmodel import Session, col, select

from src.core.entities.media_server import MediaServerCacheEntry
from src.core.ports.repositories import IMediaServerCacheRepository
from src.infrastructure.persistence.models import MediaServerCacheModel

_DELETE_CHUNK = 500


class SQLModelMediaServerCacheRepository(IMediaServerCacheRepository):
    """
    Repository SQLModel du cache des items Jellyfin.

    Une entree par (utilisateur, item). Les mises a jour se font par
    suppression puis insertion.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def _to_entity(model: MediaServerCacheModel) -> MediaServerCacheEntry:
        return MediaServerCacheEntry(
            user_id=model.user_id,
            item_id=model.jellyfin_item_id,
            tmdb_id=model.tmdb_id,
            watched=model.watched,
            last_watch_date=model.last_watch_date,
            cached_at=model.created_at,
        )

    def list_for_user(self, user_id: int) -> dict[str, MediaServerCacheEntry]:
        statement = select(MediaServerCacheModel).where(MediaServerCacheModel.user_id == user_id)
        return {
            model.jellyfin_item_id: self._to_entity(model)
            for model in self._session.exec(statement).all()
        }

    def replace(self, entry: MediaServerCacheEntry) -> None:
        self._session.execute(
            delete(MediaServerCacheModel).where(
                col(MediaServerCacheModel.user_id) == entry.user_id,
                col(MediaServerCacheModel.jellyfin_item_id) == entry.item_id,
            )
        )
        self._session.add(
            MediaServerCacheModel(
                user_id=entry.user_id,
                jellyfin_item_id=entry.item_id,
                tmdb_id=entry.tmdb_id,
                watched=entry.watched,
                last_watch_date=entry.last_watch_date,
                created_at=entry.cached_at or datetime.utcnow(),
            )
        )
        self._session.flush()

    def delete_except(self, user_id: int, keep_item_ids: set[str]) -> int:
        statement = select(MediaServerCacheModel.jellyfin_item_id).where(
            MediaServerCacheModel.user_id == user_id
        )
        stale = [item_id for item_id in self._session.exec(statement).all() if item_id not in keep_item_ids]

        # Suppression par paquets (limite de variables SQLite)
        for start in range(0, len(stale), _DELETE_CHUNK):
            chunk = stale[start:start + _DELETE_CHUNK]
            self._session.execute(
                delete(MediaServerCacheModel).where(
                    col(MediaServerCacheModel.user_id) == user_id,
                    col(MediaServerCacheModel.jellyfin_item_id).in_(chunk),
                )
            )
        self._session.flush()
        return len(stale)
