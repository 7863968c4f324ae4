"""
Implementation SQLModel du stockage des identifiants fournisseurs.

Comme la file de jobs, chaque operation committe dans sa propre session :
un token Trakt rafraichi doit etre visible des autres workers meme si le
lot du job en cours est annule ensuite.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import select

from src.core.entities.user import JellyfinCredentials, TraktCredentials
from src.core.ports.repositories import ICredentialRepository
from src.infrastructure.persistence.database import session_scope
from src.infrastructure.persistence.models import UserModel


class SQLModelCredentialRepository(ICredentialRepository):
    """Repository SQLModel des identifiants Trakt et Jellyfin."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_trakt_credentials(self, user_id: int) -> Optional[TraktCredentials]:
        with session_scope(self._engine) as session:
            user = session.get(UserModel, user_id)
            if user is None or not user.trakt_access_token or not user.trakt_credentials_valid:
                return None
            return TraktCredentials(
                user_id=user_id,
                access_token=user.trakt_access_token,
                refresh_token=user.trakt_refresh_token,
                expires_at=user.trakt_token_expires_at,
            )

    def save_trakt_token(self, credentials: TraktCredentials) -> None:
        """Reecrit le token sous verrou de ligne (SELECT ... FOR UPDATE)."""
        with session_scope(self._engine) as session:
            statement = (
                select(UserModel).where(UserModel.id == credentials.user_id).with_for_update()
            )
            user = session.exec(statement).first()
            if user is None:
                logger.warning("Utilisateur inconnu, token non sauvegarde", user_id=credentials.user_id)
                return
            user.trakt_access_token = credentials.access_token
            user.trakt_refresh_token = credentials.refresh_token
            user.trakt_token_expires_at = credentials.expires_at
            user.trakt_credentials_valid = True
            session.add(user)
            session.commit()
        logger.debug("Token Trakt sauvegarde", user_id=credentials.user_id)

    def get_jellyfin_credentials(self, user_id: int) -> Optional[JellyfinCredentials]:
        with session_scope(self._engine) as session:
            user = session.get(UserModel, user_id)
            if (
                user is None
                or not user.jellyfin_credentials_valid
                or not (user.jellyfin_server_url and user.jellyfin_user_id and user.jellyfin_access_token)
            ):
                return None
            return JellyfinCredentials(
                user_id=user_id,
                server_url=user.jellyfin_server_url,
                jellyfin_user_id=user.jellyfin_user_id,
                access_token=user.jellyfin_access_token,
            )

    def mark_invalid(self, user_id: int, provider: str) -> None:
        with session_scope(self._engine) as session:
            user = session.get(UserModel, user_id)
            if user is None:
                return
            if provider == "trakt":
                user.trakt_credentials_valid = False
            elif provider == "jellyfin":
                user.jellyfin_credentials_valid = False
            else:
                return
            session.add(user)
            session.commit()
        logger.warning("Identifiants marques invalides", user_id=user_id, provider=provider)
