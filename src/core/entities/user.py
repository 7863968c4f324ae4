"""
Identifiants des fournisseurs stockes par utilisateur.

Les clients API les lisent au demarrage du job. Un token Trakt rafraichi
est reecrit dans le stockage utilisateur.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class TraktCredentials:
    """Token OAuth Trakt d'un utilisateur."""

    user_id: int
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        """Vrai si le token est expire a l'instant donne."""
        return self.expires_at is not None and now >= self.expires_at


@dataclass
class JellyfinCredentials:
    """Acces au serveur Jellyfin d'un utilisateur."""

    user_id: int
    server_url: str
    jellyfin_user_id: str
    access_token: str
