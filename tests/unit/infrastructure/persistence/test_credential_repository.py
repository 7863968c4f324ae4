"""
Tests pour SQLModelCredentialRepository.
"""

from datetime import datetime

from src.core.entities.user import JellyfinCredentials, TraktCredentials
from src.infrastructure.persistence.repositories import SQLModelCredentialRepository

JELLYFIN_FIELDS = {
    "jellyfin_server_url": "http://jellyfin.local:8096",
    "jellyfin_user_id": "u-42",
    "jellyfin_access_token": "jf-token",
}


class TestTraktCredentials:
    """Lecture et reecriture du token Trakt."""

    def test_user_without_token(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user()
        assert credential_repository.get_trakt_credentials(user_id) is None

    def test_unknown_user(self, credential_repository: SQLModelCredentialRepository):
        assert credential_repository.get_trakt_credentials(404) is None
        assert credential_repository.get_jellyfin_credentials(404) is None

    def test_get_credentials(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(
            trakt_access_token="access",
            trakt_refresh_token="refresh",
            trakt_token_expires_at=datetime(2030, 1, 1),
        )

        assert credential_repository.get_trakt_credentials(user_id) == TraktCredentials(
            user_id=user_id,
            access_token="access",
            refresh_token="refresh",
            expires_at=datetime(2030, 1, 1),
        )

    def test_save_refreshed_token(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(trakt_access_token="old", trakt_refresh_token="old-refresh")

        credential_repository.save_trakt_token(
            TraktCredentials(user_id=user_id, access_token="new", refresh_token="new-refresh")
        )

        creds = credential_repository.get_trakt_credentials(user_id)
        assert creds.access_token == "new"
        assert creds.refresh_token == "new-refresh"

    def test_save_token_for_unknown_user(self, credential_repository: SQLModelCredentialRepository):
        credential_repository.save_trakt_token(TraktCredentials(user_id=404, access_token="x"))
        assert credential_repository.get_trakt_credentials(404) is None


class TestInvalidCredentials:
    """Marquage des identifiants refuses par un fournisseur."""

    def test_mark_trakt_invalid(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(trakt_access_token="access", **JELLYFIN_FIELDS)

        credential_repository.mark_invalid(user_id, "trakt")

        assert credential_repository.get_trakt_credentials(user_id) is None
        assert credential_repository.get_jellyfin_credentials(user_id) is not None

    def test_mark_jellyfin_invalid(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(**JELLYFIN_FIELDS)
        assert credential_repository.get_jellyfin_credentials(user_id) == JellyfinCredentials(
            user_id=user_id,
            server_url="http://jellyfin.local:8096",
            jellyfin_user_id="u-42",
            access_token="jf-token",
        )

        credential_repository.mark_invalid(user_id, "jellyfin")

        assert credential_repository.get_jellyfin_credentials(user_id) is None

    def test_unknown_provider_is_ignored(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(trakt_access_token="access")

        credential_repository.mark_invalid(user_id, "tmdb")

        assert credential_repository.get_trakt_credentials(user_id) is not None

    def test_new_token_revalidates(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(trakt_access_token="access")
        credential_repository.mark_invalid(user_id, "trakt")

        credential_repository.save_trakt_token(TraktCredentials(user_id=user_id, access_token="fresh"))

        assert credential_repository.get_trakt_credentials(user_id).access_token == "fresh"

    def test_incomplete_jellyfin_access(self, credential_repository: SQLModelCredentialRepository, make_user):
        user_id = make_user(jellyfin_server_url="http://jellyfin.local:8096")
        assert credential_repository.get_jellyfin_credentials(user_id) is None
