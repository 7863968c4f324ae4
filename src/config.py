"""
Configuration de l'application via pydantic-settings.

La configuration est chargée depuis les variables d'environnement avec le préfixe CINESYNC_,
et peut optionnellement être fournie via un fichier .env. Elle est lue une seule fois
au démarrage du processus.

Les clés API (TMDB, Trakt) sont optionnelles - les jobs correspondants échouent si non fournies.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Trouver le fichier .env à la racine du projet (parent de src/)
_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Paramètres de l'application avec support des variables d'environnement.

    Tous les paramètres peuvent être surchargés via des variables d'environnement
    avec le préfixe CINESYNC_.
    Exemple : CINESYNC_WORKER_COUNT=4

    Les chemins sont automatiquement étendus (~ -> répertoire home).
    """

    model_config = SettingsConfigDict(
        env_prefix="CINESYNC_",
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Base de données (sqlite:///... ou mysql+pymysql://...)
    database_url: str = Field(default="sqlite:///cinesync.db")

    # TMDB (API de métadonnées de référence)
    tmdb_api_key: Optional[str] = Field(default=None)
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_image_base_url: str = Field(default="https://image.tmdb.org/t/p/original")
    tmdb_language: str = Field(default="en-US")
    api_cache_dir: Path = Field(default=Path(".cache/api"))

    # Trakt (service social) - les tokens sont stockés par utilisateur
    trakt_client_id: Optional[str] = Field(default=None)
    trakt_client_secret: Optional[str] = Field(default=None)
    trakt_base_url: str = Field(default="https://api.trakt.tv")

    # HTTP : timeout par requête et politique de retry
    http_timeout: float = Field(default=30.0, gt=0)
    retry_max_attempts: int = Field(default=5, ge=1)
    retry_initial_wait: float = Field(default=1.0, ge=0)
    retry_max_wait: float = Field(default=60.0, ge=0)
    page_size: int = Field(default=1000, ge=1, le=1000)

    # Worker
    worker_count: int = Field(default=1, ge=1)
    worker_poll_interval: float = Field(default=5.0, gt=0)
    stale_job_hours: int = Field(default=6, ge=1)

    # Rafraîchissement des métadonnées et cache des posters
    metadata_refresh_limit: int = Field(default=200, ge=1)
    poster_cache_dir: Path = Field(default=Path("storage/images"))

    # Réconciliation
    rating_precedence: list[str] = Field(default=["social", "csv", "media_server"])
    protocol_error_threshold: float = Field(default=0.10, ge=0, le=1)

    # Logging (fichier + stderr, rotation 10MB, 5 fichiers de rétention)
    log_level: str = Field(default="INFO")
    log_file: Path = Field(default=Path("logs/cinesync.log"))
    log_rotation_size: str = Field(default="10 MB")
    log_retention_count: int = Field(default=5)

    @field_validator("api_cache_dir", "poster_cache_dir", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Étend ~ vers le répertoire home dans les chemins."""
        return Path(v).expanduser()

    @property
    def tmdb_enabled(self) -> bool:
        """Vérifie si l'API TMDB est configurée."""
        return self.tmdb_api_key is not None

    @property
    def trakt_enabled(self) -> bool:
        """Vérifie si l'application Trakt est configurée."""
        return self.trakt_client_id is not None
