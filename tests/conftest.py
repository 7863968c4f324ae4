"""
Fixtures pytest partagees pour les tests CineSync.

Ce module contient les fixtures communes utilisees dans les tests:
- Settings de test avec chemins temporaires
- Base SQLite temporaire (engine, stockage, file de jobs, identifiants)
- Mock du client de metadonnees (TMDB) alimente par des MovieDetails
- Contexte de job reclame, pret pour une routine
"""

from datetime import date
from pathlib import Path
from typing import Callable, Iterator, Optional
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import Engine

from src.config import Settings
from src.core.entities.job import Job, JobType
from src.core.ports.api_clients import IMetadataClient, MovieDetails, SearchResult
from src.infrastructure.persistence.database import create_db_engine, init_db
from src.infrastructure.persistence.models import UserModel
from src.infrastructure.persistence.repositories import (
    SQLModelCredentialRepository,
    SQLModelJobRepository,
)
from src.infrastructure.persistence.storage import SQLModelStorage
from src.services.job_context import JobContext
from tests.fixtures.factories import make_details


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """
    Settings de test avec chemins temporaires.

    Utilise tmp_path de pytest pour isoler la base, les caches et les logs
    de chaque test.
    """
    return Settings(
        database_url=f"sqlite:///{tmp_path}/test.db",
        tmdb_api_key="test_api_key",
        api_cache_dir=tmp_path / "cache",
        poster_cache_dir=tmp_path / "posters",
        log_file=tmp_path / "test.log",
        retry_max_attempts=2,
        retry_initial_wait=0,
        retry_max_wait=0,
        worker_poll_interval=0.01,
    )


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    """Engine SQLite sur fichier temporaire, tables creees."""
    engine = init_db(create_db_engine(f"sqlite:///{tmp_path}/cinesync_test.db"))
    yield engine
    engine.dispose()


@pytest.fixture
def storage(engine: Engine) -> Iterator[SQLModelStorage]:
    """Stockage des donnees (une session)."""
    storage = SQLModelStorage(engine)
    yield storage
    storage.close()


@pytest.fixture
def job_repository(engine: Engine) -> SQLModelJobRepository:
    return SQLModelJobRepository(engine)


@pytest.fixture
def credential_repository(engine: Engine) -> SQLModelCredentialRepository:
    return SQLModelCredentialRepository(engine)


@pytest.fixture
def make_user(engine: Engine) -> Callable[..., int]:
    """Cree un utilisateur et retourne son ID."""
    from sqlmodel import Session

    def _make_user(name: str = "alice", **fields) -> int:
        with Session(engine) as session:
            user = UserModel(name=name, **fields)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user.id

    return _make_user


@pytest.fixture
def catalog() -> dict[int, MovieDetails]:
    """Films connus du mock TMDB, par ID TMDB."""
    return {
        27205: make_details(27205, "Inception", date(2010, 7, 15), imdb_id="tt1375666"),
        603: make_details(603, "The Matrix", date(1999, 3, 30), imdb_id="tt0133093"),
        555: make_details(555, "The Example Film", date(2021, 3, 12)),
    }


@pytest.fixture
def mock_metadata_client(catalog: dict[int, MovieDetails]) -> AsyncMock:
    """
    Mock de IMetadataClient pour les tests.

    get_details lit le catalogue (None si absent), search compare les
    titres sans casse, find_by_imdb_id parcourt les imdb_id du catalogue.
    """
    client = AsyncMock(spec=IMetadataClient)

    async def get_details(tmdb_id: int, use_cache: bool = True) -> Optional[MovieDetails]:
        return catalog.get(tmdb_id)

    async def search(query: str, year: Optional[int] = None) -> list[SearchResult]:
        return [
            SearchResult(id=str(details.tmdb_id), title=details.title, year=details.release_date.year)
            for details in catalog.values()
            if details.title.lower() == query.lower()
            and (year is None or details.release_date.year == year)
        ]

    async def find_by_imdb_id(imdb_id: str) -> Optional[int]:
        for details in catalog.values():
            if details.imdb_id == imdb_id:
                return details.tmdb_id
        return None

    client.get_details.side_effect = get_details
    client.search.side_effect = search
    client.find_by_imdb_id.side_effect = find_by_imdb_id
    return client


@pytest.fixture
def make_context(job_repository: SQLModelJobRepository) -> Callable[..., JobContext]:
    """Cree un job, le reclame et retourne son contexte."""

    def _make_context(
        job_type: JobType = JobType.SOCIAL_IMPORT_HISTORY,
        user_id: Optional[int] = 1,
        parameters: Optional[dict] = None,
    ) -> JobContext:
        job = job_repository.create(Job(type=job_type, user_id=user_id, parameters=parameters or {}))
        assert job_repository.claim(job.id)
        return JobContext(job_repository.get(job.id), job_repository)

    return _make_context
