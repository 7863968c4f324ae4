"""
Configuration de la base de donnees pour CineSync.

Ce module fournit :
- Creation de l'engine (SQLite ou MySQL selon l'URL)
- Engine global paresseux
- Fonction d'initialisation des tables (developpement et tests ; en
  production le schema est gere par les migrations externes)
- Session courte par operation, erreurs SQLAlchemy converties en StorageError

La base de donnees est configuree via CINESYNC_DATABASE_URL (defaut: sqlite:///cinesync.db).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from src.core.exceptions import StorageError

# Engine global - initialise lors du premier appel a get_engine()
_engine: Optional[Engine] = None


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Cree un engine pour l'URL donnee.

    SQLite : le repertoire parent du fichier est cree, l'acces multi-thread
    est autorise et un delai d'attente couvre les verrous entre workers.
    Autres moteurs : pool_pre_ping pour les connexions longues des workers.
    """
    if database_url.startswith("sqlite"):
        if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            db_path = Path(database_url.replace("sqlite:///", "", 1))
            db_path.parent.mkdir(exist_ok=True, parents=True)
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def get_engine() -> Engine:
    """
    Retourne l'engine global, en le creant si necessaire.

    Utilise la configuration de l'application pour l'URL de la BDD. Chaque
    processus worker cree son propre engine.
    """
    global _engine
    if _engine is None:
        from src.config import Settings

        _engine = create_db_engine(Settings().database_url)
    return _engine


def init_db(engine: Optional[Engine] = None) -> Engine:
    """
    Cree toutes les tables si elles n'existent pas.

    Importe les modeles pour enregistrer leurs metadonnees dans
    SQLModel.metadata avant la creation.

    Returns:
        L'engine initialise
    """
    # Import ici pour eviter les imports circulaires
    from src.infrastructure.persistence import models  # noqa: F401

    engine = engine or get_engine()
    SQLModel.metadata.create_all(engine)
    logger.debug("Base de donnees initialisee", url=str(engine.url))
    return engine


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """
    Session courte pour une operation (file de jobs, identifiants).

    Raises:
        StorageError: Erreur de la base (verrou SQLite, connexion perdue...)
    """
    try:
        with Session(engine) as session:
            yield session
    except SQLAlchemyError as e:
        raise StorageError(str(e)) from e
