"""
Module de persistance pour CineSync.

Ce module fournit l'infrastructure de stockage utilisant SQLModel (SQLAlchemy),
pour SQLite ou MySQL :

- database.py : Creation de l'engine, initialisation des tables
- models.py : Modeles SQLModel representant les tables
- storage.py : Facade transactionnelle des repositories de donnees
- repositories/ : Implementations des ports repository

Les modeles ici sont des adapters de persistance, distincts des entites de domaine
(dataclass dans core/entities/). La conversion entre les deux se fait dans les
repositories.

Usage:
    from src.infrastructure.persistence import create_db_engine, init_db

    engine = init_db(create_db_engine("sqlite:///cinesync.db"))
"""

from src.infrastructure.persistence.database import (
    create_db_engine,
    get_engine,
    init_db,
)
from src.infrastructure.persistence.models import (
    JobModel,
    MediaServerCacheModel,
    MovieModel,
    RatingModel,
    UserModel,
    WatchDateModel,
)
from src.infrastructure.persistence.storage import SQLModelStorage

__all__ = [
    "create_db_engine",
    "get_engine",
    "init_db",
    "SQLModelStorage",
    "MovieModel",
    "WatchDateModel",
    "RatingModel",
    "MediaServerCacheModel",
    "JobModel",
    "UserModel",
]
