"""
Utilitaires partages pour les commandes CLI de CineSync.

Ce module fournit :
- with_container : decorateur injectant un container initialise
- console : instance Rich Console partagee
- parse_parameters : lecture des parametres KEY=VALUE d'un job
- status_style : couleur Rich d'un statut de job
"""

import json
from functools import wraps
from typing import Any, Optional

from rich.console import Console

from src.container import Container
from src.core.entities.job import JobStatus

console = Console()

_STATUS_STYLES = {
    JobStatus.WAITING: "yellow",
    JobStatus.IN_PROGRESS: "cyan",
    JobStatus.DONE: "green",
    JobStatus.FAILED: "red",
}


def with_container(requires_db: bool = True):
    """
    Decorateur qui injecte un container initialise en premier argument.

    Args:
        requires_db: Si True (defaut), initialise la base de donnees.

    Usage:
        @with_container()
        async def my_command(container, ...):
            config = container.config()
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            container = Container()
            if requires_db:
                container.database.init()
            return await func(container, *args, **kwargs)
        return wrapper
    return decorator


def parse_parameters(values: Optional[list[str]]) -> dict[str, Any]:
    """
    Convertit des options KEY=VALUE en parametres de job.

    La valeur est lue en JSON quand c'est possible (nombres, booleens,
    listes), sinon conservee comme chaine.

    Raises:
        ValueError: Option sans '='
    """
    parameters: dict[str, Any] = {}
    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid parameter '{item}', expected KEY=VALUE")
        try:
            parameters[key] = json.loads(raw)
        except json.JSONDecodeError:
            parameters[key] = raw
    return parameters


def status_style(status: JobStatus) -> str:
    return _STATUS_STYLES.get(status, "white")
