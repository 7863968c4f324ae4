"""
Configuration du logging de l'application via loguru.

Fournit un logging structuré avec :
- Sortie console : lisible par l'humain, colorée, préfixée par le worker et le job
- Sortie fichier : sérialisée en JSON, avec rotation, pour l'analyse historique
- Redirection des loggers stdlib (httpx, sqlalchemy) vers loguru

Les services attachent le contexte du job courant via logger.bind(job_id=..., user_id=...),
ce contexte se retrouve dans le champ "extra" des logs JSON.
"""

import logging
import sys
from pathlib import Path

from loguru import logger

# Bibliothèques qui journalisent via le module logging standard
_STDLIB_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "tenacity")


class InterceptHandler(logging.Handler):
    """Transmet les enregistrements du module logging à loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(
    log_level: str = "INFO",
    log_file: Path = Path("logs/cinesync.log"),
    rotation_size: str = "10 MB",
    retention_count: int = 5,
    worker_name: str = "main",
) -> None:
    """Configure le logging de l'application.

    Args :
        log_level : Niveau de log minimum pour la sortie console (DEBUG, INFO, WARNING, ERROR)
        log_file : Chemin vers le fichier de log
        rotation_size : Taille maximale du fichier avant rotation (ex: "10 MB", "1 GB")
        retention_count : Nombre de fichiers rotatifs à conserver
        worker_name : Nom du processus affiché en console (plusieurs workers en parallèle)
    """
    # Supprime le handler par défaut ; job_id vaut "-" hors d'un job
    logger.remove()
    logger.configure(extra={"worker": worker_name, "job_id": "-"})

    # Handler console - lisible par l'humain
    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<magenta>{extra[worker]}</magenta> job=<magenta>{extra[job_id]}</magenta> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    # Handler fichier - JSON pour l'analyse
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level="DEBUG",  # Capture tous les niveaux (pages API en DEBUG)
        format="{message}",
        serialize=True,  # Sortie JSON
        rotation=rotation_size,
        retention=retention_count,
        compression="zip",
        enqueue=True,  # Sûr entre processus workers
    )

    # httpx journalise chaque requête en INFO : seulement les avertissements
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.WARNING, force=True)
    for name in _STDLIB_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging configuré", log_file=str(log_file), worker=worker_name)
