"""
Point d'entrée CLI de CineSync.

Initialise le container DI, configure le logging et fournit les commandes CLI.
"""

from typing import Annotated

import typer
from loguru import logger

from .adapters.cli.commands import (
    cache_posters,
    jobs_app,
    refresh_metadata,
    run_job,
    sync,
    sync_all,
    worker,
)
from .config import Settings
from .container import Container
from .logging_config import configure_logging

__version__ = "0.1.0"

app = typer.Typer(
    name="cinesync",
    help="Synchronisation de l'historique de visionnage de films",
)
container = Container()

# Etat global pour les options de verbosite
state = {"verbose": 0, "quiet": False}


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Augmenter la verbosite (-v, -vv, -vvv)"
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Mode silencieux (erreurs uniquement)"),
    ] = False,
) -> None:
    """CineSync - Historique de visionnage multi-sources."""
    if quiet:
        state["quiet"] = True
    else:
        state["verbose"] = verbose

    settings = get_config()
    configure_logging(
        log_level=_log_level(settings),
        log_file=settings.log_file,
        rotation_size=settings.log_rotation_size,
        retention_count=settings.log_retention_count,
    )


# Worker
app.command()(worker)
app.command(name="run-job")(run_job)

# Mise en file
app.command()(sync)
app.command(name="sync-all")(sync_all)
app.command(name="refresh-metadata")(refresh_metadata)
app.command(name="cache-posters")(cache_posters)

# Monter jobs_app comme sous-commande
app.add_typer(jobs_app, name="jobs")


def get_config() -> Settings:
    """Récupère les paramètres de l'application depuis le container DI."""
    return container.config()


@app.command()
def info() -> None:
    """Affiche la configuration actuelle."""
    config = get_config()
    logger.info("Configuration CineSync")
    typer.echo(f"Base de données : {config.database_url}")
    typer.echo(f"API TMDB : {'activée' if config.tmdb_enabled else 'désactivée'}")
    typer.echo(f"Application Trakt : {'activée' if config.trakt_enabled else 'désactivée'}")
    typer.echo(f"Workers : {config.worker_count} (polling {config.worker_poll_interval}s)")
    typer.echo(f"Précédence des notes : {' > '.join(config.rating_precedence)}")
    typer.echo(f"Cache des posters : {config.poster_cache_dir}")
    typer.echo(f"Niveau de log : {config.log_level}")


@app.command()
def version() -> None:
    """Affiche les informations de version."""
    typer.echo(f"CineSync v{__version__}")


def _log_level(settings: Settings) -> str:
    if state["quiet"]:
        return "ERROR"
    if state["verbose"] >= 1:
        return "DEBUG"
    return settings.log_level


def main() -> None:
    """Point d'entrée de l'application."""
    # Le logging est configure par le callback, selon -v/-q
    app()


if __name__ == "__main__":
    main()
