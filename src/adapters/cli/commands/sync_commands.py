"""
Commandes CLI de mise en file des synchronisations et rafraichissements.

Ces commandes n'importent rien elles-memes : elles creent des jobs que les
workers executeront.
"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from src.adapters.cli.helpers import console, parse_parameters, status_style, with_container
from src.core.entities.job import Job
from src.services.orchestrator import SyncSource


def _print_jobs(jobs: list[Job]) -> None:
    if not jobs:
        console.print("[yellow]Aucun job cree.[/yellow]")
        return
    table = Table(title="Jobs mis en file")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Type")
    table.add_column("Utilisateur", justify="right")
    table.add_column("Statut")
    for job in jobs:
        style = status_style(job.status)
        table.add_row(
            str(job.id),
            job.type.value,
            str(job.user_id) if job.user_id is not None else "-",
            f"[{style}]{job.status.value}[/{style}]",
        )
    console.print(table)


def sync(
    user_id: Annotated[int, typer.Argument(help="ID de l'utilisateur")],
    source: Annotated[
        SyncSource,
        typer.Argument(help="Source a synchroniser", case_sensitive=False),
    ],
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="Fichier CSV (sources csv_history et csv_ratings)"),
    ] = None,
    date_format: Annotated[
        Optional[str],
        typer.Option("--date-format", help="Format des dates du CSV (ex: d/m/Y ou %d/%m/%Y)"),
    ] = None,
    param: Annotated[
        Optional[list[str]],
        typer.Option("--param", "-p", help="Parametre supplementaire KEY=VALUE (repetable)"),
    ] = None,
) -> None:
    """Met en file la synchronisation d'une source pour un utilisateur."""
    try:
        parameters = parse_parameters(param)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)
    if file is not None:
        parameters["file"] = str(file.expanduser().resolve())
    if date_format is not None:
        parameters["date_format"] = date_format
    asyncio.run(_sync_async(user_id, source, parameters))


@with_container()
async def _sync_async(container, user_id: int, source: SyncSource, parameters: dict) -> None:
    """Implementation async de la commande sync."""
    try:
        jobs = container.orchestrator().enqueue_sync(user_id, source, parameters)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)
    _print_jobs(jobs)


def sync_all(
    user_id: Annotated[int, typer.Argument(help="ID de l'utilisateur")],
) -> None:
    """Met en file toutes les sources configurees d'un utilisateur."""
    asyncio.run(_sync_all_async(user_id))


@with_container()
async def _sync_all_async(container, user_id: int) -> None:
    """Implementation async de la commande sync-all."""
    _print_jobs(container.orchestrator().enqueue_sync_all(user_id))


def refresh_metadata(
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", help="Nombre maximum de films a rafraichir", min=1),
    ] = None,
) -> None:
    """Met en file un rafraichissement des metadonnees TMDB."""
    asyncio.run(_refresh_metadata_async(limit))


@with_container()
async def _refresh_metadata_async(container, limit: Optional[int]) -> None:
    """Implementation async de la commande refresh-metadata."""
    _print_jobs([container.orchestrator().enqueue_metadata_refresh(limit)])


def cache_posters(
    force: Annotated[
        bool,
        typer.Option("--force", help="Retelecharge aussi les posters deja en cache"),
    ] = False,
) -> None:
    """Met en file le telechargement des posters manquants."""
    asyncio.run(_cache_posters_async(force))


@with_container()
async def _cache_posters_async(container, force: bool) -> None:
    """Implementation async de la commande cache-posters."""
    _print_jobs([container.orchestrator().enqueue_poster_cache_refresh(force)])
