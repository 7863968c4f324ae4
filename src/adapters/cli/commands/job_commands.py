"""
Commandes CLI de supervision de la file de jobs (liste, detail, terminaison).
"""

import asyncio
import json
from datetime import timedelta
from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from src.adapters.cli.helpers import console, status_style, with_container

# Application Typer pour les commandes de la file
jobs_app = typer.Typer(
    name="jobs",
    help="Supervision de la file de jobs",
    rich_markup_mode="rich",
)


def _format_summary(summary: Optional[dict]) -> str:
    if not summary:
        return "-"
    return f"{summary.get('applied', 0)}/{summary.get('skipped', 0)}/{summary.get('failed', 0)}"


@jobs_app.command("list")
def jobs_list(
    user_id: Annotated[
        Optional[int],
        typer.Option("--user", "-u", help="Filtre sur un utilisateur"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Nombre de jobs affiches", min=1),
    ] = 20,
) -> None:
    """Liste les jobs les plus recents."""
    asyncio.run(_jobs_list_async(user_id, limit))


@with_container()
async def _jobs_list_async(container, user_id: Optional[int], limit: int) -> None:
    """Implementation async de la commande jobs list."""
    jobs = container.job_repository().list_jobs(user_id=user_id, limit=limit)
    if not jobs:
        console.print("[yellow]Aucun job.[/yellow]")
        return

    table = Table(title="Jobs")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Type")
    table.add_column("Utilisateur", justify="right")
    table.add_column("Statut")
    table.add_column("Cree le")
    table.add_column("Maj le")
    table.add_column("Appl./Ign./Ech.", justify="right")
    table.add_column("Erreur", overflow="fold")
    for job in jobs:
        style = status_style(job.status)
        failure = job.failure or {}
        table.add_row(
            str(job.id),
            job.type.value,
            str(job.user_id) if job.user_id is not None else "-",
            f"[{style}]{job.status.value}[/{style}]",
            f"{job.created_at:%Y-%m-%d %H:%M}" if job.created_at else "-",
            f"{job.updated_at:%Y-%m-%d %H:%M}" if job.updated_at else "-",
            _format_summary(job.summary),
            failure.get("kind", ""),
        )
    console.print(table)


@jobs_app.command("show")
def jobs_show(
    job_id: Annotated[int, typer.Argument(help="ID du job")],
) -> None:
    """Affiche le detail d'un job (parametres, compteurs, erreur)."""
    asyncio.run(_jobs_show_async(job_id))


@with_container()
async def _jobs_show_async(container, job_id: int) -> None:
    """Implementation async de la commande jobs show."""
    job = container.job_repository().get(job_id)
    if job is None:
        console.print(f"[red]Job {job_id} introuvable.[/red]")
        raise typer.Exit(code=1)
    style = status_style(job.status)
    console.print(
        Panel(
            json.dumps(job.parameters, indent=2, ensure_ascii=False, default=str),
            title=f"Job {job.id} - {job.type.value} - [{style}]{job.status.value}[/{style}]",
        )
    )


@jobs_app.command("terminate")
def jobs_terminate(
    job_id: Annotated[int, typer.Argument(help="ID du job a terminer")],
    reason: Annotated[
        str,
        typer.Option("--reason", "-r", help="Motif enregistre dans _failure"),
    ] = "Terminated by operator",
) -> None:
    """Termine un job en attente ou en cours (passage en failed)."""
    asyncio.run(_jobs_terminate_async(job_id, reason))


@with_container()
async def _jobs_terminate_async(container, job_id: int, reason: str) -> None:
    """Implementation async de la commande jobs terminate."""
    if container.job_repository().terminate(job_id, reason):
        console.print(f"[green]Job {job_id} termine.[/green]")
    else:
        console.print(f"[yellow]Job {job_id} introuvable ou deja termine.[/yellow]")
        raise typer.Exit(code=1)


@jobs_app.command("reset-stale")
def jobs_reset_stale(
    hours: Annotated[
        Optional[int],
        typer.Option("--hours", help="Age minimum des jobs in_progress (defaut: CINESYNC_STALE_JOB_HOURS)", min=1),
    ] = None,
) -> None:
    """Remet en attente les jobs in_progress abandonnes par un worker arrete."""
    asyncio.run(_jobs_reset_stale_async(hours))


@with_container()
async def _jobs_reset_stale_async(container, hours: Optional[int]) -> None:
    """Implementation async de la commande jobs reset-stale."""
    threshold = timedelta(hours=hours or container.config().stale_job_hours)
    count = container.job_repository().reset_stale(threshold)
    console.print(f"[green]{count}[/green] job(s) remis en attente")
