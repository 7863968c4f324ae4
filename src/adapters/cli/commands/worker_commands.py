"""
Commandes CLI du worker de jobs (boucle de polling et execution unitaire).
"""

import asyncio
import multiprocessing
from typing import Annotated, Optional

import typer
from loguru import logger

from src.adapters.cli.helpers import console, with_container
from src.container import Container
from src.logging_config import configure_logging


def _configure_process_logging(container: Container, worker_name: str) -> None:
    settings = container.config()
    configure_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        rotation_size=settings.log_rotation_size,
        retention_count=settings.log_retention_count,
        worker_name=worker_name,
    )


async def _run_worker_loop(container: Container, max_jobs: Optional[int]) -> int:
    worker = container.worker()
    try:
        return await worker.run(max_jobs=max_jobs)
    finally:
        await container.tmdb_client().close()


def _worker_process(index: int, max_jobs: Optional[int]) -> None:
    """Point d'entree d'un processus worker (un container par processus)."""
    container = Container()
    _configure_process_logging(container, f"worker-{index}")
    container.database.init()
    logger.info("Worker demarre", worker=index)
    try:
        processed = asyncio.run(_run_worker_loop(container, max_jobs))
        logger.info("Worker arrete", worker=index, processed=processed)
    except KeyboardInterrupt:
        logger.info("Worker interrompu", worker=index)


def worker(
    workers: Annotated[
        Optional[int],
        typer.Option(
            "--workers", "-w",
            help="Nombre de processus workers (defaut: CINESYNC_WORKER_COUNT)",
            min=1,
        ),
    ] = None,
    max_jobs: Annotated[
        Optional[int],
        typer.Option(
            "--max-jobs",
            help="Arrete chaque worker apres ce nombre de jobs",
            min=1,
        ),
    ] = None,
) -> None:
    """Lance le(s) worker(s) de la file de jobs."""
    count = workers or Container().config().worker_count
    if count == 1:
        _worker_process(0, max_jobs)
        return

    # spawn : chaque processus recree son engine et ses clients HTTP
    ctx = multiprocessing.get_context("spawn")
    processes = [
        ctx.Process(target=_worker_process, args=(index, max_jobs), name=f"cinesync-worker-{index}")
        for index in range(count)
    ]
    console.print(f"[cyan]Demarrage de {count} workers[/cyan]")
    for process in processes:
        process.start()
    try:
        for process in processes:
            process.join()
    except KeyboardInterrupt:
        console.print("[yellow]Arret des workers...[/yellow]")
        for process in processes:
            process.terminate()
            process.join()


def run_job(
    job_id: Annotated[int, typer.Argument(help="ID du job a executer")],
) -> None:
    """Execute un job precis puis quitte (code 0 si done, 1 sinon)."""
    code = asyncio.run(_run_job_async(job_id))
    raise typer.Exit(code=code)


@with_container()
async def _run_job_async(container, job_id: int) -> int:
    """Implementation async de la commande run-job."""
    try:
        return await container.worker().process_job(job_id)
    finally:
        await container.tmdb_client().close()
