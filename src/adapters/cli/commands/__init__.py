"""Sous-package CLI commands - re-exporte les commandes publiques."""

from src.adapters.cli.commands.worker_commands import (
    run_job,
    worker,
)
from src.adapters.cli.commands.sync_commands import (
    cache_posters,
    refresh_metadata,
    sync,
    sync_all,
)
from src.adapters.cli.commands.job_commands import (
    jobs_app,
    jobs_list,
    jobs_show,
    jobs_terminate,
    jobs_reset_stale,
)

__all__ = [
    # worker
    "worker",
    "run_job",
    # synchronisation
    "sync",
    "sync_all",
    "refresh_metadata",
    "cache_posters",
    # jobs
    "jobs_app",
    "jobs_list",
    "jobs_show",
    "jobs_terminate",
    "jobs_reset_stale",
]
