from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext


@click.group("scheduler")
def scheduler_cli():
    """Scheduler related commands."""
    pass


@scheduler_cli.command("run")
@with_appcontext
def run_scheduler():
    """Run the dedicated scheduler process. Use in production as separate container or systemd service."""
    # APScheduler is only imported when the scheduler actually starts
    from .scheduler import run

    current_app.logger.info("Starting scheduler via CLI")
    run()


@click.group("jobs")
def jobs_cli():
    """Run maintenance jobs by hand."""
    pass


@jobs_cli.command("list")
@with_appcontext
def list_jobs():
    from .jobs import JOBS

    for name, fn in JOBS.items():
        click.echo(f"{name}\t{fn.job_meta}")


@jobs_cli.command("run")
@click.argument("name", required=False)
@with_appcontext
def run_job(name: str | None):
    """Run NAME once, or every job when NAME is omitted."""
    from .jobs import JOBS, run_due_jobs

    if name is None:
        for job_name, result in run_due_jobs().items():
            click.echo(f"{job_name}: {result}")
        return
    if name not in JOBS:
        raise click.BadParameter(f"unknown job {name!r}; choose from {', '.join(JOBS)}", param_hint="NAME")
    click.echo(f"{name}: {JOBS[name]()}")
