"""TalentFlow CLI — bootstrap the database and admin accounts.

Usage:
    talentflow init-db                               # Create all tables
    talentflow create-admin admin@example.com "Ada"  # Prompts for a password
    talentflow stats                                 # Application counts by status

Self-registration over HTTP only ever creates candidates, so the first
admin has to come from here.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys

import click

from talentflow import __version__
from talentflow.auth.dependencies import get_token_issuer, get_token_verifier
from talentflow.auth.roles import Role
from talentflow.db import engine as db_engine
from talentflow.db.models import Base
from talentflow.errors import AlreadyExists
from talentflow.services.application_service import ApplicationService
from talentflow.services.auth_service import AuthService

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Falls back to a worker thread when a loop is already running
    (e.g. CliRunner invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "reviewing": "cyan",
        "interview": "magenta",
        "accepted": "green",
        "rejected": "red",
    }
    return colors.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="talentflow")
def main():
    """TalentFlow — recruitment platform administration."""


# ---------------------------------------------------------------------------
# talentflow init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create all tables that don't exist yet."""
    _run(_init_db_impl())
    click.secho("Database initialized.", fg="green")


async def _init_db_impl():
    async with db_engine.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---------------------------------------------------------------------------
# talentflow create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.argument("email")
@click.argument("name")
@click.password_option(help="Admin password (prompted if omitted)")
def create_admin(email: str, name: str, password: str):
    """Create an admin account.

    EMAIL and NAME identify the admin; the password is prompted twice.
    """
    if len(password) < 8:
        click.secho("Password must be at least 8 characters.", fg="red", err=True)
        sys.exit(1)
    try:
        user_id = _run(_create_admin_impl(email, name, password))
    except AlreadyExists as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Admin created: {email} ({user_id})", fg="green")


async def _create_admin_impl(email: str, name: str, password: str) -> str:
    async with db_engine.async_session_factory() as db:
        svc = AuthService(db, get_token_issuer(), get_token_verifier())
        user = await svc.register(email=email, name=name, password=password, role=Role.ADMIN)
        return str(user.id)


# ---------------------------------------------------------------------------
# talentflow stats
# ---------------------------------------------------------------------------


@main.command()
def stats():
    """Show application counts by status."""
    counts = _run(_stats_impl())
    click.secho(f"Applications ({sum(counts.values())}):", bold=True)
    for status, count in counts.items():
        click.echo(f"  {click.style(status.ljust(10), fg=_status_color(status))}  {count}")


async def _stats_impl() -> dict[str, int]:
    async with db_engine.async_session_factory() as db:
        return await ApplicationService(db).status_counts()


if __name__ == "__main__":
    main()
