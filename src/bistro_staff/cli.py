"""
Flask CLI commands for managing the store.

    flask --app bistro_staff.app:create_app init-db
    flask --app bistro_staff.app:create_app reset-db --yes
"""

from __future__ import annotations

import click
from flask import Flask

from bistro_shared.services.seed import ensure_seed_data

from .extensions import get_store


def register_cli(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db_command():
        """Create missing tables and insert the seed data."""
        store = get_store()
        store.create_schema()
        created = ensure_seed_data(store)
        click.echo(f"Database ready ({_describe(created)})")

    @app.cli.command("reset-db")
    @click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
    def reset_db_command(yes: bool):
        """Drop every table, recreate the schema and seed it again."""
        if not yes:
            click.confirm("This deletes all orders, menu and staff data. Continue?", abort=True)
        store = get_store()
        store.drop_schema()
        store.create_schema()
        created = ensure_seed_data(store)
        click.echo(f"Database reset ({_describe(created)})")


def _describe(created: dict[str, int]) -> str:
    inserted = [f"{count} {name.replace('_', ' ')}" for name, count in created.items() if count]
    return "inserted " + ", ".join(inserted) if inserted else "no seed data needed"
