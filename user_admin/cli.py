"""Command line interface for the user admin panel."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .api_client import UsersApiClient
from .config import AppConfig, ConfigurationError, load_config
from .models import FORM_FIELDS
from .panel import ConsoleNotifier, UserListController
from .view import PanelView

app = typer.Typer(help="Browse, search and delete directory users through the panel API.")
users_app = typer.Typer(help="Work with the users list.")
app.add_typer(users_app, name="users")

_COLUMNS = ("id", "displayName", "userPrincipalName", "givenName", "surname", "roles")


def _load_configuration(config_path: Optional[Path]) -> AppConfig:
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


def _build_controller(
    api: UsersApiClient, config: AppConfig, assume_yes: bool = False
) -> UserListController:
    controller = UserListController(
        api=api,
        view=PanelView(),
        notifier=ConsoleNotifier(assume_yes=assume_yes),
        add_user_mode=config.panel.add_user_mode,
    )
    controller.bind()
    return controller


def _echo_table(rows: List[List[str]]) -> None:
    if not rows:
        typer.echo("No users to display.")
        return
    widths = [len(title) for title in _COLUMNS]
    for row in rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]
    typer.echo("  ".join(title.ljust(width) for title, width in zip(_COLUMNS, widths)))
    for row in rows:
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)))


@users_app.command("list")
def list_users(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by display name."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
) -> None:
    """Fetch users and print them as a table."""

    config = _load_configuration(config_path)
    with UsersApiClient(config.api) as api:
        controller = _build_controller(api, config)
        if not controller.load_users():
            typer.echo("Unable to fetch users. See the log for details.")
            raise typer.Exit(code=1)

        if search is not None:
            controller.view.search_input.value = search
            controller.view.search_input.dispatch("input")
    _echo_table(controller.view.table_rows())


@users_app.command("delete")
def delete_user(
    user_id: str = typer.Argument(..., help="Directory id of the user to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
) -> None:
    """Delete a user after confirmation, then show the refreshed list."""

    config = _load_configuration(config_path)
    with UsersApiClient(config.api) as api:
        controller = _build_controller(api, config, assume_yes=yes)
        if not controller.delete_user(user_id):
            raise typer.Exit(code=1)
    _echo_table(controller.view.table_rows())


@users_app.command("add")
def add_user(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
) -> None:
    """Fill in the add-user form and submit it."""

    config = _load_configuration(config_path)
    with UsersApiClient(config.api) as api:
        controller = _build_controller(api, config)
        controller.view.add_user_button.dispatch("click")

        values = {name: typer.prompt(name, default="", show_default=False) for name in FORM_FIELDS}
        controller.view.set_form_values(values)
        event = controller.view.form.dispatch("submit")

    if config.panel.add_user_mode == "log" and event.default_prevented:
        typer.echo("Form recorded in the log; no user was created.")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: int = typer.Option(5000, help="Port to listen on."),
    debug: bool = typer.Option(False, help="Enable the Flask debugger."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
) -> None:
    """Run the web interface and the /api/users endpoint."""

    from .web import create_app

    _load_configuration(config_path)
    create_app(config_path).run(host=host, port=port, debug=debug)


def run():
    app()


if __name__ == "__main__":
    run()
