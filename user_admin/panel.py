"""Controller for the users panel: fetch, render, search, delete, add-user modal."""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

import typer

from .api_client import CreateFailed, DeleteFailed, FetchFailed, UsersApiClient
from .models import AddUserForm, User, filter_users
from .view import Event, PanelView


DELETE_PROMPT = "Are you sure you want to delete this user?"
DELETE_SUCCESS = "User deleted successfully"
DELETE_FAILURE = "Failed to delete the user"
CREATE_SUCCESS = "User created successfully"
CREATE_FAILURE = "Failed to create the user"


class Notifier(Protocol):
    """Blocking confirm/alert primitive used by the controller."""

    def confirm(self, message: str) -> bool:
        ...

    def alert(self, message: str) -> None:
        ...


class ConsoleNotifier:
    """Terminal notifier; blocks on ``typer.confirm`` until answered."""

    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            return True
        return typer.confirm(message, default=False)

    def alert(self, message: str) -> None:
        typer.echo(message)


class UserListController:
    """Owns the master user list and keeps the panel view in sync with it."""

    def __init__(
        self,
        api: UsersApiClient,
        view: PanelView,
        notifier: Notifier,
        add_user_mode: str = "log",
        logger: Optional[Any] = None,
    ) -> None:
        self._api = api
        self.view = view
        self._notifier = notifier
        self.add_user_mode = add_user_mode
        self._log = logger or logging.getLogger(__name__)
        self._users: List[User] = []
        self._displayed: List[User] = []

    @property
    def users(self) -> List[User]:
        """A copy of the master list from the last successful fetch."""

        return list(self._users)

    @property
    def displayed(self) -> List[User]:
        return list(self._displayed)

    def bind(self) -> None:
        """Attach the panel's event handlers to the view."""

        self.view.add_user_button.on("click", lambda _event: self.open_modal())
        self.view.close_button.on("click", lambda _event: self.close_modal())
        self.view.form.on("submit", self.submit_add_user_form)
        self.view.search_input.on("input", lambda _event: self.search())

    def on_load(self) -> None:
        self.load_users()

    # ------------------------------------------------------------------ #
    # List / render / search                                             #
    # ------------------------------------------------------------------ #
    def load_users(self) -> bool:
        try:
            users = self._api.list_users()
        except FetchFailed as exc:
            self._log.error("Error fetching users: %s", exc)
            return False

        self._users = users
        self.render_table(self._users)
        return True

    def render_table(self, users_to_display: List[User]) -> None:
        self._displayed = list(users_to_display)
        self.view.render_users(self._displayed, on_delete=self.delete_user)

    def search(self, query: Optional[str] = None) -> List[User]:
        if query is None:
            query = self.view.search_input.value
        filtered = filter_users(self._users, query.lower())
        self.render_table(filtered)
        return filtered

    # ------------------------------------------------------------------ #
    # Delete                                                             #
    # ------------------------------------------------------------------ #
    def delete_user(self, user_id: str) -> bool:
        if not self._notifier.confirm(DELETE_PROMPT):
            return False

        try:
            self._api.delete_user(user_id)
        except DeleteFailed as exc:
            self._log.error("Error deleting user %s: %s", user_id, exc)
            self._notifier.alert(DELETE_FAILURE)
            return False

        self._notifier.alert(DELETE_SUCCESS)
        self.load_users()
        return True

    # ------------------------------------------------------------------ #
    # Add-user modal                                                     #
    # ------------------------------------------------------------------ #
    def open_modal(self) -> None:
        self.view.show_modal()

    def close_modal(self) -> None:
        self.view.hide_modal()

    def submit_add_user_form(self, event: Optional[Event] = None) -> AddUserForm:
        if event is not None:
            event.prevent_default()

        form = AddUserForm.from_pairs(self.view.form_entries())
        self._log.info("New user data: %s", form.loggable())

        if self.add_user_mode == "create":
            try:
                self._api.create_user(form)
            except CreateFailed as exc:
                self._log.error("Error creating user: %s", exc)
                self._notifier.alert(CREATE_FAILURE)
            else:
                self._notifier.alert(CREATE_SUCCESS)
                self.load_users()

        self.close_modal()
        return form


__all__ = ["ConsoleNotifier", "Notifier", "UserListController"]
