"""Shared fixtures: fake HTTP sessions, a scripted notifier and settings files."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import yaml

from user_admin.api_client import CreateFailed, DeleteFailed, FetchFailed
from user_admin.models import User


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; replays queued responses and records calls."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


class FakeUsersApi:
    """In-memory stand-in for ``UsersApiClient``."""

    def __init__(self, users: Optional[List[User]] = None) -> None:
        self.users = list(users or [])
        self.fail_fetch = False
        self.fail_delete = False
        self.fail_create = False
        self.list_calls = 0
        self.deleted: List[str] = []
        self.created: List[Dict[str, str]] = []
        self.closed = False

    def list_users(self) -> List[User]:
        self.list_calls += 1
        if self.fail_fetch:
            raise FetchFailed("GET /api/users returned 500", "/api/users", 500)
        return list(self.users)

    def delete_user(self, user_id: str) -> None:
        if self.fail_delete:
            raise DeleteFailed("DELETE returned 500", f"/api/users/{user_id}", 500)
        self.deleted.append(user_id)
        self.users = [user for user in self.users if user.id != user_id]

    def create_user(self, form) -> Dict[str, Any]:
        if self.fail_create:
            raise CreateFailed("POST returned 500", "/api/users/add", 500)
        self.created.append(form.to_dict())
        self.users.append(User.from_dict({"id": str(len(self.users) + 1), **form.to_dict()}))
        return {}

    def __enter__(self) -> "FakeUsersApi":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True


class ScriptedNotifier:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: List[str] = []
        self.alerts: List[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer

    def alert(self, message: str) -> None:
        self.alerts.append(message)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("USER_ADMIN_") or key.startswith("AZURE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_settings(tmp_path: Path):
    def _write(payload: Dict[str, Any], name: str = "settings.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def graph_settings(write_settings) -> Path:
    return write_settings(
        {
            "graph": {"tenant_id": "tenant", "client_id": "client", "client_secret": "secret"},
            "panel": {"add_user_mode": "log"},
        }
    )


@pytest.fixture
def bob() -> User:
    return User.from_dict(
        {
            "id": "1",
            "displayName": "Bob Jones",
            "userPrincipalName": "bob@x.com",
            "givenName": "Bob",
            "surname": "Jones",
            "roles": "admin",
        }
    )


@pytest.fixture
def ann_and_ben() -> List[User]:
    return [
        User(id="a", display_name="Ann Lee", user_principal_name="ann@x.com", given_name="Ann", surname="Lee", roles="staff"),
        User(id="b", display_name="Ben Lo", user_principal_name="ben@x.com", given_name="Ben", surname="Lo", roles="staff"),
    ]


