"""HTTP client for the panel's users REST endpoint."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import ApiConfig
from .models import AddUserForm, User


USERS_PATH = "/api/users"
ADD_USER_PATH = "/api/users/add"


class PanelApiError(RuntimeError):
    """Base exception for calls against the users endpoint."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchFailed(PanelApiError):
    """Listing users failed: network error, non-2xx status or unusable body."""


class DeleteFailed(PanelApiError):
    """Deleting a user failed: network error or non-2xx status."""


class CreateFailed(PanelApiError):
    """Creating a user failed: network error or non-2xx status."""


class UsersApiClient:
    """Talks to ``GET /api/users``, ``DELETE /api/users/{id}`` and ``POST /api/users/add``."""

    def __init__(self, config: ApiConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    def __enter__(self) -> "UsersApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return self.base_url + path

    def _send(self, method: str, url: str, error_cls: type, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.request(
                method,
                url,
                timeout=self._config.timeout,
                headers={"Accept": "application/json"},
                **kwargs,
            )
        except requests.RequestException as exc:
            raise error_cls(f"{method} {url} failed: {exc}", url) from exc

        if not 200 <= response.status_code < 300:
            raise error_cls(
                f"{method} {url} returned {response.status_code}",
                url,
                status_code=response.status_code,
            )
        return response

    def list_users(self) -> List[User]:
        url = self._url(USERS_PATH)
        response = self._send("GET", url, FetchFailed)
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchFailed(f"GET {url} returned a body that is not JSON", url, response.status_code) from exc
        if not isinstance(payload, list):
            raise FetchFailed(f"GET {url} did not return a JSON array", url, response.status_code)
        return [User.from_dict(entry if isinstance(entry, dict) else {}) for entry in payload]

    def delete_user(self, user_id: str) -> None:
        url = self._url(f"{USERS_PATH}/{quote(str(user_id), safe='')}")
        self._send("DELETE", url, DeleteFailed)

    def create_user(self, form: AddUserForm) -> Dict[str, Any]:
        url = self._url(ADD_USER_PATH)
        response = self._send("POST", url, CreateFailed, json=form.to_dict())
        try:
            return response.json() or {}
        except ValueError:
            return {}


__all__ = [
    "CreateFailed",
    "DeleteFailed",
    "FetchFailed",
    "PanelApiError",
    "UsersApiClient",
]
