"""Microsoft Graph helper used by the users REST endpoint."""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import msal
import requests

from .config import GraphConfig
from .models import AddUserForm, User


GRAPH_SCOPE = ["https://graph.microsoft.com/.default"]
USER_SELECT = "id,displayName,userPrincipalName,givenName,surname"


class GraphClientError(RuntimeError):
    """Base exception for Microsoft Graph client operations."""


class GraphConfigurationError(GraphClientError):
    """Raised when the Graph integration is not configured."""


class GraphError(GraphClientError):
    """Raised when the Microsoft Graph API returns an error."""

    def __init__(self, status_code: int, error: str, description: str) -> None:
        super().__init__(f"{status_code}: {error} - {description}")
        self.status_code = status_code
        self.error = error
        self.description = description


class GraphClient:
    """Lightweight Microsoft Graph client for listing, creating and deleting users."""

    def __init__(
        self,
        config: GraphConfig,
        session: Optional[requests.Session] = None,
        app: Optional[Any] = None,
    ) -> None:
        if not config.has_credentials:
            raise GraphConfigurationError(
                "Microsoft Graph credentials are not configured. "
                "Provide tenant_id, client_id, and client_secret."
            )

        self._config = config
        self._authority = f"https://login.microsoftonline.com/{config.tenant_id}"
        self._app = app or msal.ConfidentialClientApplication(
            client_id=config.client_id,
            client_credential=config.client_secret,
            authority=self._authority,
        )
        self._token_lock = threading.Lock()
        self._session = session or requests.Session()

    # ------------------------------------------------------------------ #
    # Token handling / HTTP helpers                                      #
    # ------------------------------------------------------------------ #
    def _acquire_token(self) -> str:
        with self._token_lock:
            result = self._app.acquire_token_silent(GRAPH_SCOPE, account=None)
            if not result:
                result = self._app.acquire_token_for_client(scopes=GRAPH_SCOPE)

        if "access_token" not in result:
            raise GraphError(
                status_code=0,
                error=result.get("error", "token_error"),
                description=result.get("error_description", "Unable to acquire Graph token."),
            )
        return str(result["access_token"])

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = path if path.startswith("https://") else self._config.base_url + path
        headers = kwargs.pop("headers", {}) or {}
        headers.setdefault("Authorization", f"Bearer {self._acquire_token()}")
        headers.setdefault("Accept", "application/json")
        if "json" in kwargs:
            headers.setdefault("Content-Type", "application/json")

        try:
            response = self._session.request(
                method,
                url,
                timeout=self._config.timeout,
                headers=headers,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise GraphClientError(f"Graph request {method} {url} failed: {exc}") from exc

        if response.status_code == 204:
            return {}

        if response.status_code >= 400:
            try:
                payload = response.json()
                error = payload.get("error", {})
                code = error.get("code", "GraphError")
                message = error.get("message", response.text)
            except (ValueError, AttributeError):
                code = "GraphError"
                message = response.text or "Unknown Graph error."
            raise GraphError(response.status_code, code, message)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise GraphClientError(f"Graph returned a body that is not JSON for {method} {url}") from exc

    def _collect(self, path: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """Follow ``@odata.nextLink`` pages and return every ``value`` entry."""

        items: List[Dict[str, Any]] = []
        result = self._request("GET", path, params=params)
        items.extend(result.get("value") or [])
        next_link = result.get("@odata.nextLink")
        while next_link:
            result = self._request("GET", next_link)
            items.extend(result.get("value") or [])
            next_link = result.get("@odata.nextLink")
        return items

    # ------------------------------------------------------------------ #
    # Users                                                              #
    # ------------------------------------------------------------------ #
    def list_users(self) -> List[User]:
        entries = self._collect("/users", params={"$select": USER_SELECT})
        users: List[User] = []
        for entry in entries:
            if self._config.include_roles and entry.get("id"):
                entry = dict(entry, roles=self.get_user_roles(str(entry["id"])))
            users.append(User.from_dict(entry))
        return users

    def get_user_roles(self, user_id: str) -> List[str]:
        """Display names of the groups and directory roles the user is a member of."""

        entries = self._collect(
            f"/users/{quote(user_id, safe='')}/memberOf",
            params={"$select": "displayName"},
        )
        return [str(entry["displayName"]) for entry in entries if entry.get("displayName")]

    def create_user(self, form: AddUserForm, password: Optional[str] = None) -> User:
        upn = form.get("userPrincipalName").strip()
        if not upn:
            raise GraphClientError("userPrincipalName is required to create a user.")
        initial_password = form.get("password") or password
        if not initial_password:
            raise GraphClientError(
                "An initial password is required to create a user. "
                "Supply one in the form or set panel.default_password."
            )

        payload: Dict[str, Any] = {
            "accountEnabled": True,
            "displayName": form.display_name or upn,
            "userPrincipalName": upn,
            "mailNickname": upn.split("@", 1)[0],
            "givenName": form.get("givenName").strip() or None,
            "surname": form.get("surname").strip() or None,
            "jobTitle": form.get("roles").strip() or None,
            "passwordProfile": {
                "forceChangePasswordNextSignIn": True,
                "password": initial_password,
            },
        }
        payload = {key: value for key, value in payload.items() if value is not None}
        created = self._request("POST", "/users", json=payload)
        return User.from_dict(dict(created, roles=form.get("roles")))

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/users/{quote(user_id, safe='')}")


__all__ = [
    "GraphClient",
    "GraphClientError",
    "GraphConfigurationError",
    "GraphError",
]
