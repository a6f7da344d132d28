"""Data models for directory users and the add-user form."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

FORM_FIELDS = ("displayName", "userPrincipalName", "givenName", "surname", "roles")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(item).strip() for item in value if str(item or "").strip())
    return str(value)


@dataclass
class User:
    """Represents one directory account as displayed by the panel."""

    id: str
    display_name: str = ""
    user_principal_name: str = ""
    given_name: str = ""
    surname: str = ""
    roles: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        roles = data.get("roles")
        if roles is None:
            roles = data.get("role")
        return cls(
            id=_as_text(data.get("id")),
            display_name=_as_text(data.get("displayName")),
            user_principal_name=_as_text(data.get("userPrincipalName")),
            given_name=_as_text(data.get("givenName")),
            surname=_as_text(data.get("surname")),
            roles=_as_text(roles),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "userPrincipalName": self.user_principal_name,
            "givenName": self.given_name,
            "surname": self.surname,
            "roles": self.roles,
        }

    @property
    def cells(self) -> List[str]:
        """Field values in table column order."""

        return [
            self.id,
            self.display_name,
            self.user_principal_name,
            self.given_name,
            self.surname,
            self.roles,
        ]

    def matches(self, query: str) -> bool:
        return (query or "").lower() in self.display_name.lower()


@dataclass
class AddUserForm:
    """Key/value record collected from the add-user form."""

    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> "AddUserForm":
        return cls(fields={str(key): _as_text(value) for key, value in pairs})

    def get(self, key: str, default: str = "") -> str:
        return self.fields.get(key, default)

    @property
    def display_name(self) -> str:
        explicit = self.get("displayName").strip()
        if explicit:
            return explicit
        return f"{self.get('givenName').strip()} {self.get('surname').strip()}".strip()

    def to_dict(self) -> Dict[str, str]:
        return dict(self.fields)

    def loggable(self) -> Dict[str, str]:
        """Fields safe to write to the log; the initial password is masked."""

        return {key: ("***" if key == "password" else value) for key, value in self.fields.items()}


def filter_users(users: Iterable[User], query: str) -> List[User]:
    """Return users whose display name contains ``query`` (case-insensitive)."""

    lowered = (query or "").lower()
    return [user for user in users if user.matches(lowered)]


__all__ = ["AddUserForm", "FORM_FIELDS", "User", "filter_users"]
