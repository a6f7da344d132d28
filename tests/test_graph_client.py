from __future__ import annotations

import pytest
import requests

from conftest import FakeResponse, FakeSession
from user_admin.config import GraphConfig
from user_admin.graph_client import (
    GraphClient,
    GraphClientError,
    GraphConfigurationError,
    GraphError,
)
from user_admin.models import AddUserForm


class FakeMsalApp:
    def __init__(self, result=None) -> None:
        self.result = result or {"access_token": "token-123"}

    def acquire_token_silent(self, scopes, account=None):
        return None

    def acquire_token_for_client(self, scopes):
        return self.result


def _graph(*responses, include_roles=True, token=None):
    session = FakeSession(list(responses))
    config = GraphConfig(tenant_id="t", client_id="c", client_secret="s", include_roles=include_roles)
    return GraphClient(config, session=session, app=FakeMsalApp(token)), session


def test_missing_credentials_raise() -> None:
    with pytest.raises(GraphConfigurationError):
        GraphClient(GraphConfig())


def test_list_users_follows_pages_and_collects_roles() -> None:
    client, session = _graph(
        FakeResponse(
            200,
            {
                "value": [{"id": "1", "displayName": "Bob Jones"}],
                "@odata.nextLink": "https://graph.microsoft.com/v1.0/users?$skiptoken=x",
            },
        ),
        FakeResponse(200, {"value": [{"id": "2", "displayName": "Ann Lee"}]}),
        FakeResponse(200, {"value": [{"displayName": "Admins"}, {"displayName": "Sales"}]}),
        FakeResponse(200, {"value": []}),
    )

    users = client.list_users()

    assert [(user.id, user.roles) for user in users] == [("1", "Admins, Sales"), ("2", "")]
    assert session.calls[0]["headers"]["Authorization"] == "Bearer token-123"
    assert session.calls[1]["url"] == "https://graph.microsoft.com/v1.0/users?$skiptoken=x"
    assert session.calls[2]["url"].endswith("/users/1/memberOf")


def test_list_users_without_roles_makes_one_call() -> None:
    client, session = _graph(FakeResponse(200, {"value": [{"id": "1"}]}), include_roles=False)

    assert len(client.list_users()) == 1
    assert len(session.calls) == 1


def test_graph_error_payload_is_surfaced() -> None:
    client, _ = _graph(
        FakeResponse(403, {"error": {"code": "Authorization_RequestDenied", "message": "Insufficient privileges"}})
    )

    with pytest.raises(GraphError) as excinfo:
        client.delete_user("1")

    assert excinfo.value.status_code == 403
    assert excinfo.value.error == "Authorization_RequestDenied"


def test_delete_user_accepts_no_content() -> None:
    client, session = _graph(FakeResponse(204))

    client.delete_user("1")

    assert session.calls[0]["method"] == "DELETE"
    assert session.calls[0]["url"] == "https://graph.microsoft.com/v1.0/users/1"


def test_network_errors_become_client_errors() -> None:
    client, _ = _graph(requests.ConnectionError("down"))

    with pytest.raises(GraphClientError):
        client.delete_user("1")


def test_token_failure_raises_graph_error() -> None:
    client, session = _graph(token={"error": "invalid_client", "error_description": "bad secret"})

    with pytest.raises(GraphError) as excinfo:
        client.delete_user("1")

    assert excinfo.value.error == "invalid_client"
    assert session.calls == []


def test_create_user_maps_form_to_graph_payload() -> None:
    client, session = _graph(FakeResponse(201, {"id": "9", "displayName": "Eve Ng", "userPrincipalName": "eve@x.com"}))
    form = AddUserForm(
        {"displayName": "", "userPrincipalName": "eve@x.com", "givenName": "Eve", "surname": "Ng", "roles": "Engineer"}
    )

    user = client.create_user(form, password="Secret-123")

    body = session.calls[0]["json"]
    assert body["displayName"] == "Eve Ng"
    assert body["mailNickname"] == "eve"
    assert body["jobTitle"] == "Engineer"
    assert body["passwordProfile"]["password"] == "Secret-123"
    assert user.id == "9"
    assert user.roles == "Engineer"


def test_create_user_requires_principal_name() -> None:
    client, session = _graph()

    with pytest.raises(GraphClientError):
        client.create_user(AddUserForm({"displayName": "Nobody"}))
    assert session.calls == []


def test_create_user_without_password_is_refused() -> None:
    client, session = _graph()

    with pytest.raises(GraphClientError, match="initial password"):
        client.create_user(AddUserForm({"userPrincipalName": "eve@x.com"}))
    assert session.calls == []


def test_create_user_prefers_password_from_form() -> None:
    client, session = _graph(FakeResponse(201, {"id": "9", "userPrincipalName": "eve@x.com"}))

    client.create_user(AddUserForm({"userPrincipalName": "eve@x.com", "password": "Form-456"}), password="Default-1")

    assert session.calls[0]["json"]["passwordProfile"]["password"] == "Form-456"
