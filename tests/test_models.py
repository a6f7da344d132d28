from __future__ import annotations

from user_admin.models import AddUserForm, User, filter_users


def test_from_dict_joins_role_lists_and_fills_missing_fields() -> None:
    user = User.from_dict({"id": "7", "displayName": "Cy", "roles": ["Admins", "Sales"]})

    assert user.roles == "Admins, Sales"
    assert user.surname == ""
    assert user.to_dict()["roles"] == "Admins, Sales"


def test_from_dict_accepts_singular_role_key() -> None:
    assert User.from_dict({"id": "7", "role": "Editor"}).roles == "Editor"


def test_cells_follow_table_column_order(bob: User) -> None:
    assert bob.cells == ["1", "Bob Jones", "bob@x.com", "Bob", "Jones", "admin"]


def test_search_is_case_insensitive() -> None:
    alice = User(id="1", display_name="Alice")
    for query in ("alice", "ALICE", "Ali"):
        assert filter_users([alice], query) == [alice]


def test_search_only_considers_display_name() -> None:
    user = User(id="zz-42", display_name="Dana", user_principal_name="xyz@corp.com", roles="xyz-admins")

    assert filter_users([user], "xyz") == []
    assert filter_users([user], "zz-42") == []


def test_empty_query_keeps_everything_in_order(ann_and_ben) -> None:
    assert filter_users(ann_and_ben, "") == ann_and_ben


def test_filtering_is_idempotent(ann_and_ben) -> None:
    once = filter_users(ann_and_ben, "l")
    assert filter_users(once, "l") == once


def test_add_user_form_derives_display_name() -> None:
    form = AddUserForm.from_pairs([("givenName", "Eve"), ("surname", "Ng"), ("displayName", "")])

    assert form.display_name == "Eve Ng"
    assert form.to_dict() == {"givenName": "Eve", "surname": "Ng", "displayName": ""}


def test_loggable_masks_the_password() -> None:
    form = AddUserForm({"userPrincipalName": "eve@x.com", "password": "Secret-123"})

    assert form.loggable() == {"userPrincipalName": "eve@x.com", "password": "***"}
    assert form.to_dict()["password"] == "Secret-123"
