from __future__ import annotations

from user_admin.__main__ import missing_dependency_hint


def test_hint_names_distribution_for_import_name() -> None:
    hint = missing_dependency_hint("yaml")

    assert "PyYAML" in hint
    assert "pip install -e ." in hint


def test_hint_handles_submodules() -> None:
    assert "Flask" in missing_dependency_hint("flask.json")


def test_unknown_modules_get_no_hint() -> None:
    assert missing_dependency_hint("user_admin.cli") is None
    assert missing_dependency_hint(None) is None
