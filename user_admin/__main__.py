"""Entry point for running the CLI as a module."""
from __future__ import annotations

import sys
from typing import Optional

# Import name -> distribution name for the runtime requirements.
_DISTRIBUTIONS = {
    "flask": "Flask",
    "markupsafe": "MarkupSafe",
    "msal": "msal",
    "requests": "requests",
    "typer": "typer",
    "yaml": "PyYAML",
}


def missing_dependency_hint(module_name: Optional[str]) -> Optional[str]:
    root = (module_name or "").split(".", 1)[0]
    distribution = _DISTRIBUTIONS.get(root)
    if distribution is None:
        return None
    return (
        f"Missing dependency '{distribution}'. Install the project with\n"
        "    pip install -e .\n"
        "or, to run the test suite as well,\n"
        "    pip install -e '.[test]'\n"
    )


def main() -> None:
    try:
        from .cli import run
    except ModuleNotFoundError as exc:
        hint = missing_dependency_hint(getattr(exc, "name", None))
        if hint is None:
            raise
        sys.stderr.write(hint)
        raise SystemExit(1) from exc

    run()


if __name__ == "__main__":
    main()
