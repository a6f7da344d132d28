"""Configuration loading utilities for the user admin panel."""
from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = Path("config/settings.yaml")
DEFAULT_TEMPLATE_PATH = Path("config/settings.example.yaml")
ENV_CONFIG_PATH = "USER_ADMIN_CONFIG"
ENV_PREFIX = "USER_ADMIN_"
DEFAULT_GRAPH_URL = "https://graph.microsoft.com/v1.0"
ADD_USER_MODES = ("log", "create")

# Variable names used by the original deployment's .env files.
_AZURE_CREDENTIAL_FALLBACKS = {
    "tenant_id": "AZURE_TENANT_ID",
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
}


@dataclass
class ApiConfig:
    """Where the panel reaches the users REST endpoint."""

    base_url: str = "http://localhost:5000"
    timeout: int = 30


@dataclass
class GraphConfig:
    """Settings for the Microsoft Graph integration behind ``/api/users``."""

    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    base_url: str = DEFAULT_GRAPH_URL
    include_roles: bool = True
    timeout: int = 30

    @property
    def has_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


@dataclass
class PanelConfig:
    """Behaviour of the panel itself."""

    add_user_mode: str = "log"
    default_password: Optional[str] = None


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    """Aggregate configuration for the application."""

    api: ApiConfig = field(default_factory=ApiConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    panel: PanelConfig = field(default_factory=PanelConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigurationError(RuntimeError):
    """Raised when the configuration file or environment variables are invalid."""


def _load_from_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file '{path}' does not exist. "
            "Create it from 'config/settings.example.yaml' or set environment variables."
        )
    with path.open("r", encoding="utf-8") as file:
        try:
            payload = yaml.safe_load(file) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping.")
    return payload


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Override configuration values with environment variables."""

    overrides: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == ENV_CONFIG_PATH:
            continue
        path = key[len(ENV_PREFIX) :].lower().split("__")
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)
    return config_dict


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            result[key] = _deep_merge(base[key], value)
        else:
            result[key] = value
    return result


def _resolve_config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def ensure_default_config(
    path: Optional[Path] = None, template_path: Optional[Path] = None
) -> Path:
    """Ensure a configuration file exists, copying from the example if needed."""

    target_path = _resolve_config_path(path)
    if target_path.exists():
        return target_path

    template = Path(template_path) if template_path is not None else DEFAULT_TEMPLATE_PATH
    if not template.exists():
        raise ConfigurationError(
            "Default configuration template not found. "
            "Ensure 'config/settings.example.yaml' is present or specify a template."
        )

    target_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy(template, target_path)
    return target_path


def _load_config_dict(path: Optional[Path] = None) -> Dict[str, Any]:
    resolved_path = _resolve_config_path(path)
    if resolved_path == DEFAULT_CONFIG_PATH:
        ensure_default_config(resolved_path)

    config_dict = _load_from_file(resolved_path)
    return _apply_environment_overrides(config_dict)


def _section(config_dict: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = config_dict.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration section '{key}' must be a mapping.")
    return value


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from disk and environment variables."""

    config_dict = _load_config_dict(path)

    api_section = _section(config_dict, "api")
    defaults_api = ApiConfig()
    try:
        api_config = ApiConfig(
            base_url=str(api_section.get("base_url") or defaults_api.base_url).rstrip("/"),
            timeout=_to_int(api_section.get("timeout", defaults_api.timeout)),
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid api configuration: {exc}.") from exc

    graph_section = _section(config_dict, "graph")
    credentials = {
        key: _optional_str(graph_section.get(key)) or _optional_str(os.environ.get(env_name))
        for key, env_name in _AZURE_CREDENTIAL_FALLBACKS.items()
    }
    try:
        graph_timeout = _to_int(graph_section.get("timeout", GraphConfig.timeout))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid graph timeout: {exc}.") from exc
    graph_config = GraphConfig(
        tenant_id=credentials["tenant_id"],
        client_id=credentials["client_id"],
        client_secret=credentials["client_secret"],
        base_url=(_optional_str(graph_section.get("base_url")) or DEFAULT_GRAPH_URL).rstrip("/"),
        include_roles=_to_bool(graph_section.get("include_roles", True)),
        timeout=graph_timeout,
    )

    panel_section = _section(config_dict, "panel")
    mode = (_optional_str(panel_section.get("add_user_mode")) or "log").lower()
    if mode not in ADD_USER_MODES:
        raise ConfigurationError(
            f"Unsupported panel.add_user_mode '{mode}'. Expected one of: {', '.join(ADD_USER_MODES)}."
        )
    panel_config = PanelConfig(
        add_user_mode=mode,
        default_password=_optional_str(panel_section.get("default_password")),
    )

    logging_section = _section(config_dict, "logging")
    logging_config = LoggingConfig(
        level=(_optional_str(logging_section.get("level")) or "INFO").upper(),
    )

    return AppConfig(
        api=api_config,
        graph=graph_config,
        panel=panel_config,
        logging=logging_config,
    )


def config_to_dict(config: AppConfig) -> Dict[str, Any]:
    """Serialize an :class:`AppConfig` back to primitive types for persistence."""

    return {
        "api": {
            "base_url": config.api.base_url,
            "timeout": config.api.timeout,
        },
        "graph": {
            "tenant_id": config.graph.tenant_id or "",
            "client_id": config.graph.client_id or "",
            "client_secret": config.graph.client_secret or "",
            "base_url": config.graph.base_url,
            "include_roles": config.graph.include_roles,
            "timeout": config.graph.timeout,
        },
        "panel": {
            "add_user_mode": config.panel.add_user_mode,
            "default_password": config.panel.default_password or "",
        },
        "logging": {
            "level": config.logging.level,
        },
    }


def save_config(config: AppConfig, path: Optional[Path] = None) -> Path:
    """Persist the configuration to disk, returning the path that was written."""

    target = _resolve_config_path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = config_to_dict(config)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False, indent=2)
    return target


__all__ = [
    "ADD_USER_MODES",
    "ApiConfig",
    "AppConfig",
    "ConfigurationError",
    "GraphConfig",
    "LoggingConfig",
    "PanelConfig",
    "config_to_dict",
    "ensure_default_config",
    "load_config",
    "save_config",
]
