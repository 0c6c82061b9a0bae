"""Server configuration loader.

Loads the server configuration from a YAML file. Every setting has a
default, so the server also runs without a configuration file.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mcp_notes_server.protocol.jsonrpc import MAX_MESSAGE_SIZE

STORAGE_BACKENDS = ("memory", "file")
LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigLoadError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports ${VAR_NAME} syntax. Unknown variables are left unchanged.

    Args:
        value: String potentially containing environment variable references.

    Returns:
        String with known environment variables expanded.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if var_name == "HOME":
            return os.path.expanduser("~")
        return match.group(0)

    return pattern.sub(replacer, value)


def _expand(value: Any) -> Any:
    return expand_env_vars(value) if isinstance(value, str) else value


def _as_int(value: Any, name: str) -> int:
    try:
        return int(_expand(value))
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"{name} must be an integer, got {value!r}") from e


def _as_optional_float(value: Any, name: str) -> float | None:
    value = _expand(value)
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"{name} must be a number, got {value!r}") from e
    if result <= 0:
        raise ConfigLoadError(f"{name} must be positive, got {result}")
    return result


@dataclass
class ServerConfig:
    """Server configuration."""

    # Server identity and binding
    host: str = "127.0.0.1"
    port: int = 3000
    server_name: str = "notes-server"
    server_version: str = "1.0.0"

    # Transport settings
    mcp_path: str = "/mcp"
    max_message_size: int = MAX_MESSAGE_SIZE
    allowed_origins: list[str] = field(default_factory=list)
    allowed_hosts: list[str] = field(default_factory=list)

    # Session settings (idle timeout of None disables expiry)
    session_idle_timeout: float | None = None
    session_reap_interval: float = 60.0

    # Storage settings
    storage_backend: str = "memory"
    notes_dir: str = "notes"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"

    # Audit settings
    audit_log_file: str = ""

    @property
    def server_info(self) -> dict[str, str]:
        return {"name": self.server_name, "version": self.server_version}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ServerConfig:
        """Create a ServerConfig from a configuration dictionary.

        Args:
            config: Dictionary parsed from YAML configuration.

        Returns:
            ServerConfig instance with all settings populated.

        Raises:
            ConfigLoadError: If a value has the wrong type or is out of range.
        """
        defaults = cls()
        server = config.get("server") or {}
        transport = config.get("transport") or {}
        sessions = config.get("sessions") or {}
        storage = config.get("storage") or {}
        logging_cfg = config.get("logging") or {}
        audit = config.get("audit") or {}

        mcp_path = _expand(transport.get("path", defaults.mcp_path))
        if not isinstance(mcp_path, str) or not mcp_path.startswith("/"):
            raise ConfigLoadError(f"transport.path must start with '/', got {mcp_path!r}")

        backend = _expand(storage.get("backend", defaults.storage_backend))
        if backend not in STORAGE_BACKENDS:
            raise ConfigLoadError(
                f"storage.backend must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}"
            )

        log_format = _expand(logging_cfg.get("format", defaults.log_format))
        if log_format not in LOG_FORMATS:
            raise ConfigLoadError(
                f"logging.format must be one of {', '.join(LOG_FORMATS)}, got {log_format!r}"
            )

        log_level = str(_expand(logging_cfg.get("level", defaults.log_level))).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigLoadError(f"logging.level is not a valid level: {log_level!r}")

        reap_interval = _as_optional_float(
            sessions.get("reap_interval", defaults.session_reap_interval),
            "sessions.reap_interval",
        )

        return cls(
            host=_expand(server.get("host", defaults.host)),
            port=_as_int(server.get("port", defaults.port), "server.port"),
            server_name=_expand(server.get("name", defaults.server_name)),
            server_version=str(_expand(server.get("version", defaults.server_version))),
            mcp_path=mcp_path,
            max_message_size=_as_int(
                transport.get("max_message_size", defaults.max_message_size),
                "transport.max_message_size",
            ),
            allowed_origins=[_expand(o) for o in transport.get("allowed_origins", [])],
            allowed_hosts=[_expand(h) for h in transport.get("allowed_hosts", [])],
            session_idle_timeout=_as_optional_float(
                sessions.get("idle_timeout"), "sessions.idle_timeout"
            ),
            session_reap_interval=reap_interval or defaults.session_reap_interval,
            storage_backend=backend,
            notes_dir=_expand(storage.get("notes_dir", defaults.notes_dir)),
            log_level=log_level,
            log_format=log_format,
            audit_log_file=_expand(audit.get("log_file", "")),
        )


def load_config(path: Path) -> ServerConfig:
    """Load server configuration from a YAML file.

    Args:
        path: Path to the configuration YAML file.

    Returns:
        ServerConfig instance.

    Raises:
        ConfigLoadError: If the file cannot be found, parsed, or validated.
    """
    if not path.exists():
        raise ConfigLoadError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse config YAML: {e}") from e

    # An empty file means "all defaults"
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigLoadError("Config must be a YAML mapping")

    return ServerConfig.from_dict(config)
