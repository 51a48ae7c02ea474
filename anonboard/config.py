"""Process-wide configuration.

Settings come from an optional YAML file and are then overridden by
environment variables::

    server_secret: "change-me"
    data_dir: /var/lib/anonboard
    report_threshold: 3
    trending_threshold: 20

The server secret has no default. A deployment without one cannot
derive pseudonyms, so :meth:`Settings.validate` refuses to start.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from anonboard.errors import ConfigurationError

DEFAULT_CONFIG_FILE = "anonboard.yaml"

_ENV_OVERRIDES = {
    "ANONBOARD_SERVER_SECRET": "server_secret",
    "ANONBOARD_DATA_DIR": "data_dir",
    "ANONBOARD_REPORT_THRESHOLD": "report_threshold",
    "ANONBOARD_TRENDING_THRESHOLD": "trending_threshold",
}


@dataclass
class Settings:
    """Runtime settings for a :class:`~anonboard.board.Board`."""

    server_secret: str = ""
    data_dir: str = ""
    report_threshold: int = 3
    trending_threshold: int = 20
    pseudonym_max_attempts: int = 3
    ledger_max_retries: int = 8
    ban_propagation_attempts: int = 3
    session_hours: int = 24

    def __post_init__(self) -> None:
        if not self.data_dir:
            self.data_dir = str(Path.home() / ".anonboard")

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    def validate(self) -> "Settings":
        """Raise :class:`ConfigurationError` unless the settings are usable."""
        if not self.server_secret or not self.server_secret.strip():
            raise ConfigurationError(
                "server_secret is not configured; set ANONBOARD_SERVER_SECRET"
            )
        for name in ("report_threshold", "trending_threshold", "pseudonym_max_attempts",
                     "ledger_max_retries", "ban_propagation_attempts", "session_hours"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1")
        return self


def _read_config_file(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def load_settings(
    path: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from a YAML file and the environment.

    Parameters
    ----------
    path:
        Config file to read. Defaults to ``$ANONBOARD_CONFIG`` or
        ``./anonboard.yaml``; a missing default file is not an error.
    env:
        Environment mapping, ``os.environ`` when omitted.

    The returned settings are *not* validated; :class:`Board` does that.
    """
    env = os.environ if env is None else env
    explicit = path is not None or "ANONBOARD_CONFIG" in env
    config_path = Path(path or env.get("ANONBOARD_CONFIG", DEFAULT_CONFIG_FILE))

    values: dict = {}
    if config_path.exists():
        values.update(_read_config_file(config_path))
    elif explicit:
        raise ConfigurationError(f"Config file not found: {config_path}")

    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    for var, name in _ENV_OVERRIDES.items():
        if var in env:
            values[name] = env[var]

    for f in fields(Settings):
        if f.name in values and f.type in ("int", int):
            try:
                values[f.name] = int(values[f.name])
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{f.name} must be an integer") from exc

    return Settings(**values)
