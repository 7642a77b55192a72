"""Reading ``foreman-provisioner.yaml``."""

from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor
from ruamel.yaml.error import YAMLError

from foreman_provisioner.config.schema import Config

if TYPE_CHECKING:
    from collections.abc import Mapping

    from foreman_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file cannot be read or is invalid."""


# provider field -> environment variable (also looked up in ``.env``)
_PROVIDER_ENV: dict[str, str] = {
    "host": "FOREMAN_HOST",
    "username": "FOREMAN_USERNAME",
    "password": "FOREMAN_PASSWORD",
    "verify_ssl": "FOREMAN_VERIFY_SSL",
    "timeout": "FOREMAN_TIMEOUT",
}


def _from_env(field: str, env_key: str, raw: str) -> Any:
    """Parse an environment string for ``field``; YAML values are already typed."""
    if field == "verify_ssl":
        value = SafeConstructor.bool_values.get(raw.strip().lower())
        if value is None:
            raise ConfigError(f"Invalid boolean for {env_key}: {raw!r}")
        return value
    if field == "timeout":
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(f"Invalid number for {env_key}: {raw!r}") from None
    return raw


def _resolve_provider(raw_provider: Mapping[str, Any], config_dir: Path) -> dict[str, Any]:
    """Merge provider settings: YAML, then the environment, then ``<config_dir>/.env``."""
    unknown = sorted(set(raw_provider) - set(_PROVIDER_ENV))
    if unknown:
        raise ConfigError(f"Unknown provider field(s): {', '.join(unknown)}")

    env_file = config_dir / ".env"
    dotenv = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _PROVIDER_ENV.items():
        if raw_provider.get(field) is not None:
            resolved[field] = raw_provider[field]
            continue
        env_value = os.environ.get(env_key, dotenv.get(env_key))
        if env_value is not None:
            resolved[field] = _from_env(field, env_key, env_value)

    host = resolved.get("host")
    if isinstance(host, str):
        resolved["host"] = host.rstrip("/")
    return resolved


def _describe(exc: ValidationError) -> str:
    """One ``location: message`` line per pydantic error."""
    lines = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"{where}: {err['msg']}")
    return "\n".join(lines)


def _duplicate_addresses(resources: list[Resource]) -> list[str]:
    counts = Counter(r.address for r in resources)
    return [
        f"Duplicate resource address '{address}' ({n} declarations)"
        for address, n in counts.items()
        if n > 1
    ]


def load_config(path: Path | str) -> Config:
    """Load and validate a YAML configuration file.

    A relative ``state_path`` is taken relative to the file's directory.

    Raises:
        ConfigError: unreadable file, invalid YAML or a validation failure.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except (OSError, YAMLError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a YAML mapping")

    raw["provider"] = _resolve_provider(raw.get("provider") or {}, path.parent)
    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}:\n{_describe(exc)}") from exc

    config.config_dir = path.parent
    if not config.state_path.is_absolute():
        config.state_path = config.config_dir / config.state_path

    duplicates = _duplicate_addresses(config.resources)
    if duplicates:
        raise ConfigError("\n".join(duplicates))

    logger.info("Loaded %s: %d resource(s)", path, len(config.resources))
    return config
