"""
Config system - connection settings from files and the environment.

Merge precedence (later overrides earlier):
    defaults < YAML file < .env file < environment variables
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import dotenv_values

from .faults.domains import ConfigInvalidFault

__all__ = ["FolioConfig"]

DEFAULT_URL = "memory://default"


@dataclass
class FolioConfig:
    """
    Store connection configuration.

    Attributes:
        urls: Store URLs; the first is the canonical connection URL
        options: Adapter options (e.g. ``database`` or MongoDB client options)

    YAML layout:
        database:
          url: mongodb://localhost:27017/blog
          options:
            serverSelectionTimeoutMS: 2000

    Environment (default prefix ``FOLIO_``):
        FOLIO_URL=mongodb://a:27017/blog,mongodb://b:27017/blog
        FOLIO_OPTIONS__DATABASE=blog
    """

    urls: List[str] = field(default_factory=lambda: [DEFAULT_URL])
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        *,
        env_file: Optional[str] = None,
        env_prefix: str = "FOLIO_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> FolioConfig:
        """
        Load configuration from multiple sources.

        Args:
            path: Optional YAML file with a ``database`` section
            env_file: Optional .env file
            env_prefix: Prefix for environment variables
            environ: Environment mapping (defaults to ``os.environ``)
        """
        data: Dict[str, Any] = {}

        if path:
            _merge_dict(data, _load_yaml_file(Path(path)))

        if env_file:
            values = dotenv_values(env_file)
            _merge_dict(data, _from_env({k: v for k, v in values.items() if v is not None}, env_prefix))

        env = os.environ if environ is None else environ
        _merge_dict(data, _from_env(env, env_prefix))

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> FolioConfig:
        urls = data.get("urls", data.get("url"))
        if urls is None:
            urls = [DEFAULT_URL]
        elif isinstance(urls, str):
            urls = [u.strip() for u in urls.split(",") if u.strip()]
        elif not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ConfigInvalidFault("url", "expected a string or a list of strings")
        if not urls:
            raise ConfigInvalidFault("url", "no store URL given")

        options = data.get("options", {})
        if not isinstance(options, dict):
            raise ConfigInvalidFault("options", "expected a mapping")

        return cls(urls=urls, options=options)


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load the ``database`` section of a YAML config file."""
    import yaml

    if not path.exists():
        raise ConfigInvalidFault(str(path), "config file does not exist")
    with open(path) as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ConfigInvalidFault(str(path), "top level must be a mapping")
    section = loaded.get("database", {})
    if not isinstance(section, dict):
        raise ConfigInvalidFault("database", "expected a mapping")
    return section


def _from_env(env: Mapping[str, str], prefix: str) -> Dict[str, Any]:
    """Convert FOLIO_OPTIONS__MAX_POOL_SIZE style keys to a nested dict."""
    data: Dict[str, Any] = {}
    for key, value in env.items():
        if not key.startswith(prefix):
            continue
        parts = key[len(prefix):].lower().split("__")
        current = data
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        # URLs stay strings
        current[parts[-1]] = value if parts == ["url"] else _parse_value(value)
    return data


def _parse_value(value: str) -> Any:
    """Parse string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    if value.startswith(("{", "[")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def _merge_dict(target: dict, source: dict) -> None:
    """Deep merge source into target."""
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _merge_dict(target[key], value)
        else:
            target[key] = value
