"""Configuration loading and validation for the YAML profile file."""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from connectblue.core.errors import ConfigLoadError, ConfigValidationError
from connectblue.core.model import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_POLL_INTERVAL_S,
    AppConfig,
    TargetDevice,
    fourcc,
)
from connectblue.core.name_match import normalize_address

CONFIG_ENV_VAR = "CONNECTBLUE_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("connectblue.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "connectblue/config.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _build_profile(name: str, entry: dict[str, Any], source: Path) -> TargetDevice:
    address = normalize_address(entry["address"])
    if address is None:
        raise ConfigValidationError(f"Profile '{name}' in {source} has malformed address '{entry['address']}'")
    return TargetDevice(
        address=address,
        display_name=entry["name"],
        connect_timeout_s=float(entry.get("connect_timeout_s", DEFAULT_CONNECT_TIMEOUT_S)),
        poll_interval_s=float(entry.get("poll_interval_s", DEFAULT_POLL_INTERVAL_S)),
    )


def build_config(doc: dict[str, Any], source: Path) -> AppConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    profiles = {
        name: _build_profile(name, entry, source) for name, entry in doc.get("profiles", {}).items()
    }

    default_profile = doc.get("default_profile")
    if default_profile is not None and default_profile not in profiles:
        raise ConfigValidationError(
            f"default_profile '{default_profile}' in {source} does not name a profile. "
            f"Available: {', '.join(sorted(profiles)) or '<none>'}"
        )

    bluetooth_transport = doc.get("bluetooth_transport")
    return AppConfig(
        profiles=profiles,
        default_profile=default_profile,
        bluetooth_transport=fourcc(bluetooth_transport) if bluetooth_transport is not None else None,
    )


def load_config(path: Path | None = None) -> AppConfig:
    """Load the configuration file.

    An explicit ``path`` (or ``$CONNECTBLUE_CONFIG``) must exist. The default
    location is optional and a missing file yields an empty configuration.
    """
    explicit = path
    if explicit is None and os.environ.get(CONFIG_ENV_VAR):
        explicit = Path(os.environ[CONFIG_ENV_VAR])

    if explicit is not None:
        if not explicit.is_file():
            raise ConfigLoadError(f"Config file {explicit} does not exist")
        config_path = explicit
    else:
        config_path = default_config_path()
        if not config_path.is_file():
            LOGGER.debug("No config file at %s", config_path)
            return AppConfig()

    LOGGER.debug("Loading config from %s", config_path)
    return build_config(_read_yaml(config_path), config_path)
