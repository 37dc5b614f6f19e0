"""
Configuration - local config.yaml, client options and credentials

This module handles the three places settings come from:

1. The project's config.yaml (parameter and event definitions), parsed with
   PyYAML and validated with pydantic before anything else sees it.
2. ClientOptions for the runtime SDK, built in code or from environment
   variables.
3. Credentials: TRAFFICAL_API_KEY for the SDK, and a management key for the
   CLI which may also live in ~/.traffical/credentials.

Design Considerations:
- Fail fast with clear messages for broken files (the CLI prints them as-is)
- Search a small, fixed set of locations rather than walking the tree
- Package templates are read through importlib.resources so they work from
  an installed wheel as well as from a checkout
"""

import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import ConfigFileError, CredentialsError, ErrorCodes
from .models import ConfigFile

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://sdk.traffical.io"
DEFAULT_MANAGEMENT_URL = "https://api.traffical.io"
DEFAULT_CONFIG_LOCATIONS = (
    Path(".traffical") / "config.yaml",
    Path("config.yaml"),
)
CREDENTIALS_PATH = Path.home() / ".traffical" / "credentials"

API_KEY_ENV = "TRAFFICAL_API_KEY"
MANAGEMENT_KEY_ENV = "TRAFFICAL_MANAGEMENT_KEY"
PROJECT_ID_ENV = "TRAFFICAL_PROJECT_ID"
ENV_ENV = "TRAFFICAL_ENV"
API_BASE_ENV = "TRAFFICAL_API_BASE"


@dataclass
class ClientOptions:
    """
    Runtime options for TrafficalClient

    bundle_ttl_seconds is the validity window: past it, a cached bundle is
    ignored and callers get their defaults. refresh_interval_seconds is how
    old a bundle may get before the client tries to refetch it.
    """

    api_key: Optional[str] = None
    project_id: Optional[str] = None
    env: str = "production"
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 5.0
    bundle_ttl_seconds: float = 3600.0
    refresh_interval_seconds: float = 60.0
    auto_refresh: bool = True
    track_decisions: bool = True
    batch_size: int = 50
    flush_interval_seconds: float = 5.0
    max_queue_size: int = 1000
    decision_dedup_ttl_seconds: float = 3600.0
    strict: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientOptions":
        """Build options from TRAFFICAL_* environment variables"""
        values: Dict[str, Any] = {
            "api_key": os.environ.get(API_KEY_ENV),
            "project_id": os.environ.get(PROJECT_ID_ENV),
        }
        if os.environ.get(ENV_ENV):
            values["env"] = os.environ[ENV_ENV]
        if os.environ.get(API_BASE_ENV):
            values["base_url"] = os.environ[API_BASE_ENV]
        values.update(overrides)
        return cls(**values)

    def require_api_key(self) -> str:
        if not self.api_key:
            raise CredentialsError(
                ErrorCodes.MISSING_CREDENTIALS,
                f"No API key configured. Set {API_KEY_ENV} or pass api_key.",
            )
        return self.api_key


def find_config_path(start: Optional[Path] = None) -> Path:
    """
    Locate config.yaml relative to `start` (default: current directory)

    Checks .traffical/config.yaml first, then config.yaml.
    """
    base = Path(start) if start is not None else Path.cwd()
    for candidate in DEFAULT_CONFIG_LOCATIONS:
        path = base / candidate
        if path.is_file():
            logger.debug(f"Found config file at: {path}")
            return path
    raise ConfigFileError(
        ErrorCodes.CONFIG_NOT_FOUND,
        f"No config file found under {base}. Run 'traffical init' to create one.",
    )


def parse_config(data: Any, source: str = "<memory>") -> ConfigFile:
    if not isinstance(data, dict):
        raise ConfigFileError(
            ErrorCodes.CONFIG_VALIDATION,
            f"Config file must contain a YAML dictionary: {source}",
        )
    try:
        return ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigFileError(
            ErrorCodes.CONFIG_VALIDATION,
            f"Invalid config in {source}: {e}",
            cause=e,
        ) from e


def load_config_file(path: Union[str, Path]) -> ConfigFile:
    """Read and validate a config.yaml"""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigFileError(
            ErrorCodes.CONFIG_NOT_FOUND, f"Config file not found: {path}", cause=e
        ) from e
    except OSError as e:
        raise ConfigFileError(
            ErrorCodes.CONFIG_NOT_FOUND, f"Could not read config file {path}: {e}", cause=e
        ) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigFileError(
            ErrorCodes.CONFIG_PARSE, f"Invalid YAML in config file {path}: {e}", cause=e
        ) from e

    config = parse_config(data, source=str(path))
    logger.info(
        f"Loaded config from {path}: {len(config.parameters)} parameter(s), "
        f"{len(config.events)} event(s)"
    )
    return config


def dump_config(config: ConfigFile) -> str:
    return yaml.safe_dump(config.to_payload(), sort_keys=False, allow_unicode=True)


def save_config_file(config: ConfigFile, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_config(config), encoding="utf-8")
    logger.info(f"Wrote config file: {path}")
    return path


def read_template(name: str) -> str:
    """Read a file bundled under traffical_sdk/templates"""
    template = resources.files("traffical_sdk").joinpath("templates").joinpath(name)
    return template.read_text(encoding="utf-8")


def load_management_key(credentials_path: Optional[Path] = None) -> str:
    """
    Find the management key used by the CLI

    TRAFFICAL_MANAGEMENT_KEY wins over the credentials file, which is a small
    YAML document with a `managementKey` entry.
    """
    key = os.environ.get(MANAGEMENT_KEY_ENV)
    if key:
        return key

    path = credentials_path or CREDENTIALS_PATH
    if path.is_file():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise CredentialsError(
                ErrorCodes.MISSING_CREDENTIALS,
                f"Credentials file {path} is not valid YAML: {e}",
                cause=e,
            ) from e
        if isinstance(data, dict) and data.get("managementKey"):
            logger.debug(f"Using management key from {path}")
            return str(data["managementKey"])

    raise CredentialsError(
        ErrorCodes.MISSING_CREDENTIALS,
        f"No management key found. Set {MANAGEMENT_KEY_ENV} or add "
        f"'managementKey' to {path}.",
    )
