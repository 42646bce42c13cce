"""Configuration loading.

Settings come from a YAML file, then environment variables, then command-line
options, each overriding the previous source.

Example config file:
    region: us-west-2
    resourceTypes:
      - AWS::EC2::VPC
      - AWS::EC2::Subnet
    ignoreErrors: true
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from tagreaper.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TAGREAPER_CONFIG"

# Config file key -> Config field
FILE_KEYS = {
    "region": "region",
    "resourceTypes": "resource_types",
    "awsProfile": "aws_profile",
    "logLevel": "log_level",
    "ignoreErrors": "ignore_errors",
    "dryRun": "dry_run",
    "timeout": "timeout",
    "logDir": "log_dir",
}


@dataclass(frozen=True)
class Config:
    """Run configuration.

    Attributes:
        region: AWS region to discover and delete in
        resource_types: Allow-list of resource type names narrowing tag queries
        aws_profile: AWS profile name (optional)
        log_level: Logging level name
        ignore_errors: Skip malformed input documents and keep deleting after failures
        dry_run: Discover and order resources without deleting anything
        timeout: Per-call AWS timeout in seconds (optional)
        log_dir: Directory for the failed deletion log
    """

    region: str = "us-east-1"
    resource_types: Tuple[str, ...] = ()
    aws_profile: Optional[str] = None
    log_level: str = "WARNING"
    ignore_errors: bool = False
    dry_run: bool = False
    timeout: Optional[float] = None
    log_dir: str = "."

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Load configuration from a file and the environment.

        Args:
            path: Config file (default: $TAGREAPER_CONFIG, ./.tagreaper.yaml, ~/.tagreaper/config.yaml)
            environ: Environment mapping (default: os.environ)

        Returns:
            Config with file and environment values applied

        Raises:
            ConfigError: If an explicitly given file is missing or any file is malformed
        """
        environ = os.environ if environ is None else environ

        values: Dict[str, Any] = {}
        config_path = _find_config_file(path, environ)
        if config_path is not None:
            values.update(_read_config_file(config_path))

        region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION")
        if region:
            values["region"] = region
        if environ.get("AWS_PROFILE"):
            values["aws_profile"] = environ["AWS_PROFILE"]
        if environ.get("TAGREAPER_LOG_LEVEL"):
            values["log_level"] = environ["TAGREAPER_LOG_LEVEL"]

        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the given fields replaced, ignoring None values."""
        return dataclasses.replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _find_config_file(path: Optional[Union[str, Path]], environ: Mapping[str, str]) -> Optional[Path]:
    explicit = path or environ.get(CONFIG_ENV_VAR)
    if explicit:
        explicit_path = Path(explicit)
        if not explicit_path.is_file():
            raise ConfigError(f"Config file not found: {explicit_path}")
        return explicit_path

    for candidate in (Path.cwd() / ".tagreaper.yaml", Path.home() / ".tagreaper" / "config.yaml"):
        if candidate.is_file():
            return candidate
    return None


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in FILE_KEYS:
            logger.warning(f"Ignoring unknown config key '{key}' in {path}")
            continue
        values[FILE_KEYS[key]] = value

    resource_types = values.get("resource_types")
    if resource_types is not None:
        if not isinstance(resource_types, list):
            raise ConfigError("resourceTypes must be a list of resource type names")
        values["resource_types"] = tuple(str(name) for name in resource_types)

    logger.debug(f"Loaded config from {path}")
    return values
