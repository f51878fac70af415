"""Configuration file loading.

The config file is YAML with the same keys as the command-line flags:

    log-level: info
    log-format: console
    no-color: false
    scan:
      output: ./results
      db-repository: ghcr.io/aquasecurity/trivy-db
      skip-signature-validation: false
      arch: amd64

Command-line flags and TRIVY_PLUGIN_ZARF_* environment variables take
precedence over values from the file.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trivy_zarf.consts import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    TRIVY_DEFAULT_DB_REPOSITORY,
)
from trivy_zarf.exceptions import ConfigError

logger = logging.getLogger(__name__)


class ScanSettings(BaseModel):
    """Settings for the scan command."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    output: Path | None = Field(
        default=None, description="Directory for JSON reports; None prints to stdout"
    )
    db_repository: str = Field(
        default=TRIVY_DEFAULT_DB_REPOSITORY,
        alias="db-repository",
        min_length=1,
        description="Trivy DB repository",
    )
    skip_signature_validation: bool = Field(
        default=False,
        alias="skip-signature-validation",
        description="Skip signature validation when pulling from an OCI registry",
    )
    arch: str | None = Field(default=None, description="Architecture to pull; None uses the host's")

    def merged(self, **overrides: Any) -> "ScanSettings":
        """Return a copy with every override that is not None applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        return ScanSettings.model_validate({**self.model_dump(), **update})


class PluginConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="log-level")
    log_format: str = Field(default=DEFAULT_LOG_FORMAT, alias="log-format")
    no_color: bool = Field(default=False, alias="no-color")
    scan: ScanSettings = Field(default_factory=ScanSettings)


def validate_config_path(config_path: Path | str) -> Path:
    """Check that an explicitly requested config file exists.

    Raises:
        ConfigError: If the path is empty or the file does not exist
    """
    if not str(config_path):
        raise ConfigError("config path cannot be empty")
    path = Path(config_path).expanduser()
    if not path.is_file():
        raise ConfigError(f"config file does not exist: {path}")
    return path


def load_config(config_path: Path | str | None = None) -> PluginConfig:
    """Load the plugin configuration.

    Args:
        config_path: Explicit config file. If None, ~/.trivy_plugin_zarf.yaml
            is used when it exists, otherwise defaults.

    Returns:
        PluginConfig

    Raises:
        ConfigError: If the explicit file is missing, or any file is not
            valid YAML or does not match the expected keys
    """
    if config_path is not None:
        path = validate_config_path(config_path)
    elif DEFAULT_CONFIG_PATH.is_file():
        path = DEFAULT_CONFIG_PATH
    else:
        logger.info("Not using a config file")
        return PluginConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"error reading config file {path}", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    try:
        config = PluginConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config file {path}", cause=e) from e

    logger.info(f"Using config file: {path}")
    return config
