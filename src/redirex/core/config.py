"""Configuration types with environment variable support.

Rewrite options are usually loaded from a YAML, JSON or TOML file:

    RedirectMatch:
      - "301 /seo/(.*) /$1"
      - "301 /docs/v12(.*) /docs"
      - "0 /(.*)\\.(json|xml) /$1?format=$2"
    PrimarySubdomain: www

Server settings can be configured via environment variables with the
REDIREX_ prefix. Example: REDIREX_BIND=127.0.0.1:9000.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from redirex.core.exceptions import ConfigError


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML, JSON or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, .json or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        elif path.suffix == ".toml":
            data = tomllib.loads(content)
        else:
            raise ConfigError(f"Unsupported config format: {path.suffix or path.name}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


class RewriteOptions(BaseModel):
    """Declarative input for a rewrite engine.

    Field names accept the snake_case form as well as the camelCase and
    PascalCase keys used by existing redirect files.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    redirect_match: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("redirect_match", "redirectMatch", "RedirectMatch"),
        description='Rule lines of form "CODE PATTERN TARGET", in priority order.',
    )
    primary_subdomain: str = Field(
        default="",
        validation_alias=AliasChoices(
            "primary_subdomain", "primarySubdomain", "PrimarySubdomain"
        ),
        description="Subdomain that root-domain requests are redirected to, e.g. 'www'.",
    )
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("debug", "Debug"),
        description="Emit per-request debug log lines.",
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RewriteOptions:
        """Create options from a decoded config mapping.

        A top-level "rewrite" section is used when present, so the options
        can share a file with other settings.
        """
        section = data.get("rewrite", data)
        if not isinstance(section, dict):
            raise ConfigError("'rewrite' section must be a mapping")
        try:
            return cls.model_validate(section)
        except ValidationError as e:
            raise ConfigError(f"Invalid rewrite options: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> RewriteOptions:
        """Load options from a YAML, JSON or TOML file."""
        return cls.from_dict(load_config_from_file(path))


def load_options(path: str | Path) -> RewriteOptions:
    """Load rewrite options from a file."""
    return RewriteOptions.from_file(path)


class ServerSettings(BaseSettings):
    """Settings for the bundled rewrite server.

    All settings can be overridden via environment variables:
    - REDIREX_BIND: Listen address (host:port)
    - REDIREX_CONFIG_FILE: Rewrite options file
    - REDIREX_PRIMARY_SUBDOMAIN: Overrides the file's primary subdomain
    - REDIREX_DEBUG: Enable engine debug log lines
    - REDIREX_LOG_LEVEL: debug, info, warning or error
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIREX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bind: str = Field(
        default="0.0.0.0:8080",
        description="Listen address for the HTTP server.",
    )
    config_file: str | None = Field(
        default=None,
        description="Path to the rewrite options file.",
    )
    primary_subdomain: str | None = Field(
        default=None,
        description="Primary subdomain override. Empty string disables canonicalization.",
    )
    debug: bool = Field(
        default=False,
        description="Enable per-request debug log lines.",
    )
    log_level: str = Field(
        default="info",
        description="Log level: debug, info, warning or error.",
    )

    def to_options(self) -> RewriteOptions:
        """Build rewrite options from the config file plus overrides."""
        options = (
            RewriteOptions.from_file(self.config_file) if self.config_file else RewriteOptions()
        )
        updates: dict[str, Any] = {}
        if self.primary_subdomain is not None:
            updates["primary_subdomain"] = self.primary_subdomain
        if self.debug:
            updates["debug"] = True
        return options.model_copy(update=updates) if updates else options

    def parse_bind(self) -> tuple[str, int]:
        """Split the bind address into host and port."""
        host, _, port = self.bind.rpartition(":")
        if not host or not port.isdigit():
            raise ConfigError(f"Invalid bind address: {self.bind}")
        return host.strip("[]"), int(port)
