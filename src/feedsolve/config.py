"""Resolver settings: defaults, YAML file, environment.

Precedence, lowest first:

1. Built-in defaults.
2. YAML file (``feedsolve.yaml`` in the working directory, or an explicit
   path).
3. Environment variables ``FEEDSOLVE_<FIELD>``, e.g. ``FEEDSOLVE_FEEDS``
   (comma-separated), ``FEEDSOLVE_CACHE_DIR``, ``FEEDSOLVE_PREFETCH``,
   ``FEEDSOLVE_TIMEOUT``.
4. CLI options, applied by the caller with ``ResolverSettings.override``.

Settings are a ``pydantic_settings.BaseSettings`` model. File values enter
as constructor keyword arguments, and the source order is flipped so the
environment still wins over them.

YAML format::

    feeds:
      - https://api.nuget.org/v3/index.json
    cache_dir: ~/.feedsolve/manifests
    use_disk_cache: true
    strategy: max
    transitive_strategy: max
    prefetch: 4
    timeout: 30
    framework: net8.0
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from feedsolve.core.models import ResolverStrategy
from feedsolve.exceptions import ConfigError
from feedsolve.providers.nuget import NUGET_ORG_FEED

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE: str = "feedsolve.yaml"
DEFAULT_CACHE_DIR: str = "~/.feedsolve/manifests"


class ResolverSettings(BaseSettings):
    """Effective configuration of one CLI invocation or library caller.

    Attributes:
        feeds: NuGet V3 service index URLs.
        cache_dir: Directory of the persistent manifest cache.
        use_disk_cache: Whether the persistent cache is read and written.
        strategy: Strategy for root requirements.
        transitive_strategy: Strategy providers give to dependencies.
        prefetch: Manifests to warm ahead of the search (0 disables).
        timeout: HTTP timeout in seconds.
        framework: Target framework used to pick nuspec dependency groups.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDSOLVE_",
        env_ignore_empty=True,
        extra="forbid",
        frozen=True,
    )

    feeds: Annotated[tuple[str, ...], NoDecode] = (NUGET_ORG_FEED,)
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    use_disk_cache: bool = True
    strategy: ResolverStrategy = ResolverStrategy.MAX
    transitive_strategy: ResolverStrategy = ResolverStrategy.MAX
    prefetch: int = Field(default=0, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    framework: str | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings

    @field_validator("feeds", mode="before")
    @classmethod
    def split_feeds(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            items = value.split(",")
        elif isinstance(value, (list, tuple)):
            items = [str(v) for v in value]
        else:
            raise ValueError(f"expected a list of URLs, got {value!r}")
        return tuple(item.strip() for item in items if item.strip())

    @field_validator("feeds")
    @classmethod
    def require_feed(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one feed must be configured")
        return value

    @field_validator("strategy", "transitive_strategy", mode="before")
    @classmethod
    def parse_strategy(cls, value: Any) -> ResolverStrategy:
        return ResolverStrategy.parse(value)

    @field_validator("framework", mode="before")
    @classmethod
    def blank_framework(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir).expanduser()

    def override(self, **changes: Any) -> ResolverSettings:
        """Return a copy with every non-None value in *changes* applied.

        The environment is not consulted again.

        Raises:
            ConfigError: If a changed value is invalid.
        """
        values = self.model_dump()
        values.update({k: v for k, v in changes.items() if v is not None})
        try:
            return type(self).model_validate(values)
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
        for err in exc.errors()
    ]
    return "Invalid settings: " + "; ".join(problems)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot load config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data


def load_settings(path: Path | str | None = None) -> ResolverSettings:
    """Build settings from defaults, a YAML file and the environment.

    Args:
        path: Explicit config file. Must exist when given. Without it,
            ``feedsolve.yaml`` in the working directory is used if present.

    Raises:
        ConfigError: If the file is unreadable or a value is invalid.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = Path(DEFAULT_CONFIG_FILE)

    file_values: dict[str, Any] = {}
    if config_path.is_file():
        logger.debug("Loading settings from %s", config_path)
        file_values = _read_yaml(config_path)

    try:
        return ResolverSettings(**file_values)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc
