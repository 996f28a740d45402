"""Shared plumbing for CLI commands: logging, settings, providers, exits.

Exit Codes:
    0 — Resolution succeeded.
    1 — Resolution ended in a conflict.
    2 — A feed could not be reached or a manifest vanished.
    3 — Invalid input or configuration.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Coroutine
from typing import Any, NoReturn, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler

from feedsolve.cache.store import ManifestStore
from feedsolve.config import ResolverSettings, load_settings
from feedsolve.exceptions import CacheError, ConfigError, FeedsolveError
from feedsolve.providers.base import PackageProvider
from feedsolve.providers.catalog import CatalogProvider
from feedsolve.providers.nuget import NuGetFeedProvider

T = TypeVar("T")

EXIT_OK = 0
EXIT_CONFLICT = 1
EXIT_PROVIDER_FAILURE = 2
EXIT_INVALID_INPUT = 3


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr through rich when *verbose* is set."""
    if not verbose:
        return
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root = logging.getLogger("feedsolve")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG)


def fail(message: str, code: int) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)


def load_cli_settings(config_path: str | None, **overrides: Any) -> ResolverSettings:
    """Load settings and apply CLI overrides; exit 3 on invalid values."""
    try:
        return load_settings(config_path).override(**overrides)
    except ConfigError as exc:
        fail(str(exc), EXIT_INVALID_INPUT)


def build_provider(settings: ResolverSettings, catalog: str | None) -> PackageProvider:
    """Catalog provider when *catalog* is given, NuGet feeds otherwise."""
    if catalog is not None:
        try:
            return CatalogProvider.from_yaml(
                catalog, strategy=settings.transitive_strategy
            )
        except FeedsolveError as exc:
            fail(str(exc), EXIT_INVALID_INPUT)
    return NuGetFeedProvider(
        settings.feeds,
        strategy=settings.transitive_strategy,
        framework=settings.framework,
        timeout=settings.timeout,
    )


def open_store(settings: ResolverSettings) -> ManifestStore | None:
    if not settings.use_disk_cache:
        return None
    try:
        return ManifestStore(settings.cache_path)
    except CacheError as exc:
        fail(str(exc), EXIT_INVALID_INPUT)
