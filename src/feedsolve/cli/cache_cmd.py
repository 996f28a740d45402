"""``feedsolve cache-clear`` — Delete every entry of the manifest cache.

The persistent cache is never invalidated automatically; this command is
the explicit way to drop manifests, for example after a feed republished
a package.
"""

from __future__ import annotations

import click

from feedsolve.cache.store import ManifestStore
from feedsolve.cli.context import EXIT_INVALID_INPUT, fail, load_cli_settings
from feedsolve.exceptions import CacheError


@click.command("cache-clear")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Manifest cache directory (default: from settings).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ./feedsolve.yaml if present).",
)
def cache_clear_command(cache_dir: str | None, config_path: str | None) -> None:
    """Remove all cached manifests."""
    settings = load_cli_settings(config_path, cache_dir=cache_dir)
    try:
        store = ManifestStore(settings.cache_path)
        removed = store.clear()
    except (CacheError, OSError) as exc:
        fail(f"cannot clear {settings.cache_path}: {exc}", EXIT_INVALID_INPUT)
    click.echo(f"Removed {removed} manifest(s) from {store.root}")
