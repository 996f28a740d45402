"""``feedsolve resolve`` — Resolve requirements to one consistent package set.

Requirements are written as ``Name`` or ``Name <range>``, one per argument::

    feedsolve resolve "Newtonsoft.Json >=12.0,<14.0" "NUnit [3.13]"
    feedsolve resolve --catalog catalog.yaml PackageA PackageB --json

Exit Codes:
    0 — Resolution successful.
    1 — Conflict: no consistent set of versions exists.
    2 — A feed was unreachable or a listed version had no manifest.
    3 — Invalid requirement, catalog, or configuration.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from feedsolve.cli.context import (
    EXIT_CONFLICT,
    EXIT_INVALID_INPUT,
    EXIT_OK,
    EXIT_PROVIDER_FAILURE,
    build_provider,
    configure_logging,
    fail,
    load_cli_settings,
    open_store,
    run_async,
)
from feedsolve.cli.output import print_resolution, resolution_to_dict
from feedsolve.core.models import PackageRequirement, Resolution, parse_requirement
from feedsolve.core.resolver import Resolver
from feedsolve.exceptions import (
    PackageNotFoundError,
    RequirementParseError,
    SourceUnavailableError,
)


async def _resolve(resolver: Resolver, roots: list[PackageRequirement]) -> Resolution:
    try:
        return await resolver.resolve(roots)
    finally:
        await resolver.provider.aclose()


@click.command("resolve")
@click.argument("requirements", nargs=-1, required=True)
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Resolve against a YAML package catalog instead of NuGet feeds.",
)
@click.option("--feed", "feeds", multiple=True, help="NuGet V3 service index URL (repeatable).")
@click.option(
    "--strategy",
    type=click.Choice(["max", "min"], case_sensitive=False),
    default=None,
    help="Strategy for root requirements (default: max).",
)
@click.option(
    "--prefetch",
    type=click.IntRange(min=0),
    default=None,
    help="Manifests to fetch ahead of the search (default: 0).",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Persistent manifest cache directory.",
)
@click.option("--no-cache", is_flag=True, help="Do not read or write the manifest cache.")
@click.option("--framework", default=None, help="Target framework for dependency groups.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ./feedsolve.yaml if present).",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Log search decisions to stderr.")
def resolve_command(
    requirements: tuple[str, ...],
    catalog: str | None,
    feeds: tuple[str, ...],
    strategy: str | None,
    prefetch: int | None,
    cache_dir: str | None,
    no_cache: bool,
    framework: str | None,
    config_path: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Resolve REQUIREMENTS and all transitive dependencies.

    Prints the selected version of every package, or an explanation of
    the requirements that could not be satisfied together.

    Exit code 0 on success, 1 on conflict, 2 on feed failure, 3 on
    invalid input.
    """
    configure_logging(verbose)
    settings = load_cli_settings(
        config_path,
        feeds=list(feeds) or None,
        strategy=strategy,
        prefetch=prefetch,
        cache_dir=cache_dir,
        framework=framework,
        use_disk_cache=False if no_cache or catalog else None,
    )

    sources = (f"catalog:{Path(catalog).name}",) if catalog else settings.feeds
    try:
        roots = [
            parse_requirement(text, strategy=settings.strategy, sources=sources)
            for text in requirements
        ]
    except RequirementParseError as exc:
        fail(str(exc), EXIT_INVALID_INPUT)

    store = open_store(settings)
    provider = build_provider(settings, catalog)
    resolver = Resolver(provider, store=store, prefetch=settings.prefetch)
    try:
        resolution = run_async(_resolve(resolver, roots))
    except (SourceUnavailableError, PackageNotFoundError) as exc:
        fail(f"feed failure: {exc}", EXIT_PROVIDER_FAILURE)

    if as_json:
        click.echo(json.dumps(resolution_to_dict(resolution, roots), indent=2))
    else:
        print_resolution(resolution, roots, resolver.last_stats)
    sys.exit(EXIT_OK if resolution.is_ok else EXIT_CONFLICT)
