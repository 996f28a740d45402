"""``feedsolve versions`` — List the versions a provider offers for packages.

Usage::

    feedsolve versions Newtonsoft.Json
    feedsolve versions --catalog catalog.yaml PackageA PackageC --json
"""

from __future__ import annotations

import json

import click

from feedsolve.cli.context import (
    EXIT_INVALID_INPUT,
    EXIT_PROVIDER_FAILURE,
    build_provider,
    configure_logging,
    fail,
    load_cli_settings,
    run_async,
)
from feedsolve.cli.output import print_versions
from feedsolve.core.models import PackageName
from feedsolve.core.versioning import SemanticVersion
from feedsolve.exceptions import RequirementParseError, SourceUnavailableError
from feedsolve.providers.base import PackageProvider


async def _list_all(
    provider: PackageProvider, names: list[PackageName]
) -> dict[PackageName, list[SemanticVersion]]:
    try:
        return {name: sorted(set(await provider.list_versions(name))) for name in names}
    finally:
        await provider.aclose()


@click.command("versions")
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read versions from a YAML package catalog.",
)
@click.option("--feed", "feeds", multiple=True, help="NuGet V3 service index URL (repeatable).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ./feedsolve.yaml if present).",
)
@click.option("--json", "as_json", is_flag=True, help="Print versions as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Log feed requests to stderr.")
def versions_command(
    names: tuple[str, ...],
    catalog: str | None,
    feeds: tuple[str, ...],
    config_path: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """List available versions of each package in NAMES, highest first."""
    configure_logging(verbose)
    settings = load_cli_settings(config_path, feeds=list(feeds) or None)
    try:
        packages = [PackageName(n) for n in names]
    except RequirementParseError as exc:
        fail(str(exc), EXIT_INVALID_INPUT)

    provider = build_provider(settings, catalog)
    try:
        listing = run_async(_list_all(provider, packages))
    except SourceUnavailableError as exc:
        fail(f"feed failure: {exc}", EXIT_PROVIDER_FAILURE)

    if as_json:
        output = {
            str(name): [str(v) for v in reversed(versions)]
            for name, versions in listing.items()
        }
        click.echo(json.dumps(output, indent=2))
        return
    for name, versions in listing.items():
        print_versions(str(name), versions)
