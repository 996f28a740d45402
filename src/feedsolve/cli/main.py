"""feedsolve CLI — Backtracking dependency resolution against package feeds.

Entry point for the ``feedsolve`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    resolve      — Resolve requirements and their transitive dependencies.
    versions     — List available versions of packages.
    cache-clear  — Delete the persistent manifest cache.

Usage::

    feedsolve resolve "Newtonsoft.Json >=12.0" "Serilog ^3.0"
    feedsolve resolve --catalog catalog.yaml PackageA --strategy min
    feedsolve versions Newtonsoft.Json
    feedsolve cache-clear
"""

from __future__ import annotations

import click

from feedsolve import __version__
from feedsolve.cli.cache_cmd import cache_clear_command
from feedsolve.cli.resolve_cmd import resolve_command
from feedsolve.cli.versions_cmd import versions_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """feedsolve: Resolve package requirements into one consistent set.

    Selects a version for every direct and transitive dependency so that
    all version ranges hold at once, or explains why no such set exists.
    """


cli.add_command(resolve_command)
cli.add_command(versions_command)
cli.add_command(cache_clear_command)
