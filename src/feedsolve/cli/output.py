"""Rich output formatting helpers for the feedsolve CLI.

Provides the resolution summary (a table of resolved packages, or the
conflict explanation), version listings, and the JSON rendering used by
``--json``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from feedsolve.cache.memory import CacheStats
from feedsolve.core.models import PackageRequirement, Resolution
from feedsolve.core.versioning import SemanticVersion

console = Console()


def package_origins(
    resolution: Resolution, roots: Iterable[PackageRequirement]
) -> dict[str, list[str]]:
    """Map each resolved package to what pulled it in.

    A package is attributed to ``root`` if a root requirement names it, and
    to every resolved package whose manifest depends on it.
    """
    root_names = {r.name for r in roots}
    origins: dict[str, list[str]] = {}
    for pkg in resolution.packages:
        found = ["root"] if pkg.name in root_names else []
        found.extend(
            str(other)
            for other in resolution.packages
            if any(dep.name == pkg.name for dep in other.dependencies)
        )
        origins[str(pkg.name)] = found
    return origins


def print_resolution(
    resolution: Resolution,
    roots: Sequence[PackageRequirement],
    stats: CacheStats | None = None,
) -> None:
    """Print dependency resolution results.

    Args:
        resolution: Outcome of ``Resolver.resolve``.
        roots: The root requirements, used to attribute packages.
        stats: Optional cache counters for the run.
    """
    if resolution.is_ok:
        console.print(
            Panel("[bold green]Resolution successful[/bold green]",
                  title="Dependency Resolution")
        )
        if resolution.packages:
            origins = package_origins(resolution, roots)
            table = Table(show_header=True)
            table.add_column("Package", style="bold")
            table.add_column("Version")
            table.add_column("Required By", style="dim")
            table.add_column("Frameworks", style="dim")
            for pkg in resolution.packages:
                table.add_row(
                    str(pkg.name),
                    str(pkg.version),
                    ", ".join(origins[str(pkg.name)]),
                    ", ".join(pkg.framework_restrictions) or "-",
                )
            console.print(table)
        else:
            console.print("[dim]No packages to resolve.[/dim]")
    else:
        console.print(
            Panel("[bold red]Resolution failed[/bold red]",
                  title="Dependency Resolution")
        )
        for line in resolution.describe_conflicts():
            console.print(f"  [red]- {escape(line)}[/red]", highlight=False)
        if resolution.boosts:
            hot = ", ".join(f"{name} ({n})" for name, n in resolution.boosts.items())
            console.print(f"[dim]Conflict hot spots: {hot}[/dim]", highlight=False)

    if stats is not None:
        console.print(
            f"[dim]Explored {len(resolution.explored)} candidate(s); "
            f"{stats.version_fetches} version list(s) and "
            f"{stats.manifest_fetches} manifest(s) fetched, "
            f"{stats.disk_hits} from disk cache[/dim]",
            highlight=False,
        )


def print_versions(name: str, versions: Sequence[SemanticVersion]) -> None:
    """Print the available versions of one package, highest first."""
    if not versions:
        console.print(f"[yellow]{name}[/yellow]: [dim]no versions found[/dim]")
        return
    table = Table(title=name, show_header=True, header_style="bold")
    table.add_column("Version")
    table.add_column("Prerelease", justify="center")
    for version in sorted(versions, reverse=True):
        table.add_row(str(version), "yes" if version.is_prerelease else "")
    console.print(table)


def resolution_to_dict(
    resolution: Resolution, roots: Sequence[PackageRequirement]
) -> dict[str, Any]:
    """Render *resolution* as a JSON-compatible dictionary."""
    data: dict[str, Any] = {
        "status": "ok" if resolution.is_ok else "conflict",
        "explored": len(resolution.explored),
        "boosts": dict(resolution.boosts),
    }
    if resolution.is_ok:
        origins = package_origins(resolution, roots)
        data["packages"] = [
            {
                "name": str(pkg.name),
                "version": str(pkg.version),
                "source": pkg.source,
                "required_by": origins[str(pkg.name)],
                "frameworks": list(pkg.framework_restrictions),
                "dependencies": {
                    str(dep.name): str(dep.version_range) for dep in pkg.dependencies
                },
            }
            for pkg in resolution.packages
        ]
    else:
        data["conflicts"] = resolution.describe_conflicts()
        data["open"] = sorted(req.describe() for req in resolution.open_requirements)
    return data
