"""
Command-line interface for libgraph.

This module provides the `libgraph` CLI tool for inspecting library
registries: which libraries a consumer can see, the order they must be
built in, and the search paths and link units to hand to the compiler.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from libgraph import __version__
from libgraph.config import DEFAULT_CORE_UNIT, LibgraphConfig
from libgraph.consumer import configure_consumer
from libgraph.fetch import ArchiveFetcher, FetchError, GitFetcher, RemoteReference, add_remote_library
from libgraph.output import TimedLogger, init_timer, log, log_detail, log_error, log_header, log_order, log_warning, set_verbose
from libgraph.registry import DependencyResolver, Registry, RegistrationPolicy, RegistryError, ScopeFilter
from libgraph.workspace import ManifestError, Workspace


@dataclass
class GraphArgs:
    """Options shared by every command."""

    roots: list[Path] = field(default_factory=list)
    build_dir: Path = Path("build")
    core: Optional[str] = DEFAULT_CORE_UNIT
    allow_overwrite: bool = False
    verbose: bool = False


@dataclass
class ResolveArgs(GraphArgs):
    """Arguments for the resolve and plan commands."""

    name: str = ""
    deps_only: bool = False


@dataclass
class VisibleArgs(GraphArgs):
    """Arguments for the visible command."""

    exclude: Optional[str] = None


@dataclass
class FetchArgs(GraphArgs):
    """Arguments for the fetch command."""

    url: str = ""
    name: Optional[str] = None
    tag: Optional[str] = None
    branch: Optional[str] = None
    source_dir: str = "lib"
    dependencies: list[str] = field(default_factory=list)
    archive: bool = False


def _make_config(args: GraphArgs) -> LibgraphConfig:
    policy = RegistrationPolicy.LAST_WRITE_WINS if args.allow_overwrite else RegistrationPolicy.STRICT
    return LibgraphConfig.from_env(
        build_dir=args.build_dir.resolve(),
        module_roots=tuple(str(r) for r in args.roots),
        core_unit=args.core or None,
        policy=policy,
    )


def _load_registry(config: LibgraphConfig, phases: int = 2) -> Registry:
    registry = Registry(policy=config.policy)
    with TimedLogger("Scanning module roots", phase=(1, phases)) as timer:
        units = Workspace(registry, config.layout, core_unit=config.core_unit).scan(config.module_roots, base_dir=Path.cwd())
        timer.detail(f"Registered {len(units)} libraries")
    return registry


def _runtime_search_paths(config: LibgraphConfig) -> list[Path]:
    if not config.core_unit:
        return []
    return [config.layout.unit_dir(config.core_unit)]


def _run(command, args: GraphArgs) -> None:
    """Run a command, mapping libgraph errors to exit codes."""
    init_timer()
    set_verbose(args.verbose)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    try:
        command(args)
    except (RegistryError, ManifestError, FetchError) as e:
        log_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log_error("Interrupted")
        sys.exit(130)
    sys.exit(0)


def units_command(args: GraphArgs) -> None:
    """List every library declared below the module roots.

    Examples:
        libgraph units modules/          # Table of libraries
        libgraph units a/ b/ --verbose   # Include debug logging
    """
    config = _make_config(args)
    registry = _load_registry(config)

    table = Table(title="Libraries", show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("Source")
    table.add_column("Dependencies")
    table.add_column("Built", justify="center")
    for unit in registry.units():
        table.add_row(
            unit.name,
            str(unit.source_root),
            ", ".join(unit.dependencies) or "-",
            "yes" if unit.artifact_ready else "no",
        )
    Console().print(table)


def visible_command(args: VisibleArgs) -> None:
    """Show the libraries a consumer can use."""
    config = _make_config(args)
    registry = _load_registry(config)

    names = ScopeFilter(registry, core_unit=config.core_unit, base_dir=Path.cwd()).visible_units(config.module_roots, exclude_self=args.exclude)
    log(f"Visible libraries ({len(names)}):")
    log_order(names)


def resolve_command(args: ResolveArgs) -> None:
    """Print the build order of a library and its dependencies."""
    config = _make_config(args)
    registry = _load_registry(config)

    with TimedLogger(f"Resolving {args.name}", phase=(2, 2)):
        order = DependencyResolver(registry).resolve(args.name, include_self=not args.deps_only)
    log_order(order)


def plan_command(args: ResolveArgs) -> None:
    """Print search paths and link units for building a library."""
    config = _make_config(args)
    registry = _load_registry(config)

    if args.name not in registry:
        log_warning(f"Library {args.name} is not registered below the module roots, planning it as an application")

    with TimedLogger(f"Planning {args.name}", phase=(2, 2)):
        result = configure_consumer(
            registry,
            config.module_roots,
            consumer=args.name,
            core_unit=config.core_unit,
            base_dir=Path.cwd(),
            runtime_search_paths=_runtime_search_paths(config),
        )

    log("Search paths:")
    for path in [*result.plan.runtime_search_paths, *result.plan.search_paths]:
        log_detail(str(path))
    log("Link units:")
    log_order(result.plan.link_units)


def fetch_command(args: FetchArgs) -> None:
    """Fetch a remote library, register it and print its build order.

    The order is resolved against the libraries below the module roots, so
    the declared dependencies of the fetched library must be among them.
    """
    config = _make_config(args)
    registry = _load_registry(config, phases=3)

    ref = RemoteReference(
        url=args.url,
        name=args.name,
        tag=args.tag,
        branch=args.branch,
        source_dir=args.source_dir,
        dependencies=tuple(args.dependencies),
    )
    fetcher = ArchiveFetcher(config.cache_root) if args.archive else GitFetcher(config.cache_root)
    with TimedLogger(f"Fetching {ref.url}", phase=(2, 3)):
        unit = add_remote_library(registry, fetcher, ref, config.layout)
    log(f"Library {unit.name} at {unit.source_root}")

    with TimedLogger(f"Resolving {unit.name}", phase=(3, 3)):
        order = DependencyResolver(registry).resolve(unit.name)
    log_order(order)


def _add_common_arguments(parser: argparse.ArgumentParser, roots_positional: bool) -> None:
    if roots_positional:
        parser.add_argument("roots", nargs="*", type=Path, help="Module root directories")
    else:
        parser.add_argument("-r", "--root", dest="roots", action="append", type=Path, default=[], help="Module root directory (repeatable)")
    parser.add_argument("-b", "--build-dir", type=Path, default=Path("build"), help="Build directory holding library artifacts (default: build)")
    parser.add_argument("--core", default=DEFAULT_CORE_UNIT, help=f"Core runtime library visible to every consumer (default: {DEFAULT_CORE_UNIT}, empty to disable)")
    parser.add_argument("--allow-overwrite", action="store_true", help="Let a later registration replace a library with the same name")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")


def _common(parsed: argparse.Namespace) -> dict:
    return {
        "roots": parsed.roots,
        "build_dir": parsed.build_dir,
        "core": parsed.core,
        "allow_overwrite": parsed.allow_overwrite,
        "verbose": parsed.verbose,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="libgraph",
        description="Library registry and build-ordering tool",
    )
    parser.add_argument("--version", action="version", version=f"libgraph {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    units_parser = subparsers.add_parser("units", help="List libraries declared below module roots")
    _add_common_arguments(units_parser, roots_positional=True)

    visible_parser = subparsers.add_parser("visible", help="Show libraries visible to a consumer")
    _add_common_arguments(visible_parser, roots_positional=True)
    visible_parser.add_argument("-x", "--exclude", default=None, help="Consumer library to leave out")

    resolve_parser = subparsers.add_parser("resolve", help="Print the build order of a library")
    resolve_parser.add_argument("name", help="Library to resolve")
    _add_common_arguments(resolve_parser, roots_positional=False)
    resolve_parser.add_argument("--deps-only", action="store_true", help="Leave the library itself out of the order")

    plan_parser = subparsers.add_parser("plan", help="Print search paths and link units for a library")
    plan_parser.add_argument("name", help="Consumer library")
    _add_common_arguments(plan_parser, roots_positional=False)

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a remote library, register it and print its build order")
    fetch_parser.add_argument("url", help="Repository URL")
    _add_common_arguments(fetch_parser, roots_positional=False)
    fetch_parser.add_argument("--name", default=None, help="Library name (default: derived from URL)")
    revision = fetch_parser.add_mutually_exclusive_group()
    revision.add_argument("--tag", default=None, help="Tag to fetch")
    revision.add_argument("--branch", default=None, help="Branch to fetch (default: main)")
    fetch_parser.add_argument("--source-dir", default="lib", help="Source directory inside the repository (default: lib)")
    fetch_parser.add_argument("-d", "--dependency", dest="dependencies", action="append", default=[], help="Library the fetched one imports (repeatable)")
    fetch_parser.add_argument("--archive", action="store_true", help="Download a GitHub archive instead of cloning with git")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """libgraph - library registry and build-ordering tool."""
    parser = build_parser()
    parsed = parser.parse_args(argv)

    if not parsed.command:
        parser.print_help()
        sys.exit(0)

    if parsed.verbose:
        log_header("libgraph", __version__)

    if parsed.command == "units":
        _run(units_command, GraphArgs(**_common(parsed)))
    elif parsed.command == "visible":
        _run(visible_command, VisibleArgs(**_common(parsed), exclude=parsed.exclude))
    elif parsed.command == "resolve":
        _run(resolve_command, ResolveArgs(**_common(parsed), name=parsed.name, deps_only=parsed.deps_only))
    elif parsed.command == "plan":
        _run(plan_command, ResolveArgs(**_common(parsed), name=parsed.name))
    elif parsed.command == "fetch":
        _run(
            fetch_command,
            FetchArgs(
                **_common(parsed),
                url=parsed.url,
                name=parsed.name,
                tag=parsed.tag,
                branch=parsed.branch,
                source_dir=parsed.source_dir,
                dependencies=parsed.dependencies,
                archive=parsed.archive,
            ),
        )


if __name__ == "__main__":
    main()
