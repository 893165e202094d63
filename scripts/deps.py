"""Bulk-bump a dependency across every project of the workspace.

    python scripts/deps.py update lib@2.0.0 other [--dry-run] [--commit]
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from metapackage_tools.app import bootstrap, create_graph_reader, create_runner, report_error
from metapackage_tools.config import MetapackageSettings, get_settings
from metapackage_tools.deps import DependencyUpdater, SpecifierError, parse_specifier
from metapackage_tools.graph import GraphReadError, ManifestLoadError
from metapackage_tools.process import CommandError


def load_updater(settings: MetapackageSettings) -> DependencyUpdater:
    runner = create_runner()
    return DependencyUpdater(runner, settings, reader=create_graph_reader(settings, runner))


def cmd_update(args: argparse.Namespace) -> int:
    try:
        specs = [parse_specifier(value) for value in args.deps]
    except SpecifierError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    updater = load_updater(get_settings())
    try:
        asyncio.run(updater.update(specs, dry_run=args.dry_run, commit=args.commit))
    except (CommandError, GraphReadError, ManifestLoadError) as exc:
        report_error(exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Workspace dependency maintenance")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_update = sub.add_parser("update", help="Bump pinned dependencies in every project")
    p_update.add_argument("deps", nargs="+", metavar="name[@version]", help="Dependencies to bump (default version: latest)")
    p_update.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Print the planned changes without installing or committing",
    )
    p_update.add_argument(
        "--commit",
        action="store_true",
        help="Commit package.json and package-lock.json per updated group",
    )
    p_update.set_defaults(func=cmd_update)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    bootstrap("deps")
    exit_code = args.func(args)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
