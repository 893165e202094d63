"""Build one package, serve its documentation and rebuild both on every change.

    python scripts/watch.py [--project @diplodoc/testpack] [--build-project @diplodoc/cli]
"""

from __future__ import annotations

import argparse
import asyncio

from metapackage_tools.app import bootstrap, create_graph_reader, create_runner, report_error
from metapackage_tools.config import MetapackageSettings, get_settings
from metapackage_tools.devloop import DevLoop, ProcessExitedError, RoleFailedError
from metapackage_tools.graph import GraphReadError
from metapackage_tools.process import CommandError


def load_loop(settings: MetapackageSettings) -> DevLoop:
    runner = create_runner()
    return DevLoop(settings, runner, reader=create_graph_reader(settings, runner))


def cmd_watch(args: argparse.Namespace) -> int:
    settings = get_settings()
    overrides = {}
    if args.project:
        overrides["watch_project"] = args.project
    if args.build_project:
        overrides["build_project"] = args.build_project
    if overrides:
        settings = settings.model_copy(update=overrides)

    loop = load_loop(settings)
    try:
        asyncio.run(loop.run())
    except KeyboardInterrupt:
        return 130
    except (RoleFailedError, ProcessExitedError, CommandError, GraphReadError) as exc:
        report_error(exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Local build-watch-serve loop for package documentation")
    parser.add_argument("--project", help="Project whose sources are watched")
    parser.add_argument("--build-project", dest="build_project", help="Project rebuilt on every change")
    parser.set_defaults(func=cmd_watch)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    bootstrap("watch")
    exit_code = args.func(args)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
