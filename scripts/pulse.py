"""Regenerate PULSE.md: submodule status badges and the namespace dependency graph.

    python scripts/pulse.py [--output PULSE.md] [--no-graph] [--stdout]
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from metapackage_tools.app import bootstrap, create_graph_reader, report_error
from metapackage_tools.config import MetapackageSettings, get_settings
from metapackage_tools.graph import GraphReadError
from metapackage_tools.process import CommandError
from metapackage_tools.pulse import PulseConfigError, PulseGenerator


def load_generator(settings: MetapackageSettings) -> PulseGenerator:
    return PulseGenerator(create_graph_reader(settings), settings)


def cmd_generate(args: argparse.Namespace) -> int:
    generator = load_generator(get_settings())
    include_graph = not args.no_graph
    try:
        if args.stdout:
            print(asyncio.run(generator.generate(include_graph=include_graph)), end="")
        else:
            output = Path(args.output) if args.output else None
            target = asyncio.run(generator.write(output, include_graph=include_graph))
            print(f"Wrote {target}")
    except (CommandError, GraphReadError, PulseConfigError) as exc:
        report_error(exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render the workspace status dashboard")
    parser.add_argument("--output", help="Path to write the dashboard to (default: PULSE.md in the workspace root)")
    parser.add_argument(
        "--no-graph",
        dest="no_graph",
        action="store_true",
        help="Skip the dependency graph section (no nx invocation)",
    )
    parser.add_argument("--stdout", action="store_true", help="Print the dashboard instead of writing it")
    parser.set_defaults(func=cmd_generate)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    bootstrap("pulse")
    exit_code = args.func(args)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
