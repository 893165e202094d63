"""Markdown rendering of the status dashboard (badge tables and dependency graph)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlencode

from ..graph import PackageManifest, ProjectGraph
from .models import PulseConfig, PulseRow, PulseSection

SKIPPED = "-"

_MERMAID_PLAIN_ID = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*$")


def link(href: str, text: str) -> str:
    return f"[{text}]({href})"


def badge(image_url: str, link_url: str, alt: str = "badge") -> str:
    return link(link_url, f"![{alt}]({image_url})")


def render_cell(config: PulseConfig, section: PulseSection, row: PulseRow, column: str) -> str:
    """Render one badge cell; skipped or inapplicable cells render as ``-``."""

    if column in row.skip:
        return SKIPPED

    org = config.org
    repo = row.repo
    base = f"https://github.com/{org}/{repo}"
    workflows = f"{base}/actions/workflows"

    if column == "version":
        if section.version_badge == "github-release":
            return badge(f"https://img.shields.io/github/v/release/{org}/{repo}", f"{base}/releases", "version")
        if not row.npm:
            return SKIPPED
        return badge(f"https://img.shields.io/npm/v/{row.npm}", f"{base}/releases", "version")
    if column == "tests":
        return badge(f"{workflows}/tests.yml/badge.svg?branch={config.branch}", f"{workflows}/tests.yml", "tests")
    if column == "release":
        return badge(f"{workflows}/release.yml/badge.svg", f"{workflows}/release.yml", "release")
    if column == "security":
        return badge(
            f"{workflows}/security.yml/badge.svg?branch={config.branch}",
            f"{workflows}/security.yml",
            "security",
        )
    if column == "coverage":
        if row.coverage != "sonar":
            return SKIPPED
        return badge(
            f"https://sonarcloud.io/api/project_badges/measure?project={org}_{repo}&metric=coverage",
            f"https://sonarcloud.io/summary/overall?id={org}_{repo}",
            "Coverage",
        )
    if column == "infra":
        params = urlencode(
            {
                "url": f"https://raw.githubusercontent.com/{org}/{repo}/{config.branch}/package-lock.json",
                "query": config.lint_version_query,
                "label": "infra",
                "prefix": "v",
            }
        )
        lint_repo = config.lint_package.rsplit("/", 1)[-1]
        return badge(
            f"https://img.shields.io/badge/dynamic/json?{params}",
            f"https://github.com/{org}/{lint_repo}/releases",
            "lint",
        )
    return SKIPPED


def table_header(columns: list[str]) -> str:
    heads = ["Submodule", *columns]
    separators = ["-----------" if index == 0 else ":-------:" for index in range(len(heads))]
    return "\n".join(["| " + " | ".join(heads) + " |", "|" + "|".join(separators) + "|"])


def table_row(config: PulseConfig, section: PulseSection, row: PulseRow) -> str:
    cells = [link(f"https://github.com/{config.org}/{row.repo}", row.path)]
    cells.extend(render_cell(config, section, row, column) for column in section.columns)
    return "| " + " | ".join(cells) + " |"


def render_section(config: PulseConfig, section: PulseSection, *, last: bool = False) -> str:
    lines = [f"## {section.name}", "", table_header(section.columns)]
    lines.extend(table_row(config, section, row) for row in section.rows)
    if not last:
        lines.extend(["---", ""])
    return "\n".join(lines)


@dataclass(slots=True, frozen=True)
class GraphEdge:
    source: str
    target: str
    dev: bool

    def render(self) -> str:
        arrow = "-.->" if self.dev else "-->"
        return f"{self.source} {arrow} {self.target}"


def short_id(name: str, namespace: str) -> str:
    """``@diplodoc/foo-extension`` -> ``foo-extension``."""

    prefix = f"{namespace}/"
    return name[len(prefix):] if name.startswith(prefix) else name


def _mermaid_id(value: str) -> str:
    return value if _MERMAID_PLAIN_ID.match(value) else f'"{value}"'


def collect_edges(
    config: PulseConfig,
    namespace: str,
    graph: ProjectGraph,
    manifests: Mapping[str, PackageManifest | None],
) -> list[GraphEdge]:
    """Edges between namespace packages, minus hub and example packages."""

    prefix = f"{namespace}/"
    package_by_node: dict[str, str] = {}
    for node_id in graph.nodes:
        manifest = manifests.get(node_id)
        if manifest is not None and manifest.name:
            package_by_node[node_id] = manifest.name
        elif node_id.startswith(prefix):
            package_by_node[node_id] = node_id

    hidden = set(config.graph_hide)
    edges: list[GraphEdge] = []
    for dependency in graph.dependencies:
        source = package_by_node.get(dependency.source)
        target = package_by_node.get(dependency.target)
        if not source or not target:
            continue
        if not source.startswith(prefix) or not target.startswith(prefix):
            continue
        source_id = short_id(source, namespace)
        target_id = short_id(target, namespace)
        if source_id in hidden or target_id in hidden:
            continue
        if config.graph_hide_examples and (source_id.endswith("-example") or target_id.endswith("-example")):
            continue
        source_manifest = manifests.get(dependency.source)
        dev = source_manifest is not None and target in source_manifest.dev_dependencies
        edges.append(GraphEdge(source=source_id, target=target_id, dev=dev))
    return edges


def render_dependency_graph(
    config: PulseConfig,
    namespace: str,
    graph: ProjectGraph,
    manifests: Mapping[str, PackageManifest | None],
) -> str:
    """Render a Mermaid flowchart section; empty string when no edge survives filtering."""

    edges = collect_edges(config, namespace, graph, manifests)
    if not edges:
        return ""

    nodes = sorted({edge.source for edge in edges} | {edge.target for edge in edges})
    repos = {short_id(name, namespace): repo for name, repo in config.repo_by_package().items()}

    lines = [
        '%%{ init: { "flowchart": { "curve": "stepAfter", "defaultRenderer": "elk" } } }%%',
        "flowchart LR",
        *(f'  {_mermaid_id(node)}["{node}"]' for node in nodes),
        *(f"  {edge.render()}" for edge in edges),
        *(
            f'  click {_mermaid_id(node)} href "https://github.com/{config.org}/{repos[node]}"'
            for node in nodes
            if node in repos
        ),
    ]

    hidden = sorted(config.graph_hide)
    if config.graph_hide_examples:
        hidden.append("*-example")
    note = f" Hidden: {', '.join(hidden)}." if hidden else ""

    return "\n".join(
        [
            f"## Dependency graph ({namespace} packages)",
            "",
            "Generated from Nx project graph (`nx graph --file`). "
            f"**Orientation:** left to right (`flowchart LR`). Dotted arrows are dev dependencies.{note}",
            "",
            "```mermaid",
            "\n".join(lines),
            "```",
            "",
        ]
    )


def render_header(config: PulseConfig) -> str:
    lint_repo = config.lint_package.rsplit("/", 1)[-1]
    return "\n".join(
        [
            f"# Pulse — status of submodules ({config.branch})",
            "",
            f"Status badges for workflows created from [{config.lint_package}](devops/{lint_repo}) "
            "scaffolding (`lint init` / `lint update`).  ",
            f"Branch: **{config.branch}**. Release badge reflects last run "
            "(event: `release: published` or `workflow_dispatch`).",
            "",
            "Workflows: [tests](.github/workflows/tests.yml) · [release](.github/workflows/release.yml) "
            "· [security](.github/workflows/security.yml)",
            "",
            "**Version:** npm latest for published packages (link → GitHub Releases); "
            "GitHub release for actions.",
            "",
            "---",
            "",
        ]
    )


def render_document(config: PulseConfig, dependency_graph: str = "") -> str:
    """Assemble the full dashboard from the section tables and an optional graph section."""

    sections = config.sections
    body = "\n".join(
        render_section(config, section, last=index == len(sections) - 1)
        for index, section in enumerate(sections)
    )
    document = render_header(config) + "\n" + body.rstrip()
    if dependency_graph:
        document += "\n\n---\n\n" + dependency_graph
    return document + "\n"


__all__ = [
    "GraphEdge",
    "badge",
    "collect_edges",
    "link",
    "render_cell",
    "render_dependency_graph",
    "render_document",
    "render_header",
    "render_section",
    "short_id",
    "table_header",
    "table_row",
]
