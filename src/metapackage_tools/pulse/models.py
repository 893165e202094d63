"""Models describing the status dashboard layout."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

KNOWN_COLUMNS = {"version", "tests", "release", "security", "coverage", "infra"}


class PulseRow(BaseModel):
    """One downstream repository shown in a dashboard table."""

    path: str = Field(..., description="Submodule path inside the workspace.")
    repo: str = Field(..., description="Repository name inside the organization.")
    npm: str | None = Field(default=None, description="Published npm package name, if any.")
    coverage: Literal["sonar"] | None = Field(default=None, description="Coverage provider.")
    skip: list[str] = Field(
        default_factory=list,
        description="Columns rendered as '-' for this row.",
    )

    @field_validator("path", "repo")
    @classmethod
    def _require_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Row path and repo must not be empty")
        return normalized

    @field_validator("skip", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return list(value)
        raise ValueError("skip must be a column name or a list of column names")


class PulseSection(BaseModel):
    """A named table of repositories sharing one set of columns."""

    name: str
    columns: list[str] = Field(default_factory=list)
    version_badge: Literal["npm", "github-release"] = "npm"
    rows: list[PulseRow] = Field(default_factory=list)

    @field_validator("columns")
    @classmethod
    def _validate_columns(cls, value: list[str]) -> list[str]:
        unknown = [column for column in value if column not in KNOWN_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown columns: {', '.join(unknown)}")
        return value


class PulseConfig(BaseModel):
    """Static configuration of the whole dashboard."""

    org: str
    branch: str = "master"
    lint_package: str = "@diplodoc/lint"
    lint_version_query: str = "$['packages']['node_modules/@diplodoc/lint'].version"
    graph_hide: list[str] = Field(
        default_factory=list,
        description="Short ids of hub packages hidden from the dependency graph.",
    )
    graph_hide_examples: bool = True
    sections: list[PulseSection] = Field(default_factory=list)

    def repo_by_package(self) -> dict[str, str]:
        """Map published package names to their repositories."""

        return {
            row.npm: row.repo
            for section in self.sections
            for row in section.rows
            if row.npm
        }


__all__ = ["KNOWN_COLUMNS", "PulseConfig", "PulseRow", "PulseSection"]
