"""Configuration management for the metapackage maintenance scripts."""

from __future__ import annotations

import shlex
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_PULSE_CONFIG = Path(__file__).resolve().parent / "pulse" / "sections.yaml"


class MetapackageSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    workspace_root: Path = Field(default=Path("."), validation_alias="METAPACKAGE_ROOT")
    namespace: str = Field(default="@diplodoc", validation_alias="METAPACKAGE_NAMESPACE")
    nx_command: str = Field(default="npx nx", validation_alias="METAPACKAGE_NX_COMMAND")
    npm_command: str = Field(default="npm", validation_alias="METAPACKAGE_NPM_COMMAND")
    git_command: str = Field(default="git", validation_alias="METAPACKAGE_GIT_COMMAND")
    docs_command: str = Field(default="docs", validation_alias="METAPACKAGE_DOCS_COMMAND")
    log_level: str = Field(default="INFO", validation_alias="METAPACKAGE_LOG_LEVEL")

    pulse_config_path: Path = Field(
        default=DEFAULT_PULSE_CONFIG, validation_alias="METAPACKAGE_PULSE_CONFIG"
    )
    pulse_output: Path = Field(default=Path("PULSE.md"), validation_alias="METAPACKAGE_PULSE_OUTPUT")

    watch_project: str = Field(default="@diplodoc/testpack", validation_alias="METAPACKAGE_WATCH_PROJECT")
    build_project: str = Field(default="@diplodoc/cli", validation_alias="METAPACKAGE_BUILD_PROJECT")
    build_parallel: int = Field(default=5, validation_alias="METAPACKAGE_BUILD_PARALLEL")
    docs_input: Path = Field(
        default=Path("devops/testpack/docs/input"), validation_alias="METAPACKAGE_DOCS_INPUT"
    )
    docs_output: Path = Field(
        default=Path("devops/testpack/docs/output"), validation_alias="METAPACKAGE_DOCS_OUTPUT"
    )
    server_cwd: Path = Field(default=Path("devops/testpack"), validation_alias="METAPACKAGE_SERVER_CWD")
    server_command: str = Field(default="npm start", validation_alias="METAPACKAGE_SERVER_COMMAND")

    docs_ready_marker: str = Field(default="Build time:", validation_alias="METAPACKAGE_DOCS_READY_MARKER")
    server_ready_marker: str = Field(
        default="Documentations served", validation_alias="METAPACKAGE_SERVER_READY_MARKER"
    )
    rebuild_done_marker: str = Field(
        default="Successfully ran target build", validation_alias="METAPACKAGE_REBUILD_DONE_MARKER"
    )
    progress_prefix: str = Field(default="> nx run @diplodoc", validation_alias="METAPACKAGE_PROGRESS_PREFIX")
    unchanged_marker: str = Field(default="left as is", validation_alias="METAPACKAGE_UNCHANGED_MARKER")
    ignored_stderr: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("npm warn config ignoring workspace config",),
        validation_alias="METAPACKAGE_IGNORED_STDERR",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "METAPACKAGE_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("build_parallel")
    @classmethod
    def _validate_build_parallel(cls, value: int) -> int:
        if value < 1:
            raise ValueError("METAPACKAGE_BUILD_PARALLEL must be >= 1")
        return value

    @field_validator("namespace")
    @classmethod
    def _normalize_namespace(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError("METAPACKAGE_NAMESPACE must not be empty")
        return normalized

    @field_validator("ignored_stderr", mode="before")
    @classmethod
    def _parse_ignored_stderr(cls, value):
        if value is None or value == "":
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split("|") if part.strip())
        raise ValueError("METAPACKAGE_IGNORED_STDERR must be a list or a '|'-separated string")

    def command(self, name: str) -> list[str]:
        """Return the argument vector of a configured command (``nx``, ``npm``, ``git``, ...)."""

        value = getattr(self, f"{name}_command")
        return shlex.split(value)

    def resolve(self, path: Path | str) -> Path:
        """Resolve a workspace-relative path against the workspace root."""

        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.workspace_root / candidate


@lru_cache(maxsize=1)
def get_settings() -> MetapackageSettings:
    """Return cached settings instance."""

    settings = MetapackageSettings()
    settings.workspace_root = settings.workspace_root.expanduser().resolve()
    settings.pulse_config_path = settings.pulse_config_path.expanduser().resolve()
    return settings


__all__ = ["DEFAULT_PULSE_CONFIG", "MetapackageSettings", "get_settings"]
