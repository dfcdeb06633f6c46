# ─────────────────────────────────────────────────────────────────────────────
# File: config.py
# Directory: services
# Purpose: Source registry (docmirror.yaml): pydantic models plus YAML load /
#          persist helpers and registration rules.
#
# Upstream:
#   - Imports: pathlib, pydantic, yaml
#
# Downstream:
#   - services.sync, services.upstream, main
#
# Contents:
#   - check_source_name()
#   - DocSource / MirrorConfig
#   - default_local_path()
#   - read_config() / read_or_create_config() / write_config() / init_config()
#   - find_source() / select_sources()
#   - ensure_registrable() / register_source()
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from services.context_injector import marker_base
from services.errors import ConfigNotFound, ConfigurationInvalid, LocalIOFailure, SourceConflict
from services.settings import CONFIG_FILENAME, STORAGE_DIRNAME

_RESERVED_NAMES = {".", ".."}


def check_source_name(name: str) -> None:
    """Names become a directory under the storage dir; reject ones that escape it."""
    if not name.strip():
        raise ValueError("source name must not be blank")
    if name.strip() in _RESERVED_NAMES or "/" in name or "\\" in name:
        raise ValueError(f"source name '{name}' must not be '.', '..' or contain path separators")


class DocSource(BaseModel):
    name: str = Field(..., min_length=1)
    repo: str
    path: str
    branch: str
    local: str
    commit: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _safe_name(cls, value: str) -> str:
        check_source_name(value)
        return value

    @field_validator("path")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class MirrorConfig(BaseModel):
    agents_md: str = "./AGENTS.md"
    sources: List[DocSource] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def _null_sources(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _unique_names(self):
        seen = set()
        for source in self.sources:
            if source.name in seen:
                raise ValueError(f"duplicate source name '{source.name}'")
            seen.add(source.name)
        return self


def default_local_path(name: str) -> str:
    return f"./{STORAGE_DIRNAME}/{name}"


def config_path(project_root: Path) -> Path:
    return Path(project_root) / CONFIG_FILENAME


def read_config(project_root: Path) -> MirrorConfig:
    path = config_path(project_root)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigNotFound(f"No {CONFIG_FILENAME} found in {project_root}") from exc
    except OSError as exc:
        raise LocalIOFailure(f"Cannot read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigurationInvalid(f"Failed to parse {CONFIG_FILENAME}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationInvalid(f"Failed to parse {CONFIG_FILENAME}: expected a mapping at top level")

    try:
        return MirrorConfig(**data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        detail = f"{where}: {first['msg']}" if where else first["msg"]
        raise ConfigurationInvalid(f"Failed to parse {CONFIG_FILENAME}: {detail}") from exc


def write_config(project_root: Path, config: MirrorConfig) -> None:
    path = config_path(project_root)
    text = yaml.safe_dump(config.model_dump(), sort_keys=False, allow_unicode=True)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise LocalIOFailure(f"Cannot write {path}: {exc}") from exc


def init_config(project_root: Path) -> bool:
    """Create a default registry; False when one already exists."""
    if config_path(project_root).exists():
        return False
    write_config(project_root, MirrorConfig())
    return True


def read_or_create_config(project_root: Path) -> MirrorConfig:
    try:
        return read_config(project_root)
    except ConfigNotFound:
        config = MirrorConfig()
        write_config(project_root, config)
        return config


def find_source(config: MirrorConfig, name: str) -> Optional[DocSource]:
    return next((s for s in config.sources if s.name == name), None)


def select_sources(config: MirrorConfig, name: Optional[str] = None) -> List[DocSource]:
    if not name:
        return list(config.sources)
    match = find_source(config, name)
    if match is None:
        raise ConfigurationInvalid(f"Source '{name}' not found in {CONFIG_FILENAME}")
    return [match]


def ensure_registrable(config: MirrorConfig, name: str) -> None:
    """Reject unsafe names, duplicate names and names whose block markers would collide."""
    try:
        check_source_name(name)
    except ValueError as exc:
        raise ConfigurationInvalid(str(exc)) from exc
    if find_source(config, name) is not None:
        raise SourceConflict(f"Source '{name}' already exists")
    base = marker_base(name)
    for existing in config.sources:
        if marker_base(existing.name) == base:
            raise SourceConflict(
                f"Source '{name}' would share block markers with '{existing.name}'",
                hint="Pick a name that differs by more than case, spaces or underscores.",
            )


def register_source(config: MirrorConfig, source: DocSource) -> None:
    ensure_registrable(config, source.name)
    config.sources.append(source)
