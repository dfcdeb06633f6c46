# ─────────────────────────────────────────────────────────────────────────────
# File: settings.py
# Directory: services
# Purpose: Runtime settings (project root, GitHub token, fetch concurrency,
#          HTTP timeout) resolved once and passed explicitly to every operation.
#
# Upstream:
#   - ENV: GITHUB_TOKEN, DOCMIRROR_CONCURRENCY, DOCMIRROR_HTTP_TIMEOUT
#   - Imports: dotenv, os, pathlib, pydantic
#
# Downstream:
#   - services.sync, services.github_client, main
#
# Contents:
#   - Settings
#   - load_settings()
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from services.errors import ConfigurationInvalid

CONFIG_FILENAME = "docmirror.yaml"
STORAGE_DIRNAME = ".docmirror"
DEFAULT_CONCURRENCY = 10
DEFAULT_HTTP_TIMEOUT = 30.0


class Settings(BaseModel):
    project_root: Path
    github_token: Optional[str] = None
    concurrency: int = Field(DEFAULT_CONCURRENCY, ge=1)
    http_timeout: float = Field(DEFAULT_HTTP_TIMEOUT, gt=0)

    @property
    def config_path(self) -> Path:
        return self.project_root / CONFIG_FILENAME


def load_settings(
    project_root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merge ``<root>/.env`` with the process environment (environment wins)."""
    root = Path(project_root or Path.cwd()).resolve()
    env = dict(os.environ if environ is None else environ)

    values = {k: v for k, v in dotenv_values(root / ".env").items() if v is not None}
    values.update(env)

    raw: dict = {"project_root": root}
    token = (values.get("GITHUB_TOKEN") or "").strip()
    if token:
        raw["github_token"] = token
    if values.get("DOCMIRROR_CONCURRENCY"):
        raw["concurrency"] = values["DOCMIRROR_CONCURRENCY"]
    if values.get("DOCMIRROR_HTTP_TIMEOUT"):
        raw["http_timeout"] = values["DOCMIRROR_HTTP_TIMEOUT"]

    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise ConfigurationInvalid(f"Invalid runtime settings: {exc.errors()[0]['msg']}") from exc
