# src/storage/layout.py — v1
"""Data directory structure definition.

    .loretech/
        .env
        runs/{run_id}/meta.json, context.json, sources.json, echo.md, ...
        echoes/{echo_id}.md, {echo_id}.json
"""

from __future__ import annotations

import re
from pathlib import Path

DATA_DIR_NAME = ".loretech"
RUNS_DIR = "runs"
ECHOES_DIR = "echoes"
ENV_FILE = ".env"

# Run-level files
META_FILE = "meta.json"
CONTEXT_ARTIFACT = "context.json"
SOURCES_ARTIFACT = "sources.json"
ECHO_ARTIFACT = "echo.md"
RECORD_ARTIFACT = "record.json"
DATASET_ARTIFACT = "dataset.json"

_SAFE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def find_loretech_dir(cwd: Path | None = None, home: Path | None = None) -> Path:
    """Locate the .loretech directory.

    Resolution: cwd, then parents up to the enclosing git root, then home.
    """
    start = Path(cwd) if cwd is not None else Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / DATA_DIR_NAME
        if candidate.is_dir():
            return candidate
        if (directory / ".git").exists():
            break

    return (Path(home) if home is not None else Path.home()) / DATA_DIR_NAME


def check_name(name: str, kind: str = "name") -> str:
    """Reject identifiers that would escape their directory."""
    if not name or ".." in name or not _SAFE_NAME.match(name):
        raise ValueError(f"Invalid {kind}: {name!r}")
    return name


def env_path(data_dir: Path) -> Path:
    return data_dir / ENV_FILE


def runs_dir(data_dir: Path) -> Path:
    return data_dir / RUNS_DIR


def run_dir(data_dir: Path, run_id: str) -> Path:
    return runs_dir(data_dir) / check_name(run_id, "run id")


def meta_path(data_dir: Path, run_id: str) -> Path:
    return run_dir(data_dir, run_id) / META_FILE


def echoes_dir(data_dir: Path) -> Path:
    return data_dir / ECHOES_DIR


def echo_path(data_dir: Path, echo_id: str) -> Path:
    return echoes_dir(data_dir) / f"{check_name(echo_id, 'echo id')}.md"


def echo_dataset_path(data_dir: Path, echo_id: str) -> Path:
    return echoes_dir(data_dir) / f"{check_name(echo_id, 'echo id')}.json"
