"""Atomic JSON document writes with a ``.bak`` fallback on read."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path

from loguru import logger
from pydantic import BaseModel


def _backup_path(path: Path) -> Path:
    return path.with_suffix(path.suffix + ".bak")


def save_checkpoint(path: Path, model: BaseModel) -> None:
    """Replace ``path`` with ``model`` as JSON; the previous version is kept as ``.bak``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = model.model_dump_json(indent=2)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        with contextlib.suppress(FileNotFoundError):
            path.replace(_backup_path(path))
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def load_checkpoint[ModelT: BaseModel](path: Path, model_type: type[ModelT]) -> ModelT | None:
    """Load ``path``; a missing or corrupt file falls back to its ``.bak`` copy."""

    candidates = [path, _backup_path(path)]
    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            loaded = model_type.model_validate_json(candidate.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError):
            logger.warning("Corrupt checkpoint at {}", candidate)
            continue
        if candidate != path:
            logger.warning("Recovered checkpoint {} from backup", path)
        return loaded
    return None
