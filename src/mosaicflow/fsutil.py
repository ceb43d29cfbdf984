"""File system helpers. All storage I/O goes through here.

Every OSError, JSON decode error and validation error is translated into the
MosaicError taxonomy at this layer.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import InvalidFormatError, InvalidJsonError, MosaicError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def ensure_dir(path: Path) -> None:
    """Create a directory and any missing parents; no-op if present."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise MosaicError.from_os_error(e, path) from e


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise MosaicError.from_os_error(e, path) from e
    except UnicodeDecodeError as e:
        raise InvalidJsonError(f"{path.name} is not valid UTF-8: {e.reason}", context=str(path)) from e


def write_text(path: Path, content: str) -> None:
    """Overwrite a file, creating parent directories first."""
    ensure_dir(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise MosaicError.from_os_error(e, path) from e


def read_json(path: Path) -> Any:
    """Read a JSON document of any shape."""
    content = read_text(path)
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"JSON error in {path.name}: {e}", context=str(path)) from e


def write_json(path: Path, data: Any) -> None:
    """Write data as pretty-printed UTF-8 JSON."""
    write_text(path, json.dumps(data, indent=2, ensure_ascii=False))
    logger.debug(f"Wrote {path}")


def read_model(path: Path, model: type[ModelT]) -> ModelT:
    """Read a JSON file and validate it as `model`."""
    data = read_json(path)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidFormatError(
            f"{path.name} is not a valid {model.__name__}: {e.error_count()} error(s)",
            context=str(path),
        ) from e


def write_model(path: Path, record: BaseModel) -> None:
    write_json(path, record.model_dump(mode="json"))


def list_subdirs(path: Path) -> list[Path]:
    """Immediate subdirectories, sorted by name; empty if path is missing."""
    if not path.exists():
        return []
    try:
        return sorted(p for p in path.iterdir() if p.is_dir())
    except OSError as e:
        raise MosaicError.from_os_error(e, path) from e


def remove_tree(path: Path) -> None:
    """Remove a directory and everything under it."""
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise MosaicError.from_os_error(e, path) from e


def rename(src: Path, dst: Path) -> None:
    try:
        src.rename(dst)
    except OSError as e:
        raise MosaicError.from_os_error(e, src) from e
