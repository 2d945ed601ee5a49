"""
Durable JSON files: atomic write helpers and a small key/value store.

``JsonKeyValueStore`` is the localStorage analogue used by the client
fallback and by the file-backed OTP store: a single JSON object on disk,
re-read on every access so separate handles on the same file stay in sync.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from auth.exceptions import ServerError

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Load ``path``; a missing or empty file yields ``default``."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    except OSError as exc:
        logger.exception("Could not read %s", path)
        raise ServerError() from exc

    if not raw.strip():
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.exception("Corrupt JSON in %s", path)
        raise ServerError() from exc


def write_json_atomic(path: Path, data: Any) -> None:
    """Write via temp file + rename so readers never see a partial file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, default=str)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        logger.exception("Could not write %s", path)
        raise ServerError() from exc


class JsonKeyValueStore:
    """Persistent string-keyed map of JSON values."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        data = read_json(self.path, {})
        if not isinstance(data, dict):
            logger.error("Expected a JSON object in %s, found %s", self.path, type(data).__name__)
            raise ServerError()
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        write_json_atomic(self.path, data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            write_json_atomic(self.path, data)
