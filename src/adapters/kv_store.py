"""Key-value store durable sobre ficheros.

Por qué ficheros y no SQLite:
- El estado es un único array JSON pequeño; un fichero por clave es fácil de
  inspeccionar, copiar y respaldar a mano.

Limitación conocida: sin file locking, un solo proceso escritor.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from core.errors import StorageUnavailable

_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class JsonFileKeyValueStore:
    """`<directory>/<key>.json` por clave. Escrituras atómicas (tmp + replace)."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageUnavailable(
                "Could not read local storage",
                context={"key": key, "path": str(path)},
                original_error=exc,
            ) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise StorageUnavailable(
                "Could not write local storage",
                context={"key": key, "path": str(path)},
                original_error=exc,
            ) from exc

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable(
                "Could not remove local storage key",
                context={"key": key},
                original_error=exc,
            ) from exc
