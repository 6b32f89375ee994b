"""Persistence of the dashboard state blob.

The engine treats the blob as opaque: it produces it with
``PolygonStore.to_snapshot()`` and consumes it with ``from_snapshot()``.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union
from polygon_weather.errors import StorageError

LOGGER = logging.getLogger(__name__)


class StateStorage(Protocol):
    def load(self) -> Optional[Dict[str, Any]]:
        ...

    def save(self, blob: Dict[str, Any]) -> None:
        ...


class JsonFileStateStorage:
    """State blob stored as a JSON document on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Dict[str, Any]]:
        """Read the blob; None when the file does not exist yet.

        Raises:
            StorageError: Unreadable file or not a JSON object.
        """
        if not self._path.exists():
            LOGGER.debug("No state file at %s", self._path)
            return None
        try:
            blob = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read state file {self._path}: {exc}") from exc
        if not isinstance(blob, dict):
            raise StorageError(f"State file {self._path} does not hold a JSON object")
        return blob

    def save(self, blob: Dict[str, Any]) -> None:
        """Write the blob atomically (temp file + rename)."""
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(blob, handle, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Cannot write state file {self._path}: {exc}") from exc
        LOGGER.debug("Saved state to %s", self._path)


__all__ = ["StateStorage", "JsonFileStateStorage"]
