# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Durable local key/value storage.

All keys live in one JSON file. Every ``set`` rewrites the file through a
temporary sibling and ``os.replace``, so a crash leaves either the old or
the new contents on disk, never a torn write.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class LocalStorage:
    """JSON-file backed named blob storage."""

    def __init__(self, path: Union[str, Path]):
        """
        Initialize storage.

        Args:
            path: JSON file holding all keys (created on first write)
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Local storage: {self.path}")

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Unreadable local storage {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Unexpected local storage contents in {self.path}")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def _write_all(self, data: dict) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class MemoryStorage:
    """In-memory storage with the same interface, for tests and dry runs."""

    def __init__(self, initial: Optional[dict] = None):
        self._data = json.loads(json.dumps(initial or {}))
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(key, default)
        return json.loads(json.dumps(value))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))
        self.writes += 1

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
