"""Flat-file JSON persistence for the device registry."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    """A single JSON document holding the array of device records."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> list[dict[str, Any]]:
        """
        Read every record from disk.

        A missing file is an empty registry.

        Raises:
            ValueError: If the document is not a JSON array
        """
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{self.path}: expected a JSON array of devices")
        return data

    def save(self, records: list[dict[str, Any]]) -> None:
        """
        Atomically replace the document with ``records``.

        Uses a temp-file + os.replace so a crash mid-write never leaves a
        half-written file.
        """
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp, self.path)
        except Exception:
            if tmp.exists():
                tmp.unlink(missing_ok=True)
            raise
        logger.debug("Saved %d device(s) to %s", len(records), self.path)
