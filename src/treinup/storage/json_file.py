"""Small JSON document file with atomic replace-on-write."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFile:
    """A JSON object stored in a single owner-only file.

    Writes go to a sibling temp file that is then renamed over the target,
    so readers never observe a half-written document.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        """Read the stored object; a missing file reads as empty.

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file is not a JSON object
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        data = json.loads(raw) if raw.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def write(self, data: dict[str, Any]) -> None:
        """Replace the stored object."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, self.path)
        logger.debug(f"Wrote {len(data)} entries to {self.path}")
