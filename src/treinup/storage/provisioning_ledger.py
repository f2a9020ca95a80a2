"""Ledger of accounts whose provisioning still has pending steps."""

import logging
from pathlib import Path

from treinup.exceptions import StorageUnavailableError
from treinup.models.provisioning import LedgerEntry
from treinup.storage.json_file import JsonFile

logger = logging.getLogger(__name__)


class ProvisioningLedger:
    """Records pending provisioning steps per user id.

    Backed by a JSON file when a path is given, otherwise kept in memory.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._file = JsonFile(path) if path else None
        self._entries: dict[str, LedgerEntry] = {}

    def _load(self) -> dict[str, LedgerEntry]:
        if self._file is None:
            return {user_id: entry.model_copy(deep=True) for user_id, entry in self._entries.items()}
        try:
            raw = self._file.read()
            return {user_id: LedgerEntry(**data) for user_id, data in raw.items()}
        except (OSError, ValueError) as e:
            raise StorageUnavailableError(f"Provisioning ledger read failed: {e}") from e

    def _save(self, entries: dict[str, LedgerEntry]) -> None:
        if self._file is None:
            self._entries = entries
            return
        try:
            self._file.write({
                user_id: entry.model_dump(mode="json")
                for user_id, entry in entries.items()
            })
        except OSError as e:
            raise StorageUnavailableError(f"Provisioning ledger write failed: {e}") from e

    def get(self, user_id: str) -> LedgerEntry | None:
        return self._load().get(user_id)

    def record(self, entry: LedgerEntry) -> None:
        """Store or replace the entry for a user; empty entries are dropped."""
        if not entry.pending_steps:
            self.resolve(entry.user_id)
            return
        entries = self._load()
        entries[entry.user_id] = entry
        self._save(entries)
        logger.info(
            f"Provisioning pending for user {entry.user_id}: "
            f"{[s.value for s in entry.pending_steps]}"
        )

    def resolve(self, user_id: str) -> None:
        """Forget a user once provisioning is complete."""
        entries = self._load()
        if entries.pop(user_id, None) is not None:
            self._save(entries)
            logger.info(f"Provisioning complete for user {user_id}")
