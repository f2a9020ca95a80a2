"""Credential store for the device session.

Holds exactly three keys (session token, auth token, active tenant id).
Every access happens inside a scoped acquisition that turns storage
failures into ``StorageUnavailableError``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

from treinup.exceptions import StorageUnavailableError
from treinup.models.session import CredentialKey, Session
from treinup.storage.json_file import JsonFile

logger = logging.getLogger(__name__)


def _coerce_key(key: CredentialKey | str) -> CredentialKey:
    try:
        return CredentialKey(key)
    except ValueError:
        raise ValueError(f"Unknown credential key: {key!r}") from None


class CredentialStore(ABC):
    """Base class for credential stores."""

    @abstractmethod
    def _read(self, key: CredentialKey) -> str | None:
        ...

    @abstractmethod
    def _write_many(self, values: Mapping[CredentialKey, str]) -> None:
        """Write all values in one step, or none of them."""
        ...

    @abstractmethod
    def _delete(self, key: CredentialKey) -> None:
        ...

    @contextmanager
    def _acquire(self, operation: str, *keys: CredentialKey) -> Iterator[None]:
        """Scope a storage access, surfacing failures as typed errors."""
        try:
            yield
        except StorageUnavailableError:
            raise
        except (OSError, ValueError) as e:
            logger.error(f"Credential store {operation} failed: {e}")
            raise StorageUnavailableError(
                f"Credential store {operation} failed: {e}",
                failed_keys=[k.value for k in keys],
            ) from e

    def get(self, key: CredentialKey | str) -> str | None:
        """Read a single credential."""
        key = _coerce_key(key)
        with self._acquire("read", key):
            return self._read(key)

    def put(self, key: CredentialKey | str, value: str) -> None:
        """Write a single credential."""
        self.put_many({_coerce_key(key): value})

    def put_many(self, values: Mapping[CredentialKey | str, str]) -> None:
        """Write several credentials as one atomic update."""
        coerced = {_coerce_key(k): v for k, v in values.items()}
        with self._acquire("write", *coerced):
            self._write_many(coerced)
        logger.debug(f"Stored credentials: {[k.value for k in coerced]}")

    def clear(self) -> None:
        """Remove every credential.

        Raises:
            StorageUnavailableError: Listing the keys that could not be removed
        """
        failed: list[str] = []
        for key in CredentialKey:
            try:
                with self._acquire("clear", key):
                    self._delete(key)
            except StorageUnavailableError:
                failed.append(key.value)
        if failed:
            raise StorageUnavailableError("Credential store clear failed", failed_keys=failed)
        logger.debug("Cleared credential store")

    def load(self) -> Session | None:
        """Return the persisted session, if one is complete."""
        session_token = self.get(CredentialKey.SESSION_TOKEN)
        auth_token = self.get(CredentialKey.AUTH_TOKEN)
        if not session_token or not auth_token:
            return None
        return Session(
            session_token=session_token,
            auth_token=auth_token,
            active_tenant_id=self.get(CredentialKey.ACTIVE_TENANT_ID),
        )


class FileCredentialStore(CredentialStore):
    """Credentials in an owner-only JSON file that survives restarts."""

    def __init__(self, path: Path) -> None:
        self._file = JsonFile(path)

    @property
    def path(self) -> Path:
        return self._file.path

    def _read(self, key: CredentialKey) -> str | None:
        return self._file.read().get(key.value)

    def _write_many(self, values: Mapping[CredentialKey, str]) -> None:
        data = self._file.read()
        data.update({k.value: v for k, v in values.items()})
        self._file.write(data)

    def _delete(self, key: CredentialKey) -> None:
        data = self._file.read()
        if key.value in data:
            del data[key.value]
            self._file.write(data)


class MemoryCredentialStore(CredentialStore):
    """Process-local credentials, for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._values: dict[CredentialKey, str] = {}

    def _read(self, key: CredentialKey) -> str | None:
        return self._values.get(key)

    def _write_many(self, values: Mapping[CredentialKey, str]) -> None:
        self._values.update(values)

    def _delete(self, key: CredentialKey) -> None:
        self._values.pop(key, None)
