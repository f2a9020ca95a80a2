"""Tests for the credential stores."""

import json
import os
import stat

import pytest

from treinup.exceptions import StorageUnavailableError
from treinup.models.session import CredentialKey, Session
from treinup.storage.credential_store import FileCredentialStore, MemoryCredentialStore


class FlakyStore(MemoryCredentialStore):
    """Memory store whose deletes fail for chosen keys."""

    def __init__(self, failing: set[CredentialKey]) -> None:
        super().__init__()
        self.failing = failing

    def _delete(self, key: CredentialKey) -> None:
        if key in self.failing:
            raise OSError("keychain locked")
        super()._delete(key)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def file_store(tmp_path) -> FileCredentialStore:
    return FileCredentialStore(tmp_path / "creds" / "credentials.json")


class TestMemoryCredentialStore:
    """Tests for the in-process store."""

    def test_get_missing_key(self):
        store = MemoryCredentialStore()
        assert store.get(CredentialKey.AUTH_TOKEN) is None

    def test_put_and_get(self):
        store = MemoryCredentialStore()
        store.put(CredentialKey.AUTH_TOKEN, "jwt-1")
        assert store.get(CredentialKey.AUTH_TOKEN) == "jwt-1"

    def test_accepts_key_values(self):
        store = MemoryCredentialStore()
        store.put("sessionToken", "s-1")
        assert store.get(CredentialKey.SESSION_TOKEN) == "s-1"

    def test_rejects_unknown_key(self):
        store = MemoryCredentialStore()
        with pytest.raises(ValueError, match="Unknown credential key"):
            store.put("refreshToken", "x")

    def test_clear_removes_everything(self):
        store = MemoryCredentialStore()
        store.put_many({
            CredentialKey.SESSION_TOKEN: "s",
            CredentialKey.AUTH_TOKEN: "a",
            CredentialKey.ACTIVE_TENANT_ID: "t",
        })
        store.clear()
        for key in CredentialKey:
            assert store.get(key) is None

    def test_clear_reports_failed_keys(self):
        store = FlakyStore({CredentialKey.AUTH_TOKEN})
        store.put_many({
            CredentialKey.SESSION_TOKEN: "s",
            CredentialKey.AUTH_TOKEN: "a",
            CredentialKey.ACTIVE_TENANT_ID: "t",
        })

        with pytest.raises(StorageUnavailableError) as exc_info:
            store.clear()

        assert exc_info.value.failed_keys == ("authToken",)
        # The other keys were still removed
        assert store.get(CredentialKey.SESSION_TOKEN) is None
        assert store.get(CredentialKey.ACTIVE_TENANT_ID) is None

    def test_load_requires_both_tokens(self):
        store = MemoryCredentialStore()
        store.put(CredentialKey.SESSION_TOKEN, "s")
        assert store.load() is None

        store.put(CredentialKey.AUTH_TOKEN, "a")
        session = store.load()
        assert session == Session(session_token="s", auth_token="a")


class TestFileCredentialStore:
    """Tests for the file-backed store."""

    def test_survives_new_instance(self, file_store):
        file_store.put_many(
            Session(session_token="s", auth_token="a", active_tenant_id="t").to_credentials()
        )

        reopened = FileCredentialStore(file_store.path)
        session = reopened.load()
        assert session.session_token == "s"
        assert session.active_tenant_id == "t"

    def test_file_is_owner_only(self, file_store):
        file_store.put(CredentialKey.AUTH_TOKEN, "a")
        mode = stat.S_IMODE(os.stat(file_store.path).st_mode)
        assert mode == 0o600

    def test_put_many_leaves_no_temp_file(self, file_store):
        file_store.put_many({CredentialKey.SESSION_TOKEN: "s", CredentialKey.AUTH_TOKEN: "a"})
        assert sorted(p.name for p in file_store.path.parent.iterdir()) == ["credentials.json"]
        assert json.loads(file_store.path.read_text()) == {"sessionToken": "s", "authToken": "a"}

    def test_corrupt_file_is_storage_error(self, file_store):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("[1, 2]")

        with pytest.raises(StorageUnavailableError) as exc_info:
            file_store.get(CredentialKey.AUTH_TOKEN)
        assert exc_info.value.failed_keys == ("authToken",)

    def test_unwritable_location_is_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FileCredentialStore(blocker / "credentials.json")

        with pytest.raises(StorageUnavailableError):
            store.put(CredentialKey.AUTH_TOKEN, "a")

    def test_clear_on_missing_file(self, file_store):
        file_store.clear()
        assert file_store.load() is None
