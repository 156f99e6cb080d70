"""Tests for the SQLite-backed credential store."""

import sqlite3
import stat
import sys

import pytest

from credvault.core.crypto.aes_gcm import decode_b64, encode_b64
from credvault.core.exceptions import (
    AuthenticationError,
    CredentialNotFoundError,
    DuplicateLabelError,
    EncodingError,
    StorageError,
    ValidationError,
)
from credvault.db.credential_store import CredentialRecord, CredentialStore


# ── Initialization ──────────────────────────────────────────────────


class TestInitialize:

    def test_initialize_twice_keeps_empty_store_empty(self, store):
        store.initialize()
        store.initialize()
        assert store.list() == []

    def test_initialize_twice_keeps_populated_store(self, store, key):
        store.add("github", "alice", "secret123", key=key)
        before = store.list()
        store.initialize()
        store.initialize()
        assert store.list() == before

    def test_schema_matches_interchange_layout(self, store, store_path):
        conn = sqlite3.connect(store_path)
        try:
            info = {row[1]: row for row in conn.execute("PRAGMA table_info(credentials)")}
        finally:
            conn.close()

        assert list(info) == ["id", "label", "username", "nonce", "ciphertext", "notes"]
        # (cid, name, type, notnull, default, pk)
        assert info["id"][5] == 1
        for column in ("label", "username", "nonce", "ciphertext"):
            assert info[column][3] == 1
        assert info["notes"][3] == 0

    def test_schema_mismatch_raises_storage_error(self, tmp_path):
        path = tmp_path / "legacy.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE credentials (id INTEGER PRIMARY KEY, label TEXT)")
        conn.commit()
        conn.close()

        with pytest.raises(StorageError, match="missing columns"):
            CredentialStore.open(path)

    def test_non_database_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "garbage.db"
        path.write_bytes(b"this is not a sqlite database" * 100)
        with pytest.raises(StorageError):
            CredentialStore.open(path)

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.db"
        with CredentialStore.open(path) as store:
            assert store.count() == 0
        assert path.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_new_store_file_is_owner_only(self, store_path, store):
        mode = stat.S_IMODE(store_path.stat().st_mode)
        assert mode & (stat.S_IRWXG | stat.S_IRWXO) == 0

    def test_operations_after_close_raise_storage_error(self, store_path):
        store = CredentialStore.open(store_path)
        store.close()
        with pytest.raises(StorageError):
            store.list()


# ── CRUD ────────────────────────────────────────────────────────────


class TestCrud:

    def test_add_get_reveal_delete(self, store, key):
        store.add("github", "alice", "secret123", None, key=key)

        record = store.get("github")
        assert record is not None
        assert record.username == "alice"
        assert record.notes is None
        assert store.reveal("github", key=key) == "secret123"

        assert store.delete("github") is True
        assert store.get("github") is None

    def test_add_returns_record_with_id(self, store, key):
        first = store.add("a", "u", "p", key=key)
        second = store.add("b", "u", "p", key=key)
        assert isinstance(first.id, int)
        assert second.id > first.id
        assert store.get("a") == first

    def test_stored_row_never_holds_plaintext(self, store, store_path, key):
        store.add("bank", "bob", "correct horse battery staple", "pin in safe", key=key)
        raw = store_path.read_bytes()
        assert b"correct horse battery staple" not in raw

        record = store.get("bank")
        assert "correct horse" not in record.ciphertext
        assert len(decode_b64(record.nonce)) == 12

    def test_each_add_uses_a_fresh_nonce(self, store, key):
        store.add("one", "u", "same", key=key)
        store.add("two", "u", "same", key=key)
        assert store.get("one").nonce != store.get("two").nonce

    def test_get_missing_returns_none(self, store):
        assert store.get("nope") is None

    def test_require_missing_raises_not_found(self, store):
        with pytest.raises(CredentialNotFoundError) as excinfo:
            store.require("nope")
        assert excinfo.value.label == "nope"

    def test_reveal_missing_raises_not_found(self, store, key):
        with pytest.raises(CredentialNotFoundError):
            store.reveal("nope", key=key)

    def test_delete_missing_returns_false(self, store):
        assert store.delete("nope") is False

    def test_labels_are_case_sensitive(self, store, key):
        store.add("GitHub", "alice", "one", key=key)
        store.add("github", "bob", "two", key=key)
        assert store.reveal("GitHub", key=key) == "one"
        assert store.reveal("github", key=key) == "two"

    def test_unicode_and_empty_password(self, store, key):
        store.add("emoji", "ü", "🔐 ключ", "notes ✓", key=key)
        store.add("blank", "", "", key=key)
        assert store.reveal("emoji", key=key) == "🔐 ключ"
        assert store.reveal("blank", key=key) == ""

    def test_password_with_nul_round_trips(self, store, key):
        store.add("nul", "u", "a\x00b", key=key)
        assert store.reveal("nul", key=key) == "a\x00b"

    def test_empty_label_rejected(self, store, key):
        with pytest.raises(ValidationError):
            store.add("", "u", "p", key=key)
        assert store.count() == 0

    @pytest.mark.parametrize("label", ["l" * 300, "bad\x00label"])
    def test_long_and_nul_labels_round_trip(self, store, key, label):
        store.add(label, "u", "p", key=key)
        assert store.labels() == [label]
        assert store.require(label).label == label
        assert store.reveal(label, key=key) == "p"

    def test_long_and_nul_text_fields_round_trip(self, store, key):
        username = "u\x00" + "x" * 5000
        notes = "n\x00" + "y" * 5000
        store.add("github", username, "p", notes, key=key)
        record = store.require("github")
        assert record.username == username
        assert record.notes == notes

    def test_record_repr_hides_payload(self, store, key):
        record = store.add("github", "alice", "secret123", key=key)
        assert record.ciphertext not in repr(record)
        assert record.nonce not in repr(record)


# ── Ordering and persistence ────────────────────────────────────────


class TestListing:

    def test_list_returns_insertion_order(self, store, key):
        for label in ("c", "a", "b"):
            store.add(label, "u", "p", key=key)
        assert [r.label for r in store.list()] == ["c", "a", "b"]
        assert store.labels() == ["c", "a", "b"]

    def test_list_order_after_delete(self, store, key):
        for label in ("a", "b", "c"):
            store.add(label, "u", "p", key=key)
        store.delete("b")
        store.add("d", "u", "p", key=key)
        assert store.labels() == ["a", "c", "d"]

    def test_iter_records_yields_in_insertion_order(self, store, key):
        for label in ("c", "a"):
            store.add(label, "u", "p", key=key)
        records = store.iter_records()
        assert next(records).label == "c"
        assert next(records).label == "a"
        assert next(records, None) is None

    def test_count(self, store, key):
        assert store.count() == 0
        store.add("a", "u", "p", key=key)
        assert store.count() == 1

    def test_data_persists_across_reopen(self, store_path, key):
        with CredentialStore.open(store_path) as store:
            store.add("a", "alice", "pa", key=key)
            store.add("b", "bob", "pb", "note", key=key)

        with CredentialStore.open(store_path) as reopened:
            assert reopened.labels() == ["a", "b"]
            assert reopened.reveal("b", key=key) == "pb"
            assert reopened.get("b").notes == "note"

    def test_ids_are_not_reused_after_delete(self, store, key):
        first = store.add("a", "u", "p", key=key)
        store.delete("a")
        second = store.add("a", "u", "p", key=key)
        assert second.id > first.id


# ── Label uniqueness ────────────────────────────────────────────────


class TestUniqueness:

    def test_duplicate_label_rejected_by_default(self, store, key):
        store.add("github", "alice", "one", key=key)
        with pytest.raises(DuplicateLabelError):
            store.add("github", "bob", "two", key=key)
        assert store.count() == 1
        assert store.reveal("github", key=key) == "one"

    def test_label_reusable_after_delete(self, store, key):
        store.add("github", "alice", "one", key=key)
        store.delete("github")
        store.add("github", "alice", "two", key=key)
        assert store.reveal("github", key=key) == "two"

    def test_duplicates_allowed_when_not_unique(self, store_path, key):
        with CredentialStore.open(store_path, unique_labels=False) as store:
            store.add("github", "alice", "one", key=key)
            store.add("github", "bob", "two", key=key)

            assert store.count() == 2
            assert store.get("github").username == "alice"
            assert store.reveal("github", key=key) == "one"

            assert store.delete("github") is True
            assert store.count() == 0

    def test_unique_store_opens_legacy_duplicates(self, store_path, key):
        with CredentialStore.open(store_path, unique_labels=False) as store:
            store.add("dup", "u1", "p1", key=key)
            store.add("dup", "u2", "p2", key=key)

        with CredentialStore.open(store_path) as store:
            assert store.get("dup").username == "u1"
            with pytest.raises(DuplicateLabelError):
                store.add("dup", "u3", "p3", key=key)


# ── Tampering ───────────────────────────────────────────────────────


def _tamper(store_path, label, column, value):
    conn = sqlite3.connect(store_path)
    conn.execute(f"UPDATE credentials SET {column} = ? WHERE label = ?", (value, label))
    conn.commit()
    conn.close()


class TestTampering:

    def test_modified_ciphertext_raises_authentication_error(self, store, store_path, key):
        record = store.add("github", "alice", "secret123", key=key)
        sealed = bytearray(decode_b64(record.ciphertext))
        sealed[0] ^= 0x01
        _tamper(store_path, "github", "ciphertext", encode_b64(bytes(sealed)))

        with pytest.raises(AuthenticationError):
            store.reveal("github", key=key)

    def test_modified_nonce_raises_authentication_error(self, store, store_path, key):
        record = store.add("github", "alice", "secret123", key=key)
        nonce = bytearray(decode_b64(record.nonce))
        nonce[-1] ^= 0x80
        _tamper(store_path, "github", "nonce", encode_b64(bytes(nonce)))

        with pytest.raises(AuthenticationError):
            store.reveal("github", key=key)

    def test_swapped_ciphertexts_are_detected(self, store, store_path, key):
        a = store.add("a", "u", "pa", key=key)
        store.add("b", "u", "pb", key=key)
        _tamper(store_path, "b", "ciphertext", a.ciphertext)

        with pytest.raises(AuthenticationError):
            store.reveal("b", key=key)

    def test_malformed_base64_raises_encoding_error(self, store, store_path, key):
        store.add("github", "alice", "secret123", key=key)
        _tamper(store_path, "github", "ciphertext", "***not base64***")

        with pytest.raises(EncodingError):
            store.reveal("github", key=key)

    def test_wrong_key_raises_authentication_error(self, store, key, other_key):
        store.add("github", "alice", "secret123", key=key)
        with pytest.raises(AuthenticationError):
            store.reveal("github", key=other_key)


# ── Sealed record insertion ─────────────────────────────────────────


class TestInsertRecord:

    def test_insert_record_copies_fields_verbatim(self, store, key):
        original = store.add("github", "alice", "secret123", "n", key=key)
        store.delete("github")

        copy = CredentialRecord(
            label=original.label,
            username=original.username,
            nonce=original.nonce,
            ciphertext=original.ciphertext,
            notes=original.notes,
        )
        stored = store.insert_record(copy)

        assert stored.nonce == original.nonce
        assert stored.ciphertext == original.ciphertext
        assert store.reveal("github", key=key) == "secret123"

    def test_insert_record_rejects_short_nonce(self, store):
        record = CredentialRecord(
            label="x",
            username="u",
            nonce=encode_b64(b"\x00" * 8),
            ciphertext=encode_b64(b"\x00" * 32),
        )
        with pytest.raises(EncodingError):
            store.insert_record(record)
        assert store.count() == 0

    def test_check_record_does_not_write(self, store, key):
        record = store.add("github", "alice", "secret123", key=key)
        store.delete("github")

        store.check_record(record)
        assert store.count() == 0

        with pytest.raises(ValidationError):
            store.check_record(CredentialRecord(
                label="",
                username="u",
                nonce=record.nonce,
                ciphertext=record.ciphertext,
            ))
