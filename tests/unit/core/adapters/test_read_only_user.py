"""Unit tests for the read-only user adapter."""

import pytest

from src.federation.core.adapters import (
    AdapterState,
    ReadOnlyUserAdapter,
    external_id_from_storage_id,
    storage_id,
)
from src.federation.core.errors import RecordDiscardedError, RecordIntegrityError
from src.federation.core.models import CanonicalUserRecord


@pytest.fixture
def record() -> CanonicalUserRecord:
    return CanonicalUserRecord.create(
        external_id="u-1",
        username="alice",
        email="alice@example.com",
        first_name="Alice",
        last_name="Liddell",
        tenant_tag="http://127.0.0.1:8080",
    )


@pytest.fixture
def adapter(record) -> ReadOnlyUserAdapter:
    return ReadOnlyUserAdapter(record, "obp-remote-directory")


class TestStorageId:
    """Tests for the namespaced storage id helpers."""

    def test_storage_id_format(self):
        assert storage_id("comp", "u-1") == "f:comp:u-1"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("f:comp:u-1", "u-1"),
            ("f:comp:id:with:colons", "id:with:colons"),
            ("u-1", "u-1"),
            ("f:incomplete", "f:incomplete"),
        ],
    )
    def test_external_id_from_storage_id(self, value, expected):
        assert external_id_from_storage_id(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("f:comp:u-1", "u-1"),
            ("f:other-comp:u-1", None),
            ("u-1", "u-1"),
        ],
    )
    def test_external_id_checked_against_component(self, value, expected):
        """Should refuse ids namespaced to a different component."""
        assert external_id_from_storage_id(value, "comp") == expected


class TestReadAccess:
    """Tests for reading through the adapter."""

    def test_reads_record_fields(self, adapter):
        assert adapter.id == "f:obp-remote-directory:u-1"
        assert adapter.external_id == "u-1"
        assert adapter.username == "alice"
        assert adapter.email == "alice@example.com"
        assert adapter.first_name == "Alice"
        assert adapter.last_name == "Liddell"
        assert adapter.tenant_tag == "http://127.0.0.1:8080"

    def test_enabled_and_verified_follow_validated(self, record):
        adapter = ReadOnlyUserAdapter(record.model_copy(update={"validated": False}), "c")

        assert adapter.enabled is False
        assert adapter.email_verified is False

    def test_attributes_come_from_record(self, adapter):
        assert adapter.get_attributes() == {
            "firstName": ["Alice"],
            "lastName": ["Liddell"],
            "email": ["alice@example.com"],
            "username": ["alice"],
            "provider": ["http://127.0.0.1:8080"],
            "validated": ["true"],
        }
        assert adapter.get_first_attribute("email") == "alice@example.com"
        assert adapter.get_attribute("unknown") == []
        assert adapter.get_first_attribute("unknown") is None

    def test_missing_optional_fields_omitted_from_attributes(self):
        adapter = ReadOnlyUserAdapter(
            CanonicalUserRecord.create(external_id="u-2", username="bob"), "c"
        )
        assert set(adapter.get_attributes()) == {"username", "validated"}

    def test_credential_types(self, adapter):
        assert adapter.credential_types == ("password",)

    def test_missing_record_rejected(self):
        with pytest.raises(RecordIntegrityError):
            ReadOnlyUserAdapter(None, "c")


class TestReadOnlyBehavior:
    """Tests for rejected writes."""

    @pytest.mark.parametrize(
        ("method", "args"),
        [
            ("set_username", ("mallory",)),
            ("set_email", ("mallory@example.com",)),
            ("set_first_name", ("Mal",)),
            ("set_last_name", ("Lory",)),
            ("set_email_verified", (False,)),
            ("set_enabled", (False,)),
            ("set_single_attribute", ("email", "mallory@example.com")),
            ("set_attribute", ("firstName", ["Mal"])),
            ("remove_attribute", ("email",)),
            ("set_password", ("new-password",)),
        ],
    )
    def test_mutators_change_nothing(self, adapter, log_records, method, args):
        """Should log a warning and leave the user untouched."""
        before = (adapter.username, adapter.email, adapter.enabled, adapter.get_attributes())

        result = getattr(adapter, method)(*args)

        assert result is None
        assert (adapter.username, adapter.email, adapter.enabled, adapter.get_attributes()) == before
        warnings = [r for r in log_records if r["level"].name == "WARNING"]
        assert len(warnings) == 1
        assert warnings[0]["extra"]["operation"] == method
        assert "read-only" in warnings[0]["message"]

    def test_password_not_logged(self, adapter, log_records):
        adapter.set_password("new-password")
        assert all("new-password" not in str(r["extra"]) for r in log_records)


class TestLifecycle:
    """Tests for discarding adapters at the end of a request."""

    def test_discard_blocks_reads(self, adapter):
        adapter.discard()

        assert adapter.state is AdapterState.DISCARDED
        with pytest.raises(RecordDiscardedError):
            _ = adapter.username

    def test_context_manager_discards(self, adapter):
        with adapter as user:
            assert user.username == "alice"
            assert user.state is AdapterState.EXPOSED

        with pytest.raises(RecordDiscardedError):
            adapter.get_attributes()
