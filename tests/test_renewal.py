"""Tests for the renewal model and its bookkeeping state."""

from datetime import UTC, datetime

import pytest

from perennial.error_handling import PluginOptionsError
from perennial.renewal import EntryState, Renewal, RenewResult


class TestRenewalModel:
    """Test field defaults and normalization."""

    def test_last_friendly_name_defaults(self):
        renewal = Renewal(id="abc", friendly_name="example.com", date=datetime(2026, 1, 1, tzinfo=UTC))

        assert renewal.last_friendly_name == "example.com"

    def test_last_friendly_name_kept(self):
        renewal = Renewal.model_validate(
            {
                "Id": "abc",
                "FriendlyName": "old",
                "LastFriendlyName": "new",
                "Date": "2026-01-01T00:00:00Z",
            },
        )

        assert renewal.last_friendly_name == "new"

    def test_naive_dates_are_utc(self):
        renewal = Renewal(id="abc", date=datetime(2026, 1, 1))

        assert renewal.date.tzinfo is UTC

    def test_history_null_is_empty(self):
        renewal = Renewal.model_validate({"Id": "abc", "Date": "2026-01-01T00:00:00Z", "History": None})

        assert renewal.history == []

    def test_options_need_registry(self):
        with pytest.raises(ValueError, match="plugin registry is required"):
            Renewal.model_validate(
                {
                    "Id": "abc",
                    "Date": "2026-01-01T00:00:00Z",
                    "TargetPluginOptions": {"Plugin": "manual", "Host": "example.com"},
                },
            )

    def test_state_is_not_serialized(self, make_renewal, cipher, registry):
        renewal = make_renewal("abc")
        document = renewal.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            context={"registry": registry, "cipher": cipher},
        )

        assert "State" not in document
        assert "_state" not in document
        assert document["Id"] == "abc"

    def test_create_generates_id(self):
        first = Renewal.create(date=datetime(2026, 1, 1, tzinfo=UTC))
        second = Renewal.create(date=datetime(2026, 1, 1, tzinfo=UTC))

        assert first.id != second.id
        assert first.is_new

    def test_str(self, make_renewal):
        renewal = make_renewal("abc")
        renewal.history = [RenewResult.succeeded(), RenewResult.succeeded()]
        assert str(renewal) == "abc.example.com - renewed 2 times, due after 2026-01-01 00:00"

        renewal.history.append(RenewResult.failed("dns timeout"))
        assert str(renewal).endswith(", error: dns timeout")


class TestEntryState:
    """Test the bookkeeping transitions."""

    def test_loaded_renewal_is_clean(self):
        renewal = Renewal(id="abc", date=datetime(2026, 1, 1, tzinfo=UTC))

        assert renewal.state is EntryState.CLEAN
        assert not renewal.needs_write

    def test_clean_to_updated(self):
        renewal = Renewal(id="abc", date=datetime(2026, 1, 1, tzinfo=UTC))
        renewal.mark_updated()

        assert renewal.is_updated
        assert renewal.needs_write

    def test_new_stays_new_when_updated(self, make_renewal):
        renewal = make_renewal()
        renewal.mark_updated()

        assert renewal.is_new
        assert renewal.needs_write

    @pytest.mark.parametrize("start", ["mark_new", "mark_updated", "mark_clean"])
    def test_any_state_to_deleted(self, start):
        renewal = Renewal(id="abc", date=datetime(2026, 1, 1, tzinfo=UTC))
        getattr(renewal, start)()
        renewal.mark_deleted()

        assert renewal.is_deleted

    def test_deleted_is_terminal(self, make_renewal):
        renewal = make_renewal()
        renewal.mark_deleted()

        renewal.mark_new()
        renewal.mark_updated()
        renewal.mark_clean()

        assert renewal.is_deleted

    def test_write_returns_to_clean(self, make_renewal):
        renewal = make_renewal()
        renewal.mark_clean()

        assert renewal.state is EntryState.CLEAN


class TestRenewResult:
    """Test run results."""

    def test_defaults(self):
        result = RenewResult.succeeded()

        assert result.success
        assert result.error_message is None
        assert result.date.tzinfo is not None

    def test_failed(self):
        result = RenewResult.failed("boom")

        assert not result.success
        assert result.error_message == "boom"

    def test_aliases(self):
        result = RenewResult.model_validate({"Date": "2025-01-01T00:00:00", "Success": True})

        assert result.success
        assert result.date == datetime(2025, 1, 1, tzinfo=UTC)
        assert result.model_dump(by_alias=True, exclude_none=True, mode="json") == {
            "Date": "2025-01-01T00:00:00Z",
            "Success": True,
        }


def test_options_error_is_value_error():
    assert issubclass(PluginOptionsError, ValueError)
