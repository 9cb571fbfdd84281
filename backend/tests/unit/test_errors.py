"""
Unit Tests for Error Types and describe_error
"""
from leadsync.core.errors import (
    LeadNotFoundError,
    PersistenceError,
    describe_error,
)


class _ApiError(Exception):
    def __init__(self, message, details=None, code=None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code


class TestDescribeError:
    """Tests for the message lookup order."""

    def test_string(self):
        assert describe_error("plain failure") == "plain failure"

    def test_details_before_message(self):
        error = _ApiError("duplicate key", details="Key (email) already exists")

        assert describe_error(error) == "Key (email) already exists"

    def test_message_attribute(self):
        assert describe_error(_ApiError("permission denied")) == "permission denied"

    def test_dict_message(self):
        assert describe_error({"message": "row not found"}) == "row not found"

    def test_nested_error_message(self):
        assert describe_error({"error": {"message": "upstream timeout"}}) == "upstream timeout"

    def test_json_fallback(self):
        assert describe_error({"status": 500}) == '{"status": 500}'

    def test_empty_object_uses_fallback(self):
        assert describe_error({}) == "An unknown error occurred."
        assert describe_error(None, fallback="Sync failed") == "Sync failed"

    def test_plain_exception(self):
        assert describe_error(RuntimeError("boom")) == "boom"


class TestErrorTypes:
    def test_persistence_error_fields(self):
        error = PersistenceError("insert failed", code="23505", details="duplicate")

        assert error.message == "insert failed"
        assert error.code == "23505"
        assert describe_error(error) == "duplicate"

    def test_lead_not_found_message(self):
        assert LeadNotFoundError("lead-1").message == "Lead not found: lead-1"
