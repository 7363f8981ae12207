"""
Tests for error categories and error responses.
"""

import pytest

from quickdrop.domain.errors import (
    ERROR_MESSAGES,
    ApplicationError,
    DomainError,
    ErrorCategory,
    ServiceShuttingDownError,
    StorageFullError,
    StorageUnavailableError,
    TokenCollisionError,
    create_error_response,
)


class TestDomainErrors:
    def test_wraps_original_error(self):
        cause = OSError("disk gone")
        error = StorageUnavailableError("write failed", cause)
        assert error.original_error is cause
        assert str(error) == "write failed"

    @pytest.mark.parametrize("error_class", [
        StorageFullError, StorageUnavailableError, TokenCollisionError,
    ])
    def test_storage_errors_are_domain_errors(self, error_class):
        assert issubclass(error_class, DomainError)

    def test_shutdown_is_an_unavailability(self):
        assert issubclass(ServiceShuttingDownError, StorageUnavailableError)


class TestErrorResponses:
    def test_every_category_has_messages(self):
        for category in ErrorCategory:
            assert set(ERROR_MESSAGES[category]) == {"title", "message", "action"}

    def test_create_error_response(self):
        body, status = create_error_response(ErrorCategory.STORAGE_FULL, "disk full", status_code=507)
        assert status == 507
        assert body["error"] == "storage_full"
        assert body["title"] == "Storage Full"
        assert "disk full" not in body.values()

    def test_application_error_to_dict(self):
        error = ApplicationError(ErrorCategory.NOT_FOUND, "purged")
        assert error.to_dict()["message"] == ERROR_MESSAGES[ErrorCategory.NOT_FOUND]["message"]
        assert error.technical_message == "purged"
