"""Unit tests for error classification utilities."""

import pytest
from pydantic import ValidationError

from src.core.db_client import DatabaseError, RecordNotFoundError, UniqueConstraintError
from src.core.errors import (
    ConflictError,
    ErrorCode,
    ErrorSeverity,
    MismatchError,
    NonReversibleError,
    UnauthorizedError,
    UnavailableError,
    classify_error_with_response,
)
from src.domain.create_models import TaskCreate


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    """Tests for classify_error_with_response."""

    def test_engine_errors_keep_their_message(self):
        response = classify_error_with_response(UnavailableError("Task not available"))

        assert response.code == ErrorCode.ERR_UNAVAILABLE
        assert response.message == "Task not available"
        assert response.suggestion

    def test_engine_error_code_override(self):
        error = UnavailableError("Task already completed", code=ErrorCode.ERR_ALREADY_COMPLETED)

        assert classify_error_with_response(error).code == ErrorCode.ERR_ALREADY_COMPLETED

    def test_default_messages(self):
        assert classify_error_with_response(UnauthorizedError()).message == "Unauthorized"
        assert classify_error_with_response(MismatchError()).message == "Mismatch"
        assert classify_error_with_response(NonReversibleError()).message == "Cannot reset bonus or fine entries"

    def test_conflict_error(self):
        response = classify_error_with_response(ConflictError("Task already taken"))

        assert response.code == ErrorCode.ERR_ALREADY_TAKEN

    def test_unique_violation_passes_store_message_through(self):
        error = UniqueConstraintError(
            "Unique constraint violated in members: UNIQUE constraint failed: members.user_id"
        )

        response = classify_error_with_response(error)

        assert response.code == ErrorCode.ERR_STORAGE
        assert response.message == str(error)
        assert "already taken" not in response.message

    def test_storage_error_passes_message_through(self):
        response = classify_error_with_response(DatabaseError("disk I/O error"))

        assert response.code == ErrorCode.ERR_STORAGE
        assert response.message == "disk I/O error"
        assert response.severity == ErrorSeverity.HIGH

    def test_missing_record(self):
        response = classify_error_with_response(RecordNotFoundError("Record not found in tasks: 9"))

        assert response.code == ErrorCode.ERR_NOT_FOUND

    def test_validation_error_is_invalid_input(self):
        with pytest.raises(ValidationError) as exc_info:
            TaskCreate(title="")

        response = classify_error_with_response(exc_info.value)

        assert response.code == ErrorCode.ERR_INVALID_INPUT
        assert "Title is required" in response.message

    def test_unknown_exception(self):
        response = classify_error_with_response(RuntimeError("boom"))

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert "boom" not in response.message
