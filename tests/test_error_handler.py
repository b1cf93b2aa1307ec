"""
Tests for error handling utilities
"""

import pytest
from tasktree.utils.error_handler import (
    ValidationError,
    NotFoundError,
    AuthenticationError,
    InvariantViolation,
    handle_error,
)


@pytest.mark.parametrize("error, status_code, error_code", [
    (ValidationError("Title is required"), 400, "validation_error"),
    (NotFoundError("Task 3 not found"), 404, "not_found"),
    (AuthenticationError("Authentication required. Please log in."), 401, "unauthorized"),
])
def test_expected_errors_keep_their_message(error, status_code, error_code):
    code, response = handle_error(error)
    assert code == status_code
    assert response.error == error_code
    assert response.message == error.message


def test_details_are_passed_through():
    _, response = handle_error(ValidationError("Invalid order array", details={"expected_ids": [1, 2]}))
    assert response.details == {"expected_ids": [1, 2]}


@pytest.mark.parametrize("error", [
    RuntimeError("database password is hunter2"),
    InvariantViolation("task 4: dangling parent 9"),
])
def test_unexpected_errors_hide_internals(error):
    code, response = handle_error(error)
    assert code == 500
    assert response.error == "internal_error"
    assert "hunter2" not in response.message
    assert "dangling" not in response.message
    assert response.details is None
