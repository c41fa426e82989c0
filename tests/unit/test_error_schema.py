"""Unit tests for the error record schema."""

from __future__ import annotations

import json

from apierrors.schemas.error import ErrorDetail
from apierrors.schemas.error import ErrorResponse


def test_timestamp_is_timezone_aware() -> None:
    error = ErrorResponse(status=400, message="Validation error")

    assert error.timestamp.tzinfo is not None
    assert error.timestamp.utcoffset().total_seconds() == 0


def test_from_exception_defaults_to_unexpected_error() -> None:
    error = ErrorResponse.from_exception(500, ValueError("bad value"))

    assert error.message == "Unexpected error"
    assert error.debug_message == "bad value"


def test_from_exception_falls_back_to_exception_name() -> None:
    error = ErrorResponse.from_exception(500, KeyError(), "Internal error occurred")

    assert error.message == "Internal error occurred"
    assert error.debug_message == "KeyError"


def test_adding_no_validation_errors_keeps_details_absent() -> None:
    error = ErrorResponse(status=400, message="Validation error").add_validation_errors([])

    assert error.details is None


def test_validation_errors_accumulate() -> None:
    error = ErrorResponse(status=400, message="Validation error")
    error.add_validation_errors([ErrorDetail(object="body", field="name", message="Field required")])
    error.add_validation_errors([ErrorDetail(object="body", message="Value error, passwords do not match")])

    assert [detail.field for detail in error.details] == ["name", None]


def test_response_omits_empty_fields_and_matches_status() -> None:
    response = ErrorResponse(status=409, message="Item already exists").to_response(headers={"X-Trace": "abc"})

    assert response.status_code == 409
    assert response.headers["x-trace"] == "abc"
    body = json.loads(response.body)
    assert set(body) == {"status", "timestamp", "message"}
    assert body["status"] == 409


def test_explicit_null_rejected_value_is_kept() -> None:
    error = ErrorResponse(status=400, message="Validation error").add_validation_errors(
        [
            ErrorDetail(object="body", field="query", rejected_value=None, message="Input should be a valid string"),
            ErrorDetail(object="body", field="name", message="Field required"),
        ]
    )

    body = json.loads(error.to_response().body)

    assert body["details"] == [
        {"object": "body", "field": "query", "rejected_value": None, "message": "Input should be a valid string"},
        {"object": "body", "field": "name", "message": "Field required"},
    ]
