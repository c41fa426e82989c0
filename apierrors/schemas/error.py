"""Error envelope schemas shared across API handlers."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from datetime import datetime
from datetime import timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import Field
from pydantic import SerializerFunctionWrapHandler
from pydantic import model_serializer

UNEXPECTED_ERROR_MESSAGE = "Unexpected error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Single field-level validation issue."""

    object: str
    field: str | None = None
    rejected_value: Any = None
    message: str

    @model_serializer(mode="wrap")
    def serialize_present_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if self.field is None:
            data.pop("field", None)
        # null is a legitimate rejected value; only drop it when never set
        if "rejected_value" not in self.model_fields_set:
            data.pop("rejected_value", None)
        return data


class ErrorResponse(BaseModel):
    """Error record returned for every failed request."""

    status: int
    timestamp: datetime = Field(default_factory=_utcnow)
    message: str
    debug_message: str | None = None
    details: list[ErrorDetail] | None = None

    @model_serializer(mode="wrap")
    def serialize_present_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in ("debug_message", "details"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @classmethod
    def from_exception(cls, status: int, exc: BaseException, message: str | None = None) -> ErrorResponse:
        """Build a record carrying the exception text as its debug message."""
        return cls(
            status=status,
            message=message or UNEXPECTED_ERROR_MESSAGE,
            debug_message=str(exc) or type(exc).__name__,
        )

    def add_validation_errors(self, errors: Iterable[ErrorDetail]) -> ErrorResponse:
        """Append field-level errors, keeping ``details`` absent while empty."""
        collected = list(self.details or [])
        collected.extend(errors)
        self.details = collected or None
        return self

    def to_response(self, headers: Mapping[str, str] | None = None) -> JSONResponse:
        """Serialize into a JSON response whose status matches the record."""
        return JSONResponse(
            status_code=self.status,
            content=self.model_dump(mode="json"),
            headers=dict(headers) if headers else None,
        )
