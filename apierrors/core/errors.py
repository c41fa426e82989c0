"""Exception-to-response mapping and exception handler registration."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
import logging
from typing import Any

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.exceptions import ResponseValidationError
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.exc import NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from apierrors.core.config import ErrorHandlingSettings
from apierrors.core.config import get_error_settings
from apierrors.schemas.error import ErrorDetail
from apierrors.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)

VALIDATION_ERROR_MESSAGE = "Validation error"
MALFORMED_JSON_MESSAGE = "Malformed JSON request"
NOT_WRITABLE_MESSAGE = "Error writing JSON output"
METHOD_NOT_ALLOWED_MESSAGE = "Specified HTTP Method Is Not Allowed"
ENTITY_NOT_FOUND_MESSAGE = "The entity with the specified ID was not found in the system."
INTERNAL_ERROR_MESSAGE = "Internal error occurred"

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})
_PARAMETER_SOURCES = frozenset({"query", "path", "header", "cookie"})
_BODILESS_STATUSES = frozenset({status.HTTP_204_NO_CONTENT, status.HTTP_304_NOT_MODIFIED})

# pydantic error type -> name of the type the value failed to convert to
_CONVERSION_TARGETS: dict[str, str | None] = {
    "int_parsing": "int",
    "int_from_float": "int",
    "float_parsing": "float",
    "bool_parsing": "bool",
    "decimal_parsing": "Decimal",
    "uuid_parsing": "UUID",
    "date_parsing": "date",
    "date_from_datetime_parsing": "date",
    "datetime_parsing": "datetime",
    "datetime_from_date_parsing": "datetime",
    "time_parsing": "time",
    "time_delta_parsing": "timedelta",
    "enum": None,
}


class APIError(Exception):
    """Base application exception for explicit API error responses."""

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        debug_message: str | None = None,
        details: Sequence[ErrorDetail] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.debug_message = debug_message
        self.details = list(details) if details else None


class EntityNotFoundError(APIError):
    """Raised when a requested entity does not exist."""

    def __init__(self, *, detail: str = "Entity not found") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message=ENTITY_NOT_FOUND_MESSAGE,
            debug_message=detail,
        )


class EntityExistsError(APIError):
    """Raised when an entity to be created already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, message=message)


class MediaTypeNotSupportedError(APIError):
    """Raised when the request body uses a content type the endpoint does not accept."""

    def __init__(self, content_type: str, supported_media_types: Sequence[str]) -> None:
        self.content_type = content_type
        self.supported_media_types = list(supported_media_types)
        message = f"{content_type} media type is not supported. Supported media types are " + ", ".join(
            self.supported_media_types
        )
        super().__init__(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            message=message,
            debug_message=f"Content-Type '{content_type}' is not supported",
        )


class ConstraintViolationError(APIError):
    """Raised by application code when values fail programmatic validation."""

    def __init__(self, violations: Sequence[ErrorDetail]) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=VALIDATION_ERROR_MESSAGE,
            details=violations,
        )


def _settings_for(request: Request) -> ErrorHandlingSettings:
    settings = getattr(request.app.state, "error_settings", None)
    if isinstance(settings, ErrorHandlingSettings):
        return settings
    return get_error_settings()


def _log_exception(request: Request, exc: BaseException) -> None:
    logger.error(
        "An exception occurred while handling %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )


def _build_error_response(
    request: Request,
    error: ErrorResponse,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    if not _settings_for(request).include_debug_message:
        error.debug_message = None
    return error.to_response(headers=headers)


def _join_location(parts: Sequence[Any]) -> str | None:
    return ".".join(str(part) for part in parts) or None


def _encode_rejected_value(value: Any) -> Any:
    try:
        return jsonable_encoder(value)
    except (TypeError, ValueError):
        return repr(value)


def _validation_details(
    issues: Sequence[Mapping[str, Any]],
    *,
    default_object: str,
    located: bool = True,
) -> list[ErrorDetail]:
    """Convert pydantic issues into details.

    With ``located`` the first ``loc`` element names the request source
    (``body``, ``query``, ...) and only that element is stripped.
    """
    details: list[ErrorDetail] = []
    for issue in issues:
        location = tuple(issue.get("loc", ()))
        source = default_object
        if located and location and location[0] in _LOCATION_PREFIXES:
            source, location = str(location[0]), location[1:]

        values: dict[str, Any] = {
            "object": source,
            "field": _join_location(location),
            "message": str(issue.get("msg", "Invalid value")),
        }
        if issue.get("type") != "missing":
            values["rejected_value"] = _encode_rejected_value(issue.get("input"))
        details.append(ErrorDetail(**values))
    return details


def _validation_error(
    issues: Sequence[Mapping[str, Any]],
    *,
    default_object: str,
    located: bool = True,
) -> ErrorResponse:
    error = ErrorResponse(status=status.HTTP_400_BAD_REQUEST, message=VALIDATION_ERROR_MESSAGE)
    return error.add_validation_errors(
        _validation_details(issues, default_object=default_object, located=located)
    )


def _parameter_error(issue: Mapping[str, Any]) -> ErrorResponse | None:
    location = tuple(issue.get("loc", ()))
    if len(location) < 2 or location[0] not in _PARAMETER_SOURCES:
        return None

    source = location[0]
    name = _join_location(location[1:])
    error_type = issue.get("type")

    if error_type == "missing" and source != "path":
        return ErrorResponse(
            status=status.HTTP_400_BAD_REQUEST,
            message=f"{name} parameter is missing",
            debug_message=f"Required {source} parameter '{name}' is not present",
        )

    if error_type in _CONVERSION_TARGETS:
        target = _CONVERSION_TARGETS[error_type] or "unknown"
        return ErrorResponse(
            status=status.HTTP_400_BAD_REQUEST,
            message=(
                f"The parameter '{name}' of value '{issue.get('input')}' could not be converted to type '{target}'"
            ),
            debug_message=str(issue.get("msg", "")) or None,
        )

    return None


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Translate request parsing and validation failures."""
    _log_exception(request, exc)
    issues = list(exc.errors())

    malformed = next((issue for issue in issues if issue.get("type") == "json_invalid"), None)
    if malformed is not None:
        context = malformed.get("ctx") or {}
        return _build_error_response(
            request,
            ErrorResponse(
                status=status.HTTP_400_BAD_REQUEST,
                message=MALFORMED_JSON_MESSAGE,
                debug_message=str(context.get("error", malformed.get("msg", ""))) or None,
            ),
        )

    if issues:
        parameter_error = _parameter_error(issues[0])
        if parameter_error is not None:
            return _build_error_response(request, parameter_error)

    return _build_error_response(request, _validation_error(issues, default_object="request"))


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError) -> JSONResponse:
    """Report responses that could not be serialized against their declared model."""
    _log_exception(request, exc)
    return _build_error_response(
        request,
        ErrorResponse.from_exception(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, NOT_WRITABLE_MESSAGE),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Translate routing failures and application-raised HTTP exceptions."""
    _log_exception(request, exc)

    if exc.status_code < 200 or exc.status_code in _BODILESS_STATUSES:
        return Response(status_code=exc.status_code, headers=exc.headers)

    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        error = ErrorResponse(
            status=status.HTTP_405_METHOD_NOT_ALLOWED,
            message=METHOD_NOT_ALLOWED_MESSAGE,
            debug_message=f"Request method '{request.method}' is not supported",
        )
        return _build_error_response(request, error, headers=exc.headers)

    if exc.status_code == status.HTTP_404_NOT_FOUND and "endpoint" not in request.scope:
        error = ErrorResponse(
            status=status.HTTP_400_BAD_REQUEST,
            message=f"Could not find the {request.method} method for URL {request.url.path}",
            debug_message=f"No endpoint {request.method} {request.url.path}.",
        )
        return _build_error_response(request, error)

    detail = exc.detail
    debug_message: str | None = None
    if isinstance(detail, dict) and "message" in detail:
        message = str(detail["message"])
        if detail.get("debug_message") is not None:
            debug_message = str(detail["debug_message"])
    elif isinstance(detail, str) and detail:
        message = detail
    else:
        message = "Request failed"

    error = ErrorResponse(status=exc.status_code, message=message, debug_message=debug_message)
    return _build_error_response(request, error, headers=exc.headers)


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Translate model validation raised from application code."""
    _log_exception(request, exc)
    return _build_error_response(request, _validation_error(exc.errors(), default_object=exc.title, located=False))


async def no_result_found_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    """Translate ORM lookups that expected exactly one row."""
    _log_exception(request, exc)
    return _build_error_response(
        request,
        ErrorResponse(
            status=status.HTTP_404_NOT_FOUND,
            message=ENTITY_NOT_FOUND_MESSAGE,
            debug_message=str(exc) or None,
        ),
    )


async def database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    """Translate driver errors, treating integrity violations as conflicts."""
    _log_exception(request, exc)

    if isinstance(exc, IntegrityError):
        message = str(exc.orig) if exc.orig is not None else str(exc)
        return _build_error_response(
            request,
            ErrorResponse.from_exception(status.HTTP_409_CONFLICT, exc, message),
        )

    return _build_error_response(
        request,
        ErrorResponse.from_exception(status.HTTP_500_INTERNAL_SERVER_ERROR, exc),
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Return explicit application errors in the shared envelope."""
    _log_exception(request, exc)
    error = ErrorResponse(
        status=exc.status_code,
        message=exc.message,
        debug_message=exc.debug_message,
    )
    if exc.details:
        error.add_validation_errors(exc.details)
    return _build_error_response(request, error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for anything without a dedicated mapping."""
    _log_exception(request, exc)
    settings = _settings_for(request)
    return _build_error_response(
        request,
        ErrorResponse.from_exception(settings.unhandled_status_code, exc, INTERNAL_ERROR_MESSAGE),
    )


def register_error_handlers(app: FastAPI, settings: ErrorHandlingSettings | None = None) -> None:
    """Attach all error handlers to a FastAPI app instance."""

    if settings is not None:
        app.state.error_settings = settings

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(NoResultFound, no_result_found_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
