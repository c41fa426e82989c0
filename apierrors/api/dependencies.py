"""Request dependencies that raise translated errors."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from apierrors.core.errors import MediaTypeNotSupportedError

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    length = request.headers.get("content-length")
    return length is not None and length.strip() not in ("", "0")


def require_media_type(*supported: str) -> Callable[[Request], None]:
    """Build a dependency rejecting request bodies outside ``supported`` media types."""
    if not supported:
        raise ValueError("at least one supported media type is required")

    accepted = tuple(media_type.lower() for media_type in supported)

    def check_media_type(request: Request) -> None:
        raw = request.headers.get("content-type")
        if raw is None:
            if not _has_body(request):
                return
            content_type = DEFAULT_MEDIA_TYPE
        else:
            content_type = raw.split(";", 1)[0].strip().lower()

        if content_type not in accepted:
            raise MediaTypeNotSupportedError(content_type, supported)

    return check_media_type
