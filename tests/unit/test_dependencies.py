"""Unit tests for media type enforcement."""

from __future__ import annotations

import pytest
from fastapi import Depends
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apierrors.api.dependencies import require_media_type
from apierrors.core.errors import MediaTypeNotSupportedError
from apierrors.core.errors import register_error_handlers


def _build_client() -> TestClient:
    app = FastAPI()
    register_error_handlers(app)

    @app.api_route(
        "/upload",
        methods=["GET", "POST"],
        dependencies=[Depends(require_media_type("application/json", "application/merge-patch+json"))],
    )
    def upload() -> dict[str, str]:
        return {"status": "accepted"}

    return TestClient(app)


def test_requests_without_body_are_accepted() -> None:
    client = _build_client()

    response = client.get("/upload")

    assert response.status_code == 200


def test_supported_media_type_with_parameters_is_accepted() -> None:
    client = _build_client()

    response = client.post("/upload", content=b"{}", headers={"content-type": "Application/JSON; charset=utf-8"})

    assert response.status_code == 200


def test_unsupported_media_type_is_rejected() -> None:
    client = _build_client()

    response = client.post("/upload", content=b"<item/>", headers={"content-type": "application/xml"})

    assert response.status_code == 415
    assert response.json()["message"] == (
        "application/xml media type is not supported. "
        "Supported media types are application/json, application/merge-patch+json"
    )


def test_body_without_content_type_is_treated_as_octet_stream() -> None:
    client = _build_client()

    response = client.post("/upload", content=b"raw bytes")

    assert response.status_code == 415
    assert response.json()["message"].startswith("application/octet-stream media type is not supported")


def test_error_keeps_requested_and_supported_types() -> None:
    exc = MediaTypeNotSupportedError("text/csv", ["application/json"])

    assert exc.status_code == 415
    assert exc.content_type == "text/csv"
    assert exc.supported_media_types == ["application/json"]


def test_at_least_one_media_type_is_required() -> None:
    with pytest.raises(ValueError):
        require_media_type()
