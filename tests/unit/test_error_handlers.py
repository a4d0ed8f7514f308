"""Unit tests for the FastAPI error set handlers."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest
from starlette.exceptions import HTTPException as StarletteHTTPException

from errorset import bad_request
from errorset import message
from errorset.api.handlers import build_error_response
from errorset.api.handlers import register_error_handlers
from errorset.api.handlers import wants_xml


def _build_client() -> TestClient:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/query")
    def query(limit: int) -> dict[str, int]:
        return {"limit": limit}

    @app.get("/form")
    def form() -> None:
        errs = bad_request()
        errs.add_meta("Invalid run payload")
        errs.set_field("status", "Unsupported value %r", "paused")
        raise errs

    @app.get("/uncoded")
    def uncoded() -> None:
        raise message("Something is off")

    @app.get("/http")
    def http_error() -> None:
        raise StarletteHTTPException(status_code=404, detail="Client not found")

    @app.get("/http-payload")
    def http_payload() -> None:
        raise StarletteHTTPException(status_code=409, detail={"meta": ["Duplicate"], "fields": {"name": "taken"}})

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


def test_raised_error_set_is_returned_as_json() -> None:
    client = _build_client()

    response = client.get("/form")

    assert response.status_code == 400
    assert response.json() == {
        "code": 400,
        "meta": ["Invalid run payload"],
        "fields": {"status": "Unsupported value 'paused'"},
    }


def test_uncoded_error_set_uses_default_status() -> None:
    client = _build_client()

    response = client.get("/uncoded")

    assert response.status_code == 400
    assert response.json() == {"meta": ["Something is off"], "fields": {}}


def test_default_status_is_configurable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ERRORSET_DEFAULT_STATUS_CODE", "422")
    client = _build_client()

    response = client.get("/uncoded")

    assert response.status_code == 422


def test_request_validation_errors_become_field_errors() -> None:
    client = _build_client()

    response = client.get("/query")

    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == 400
    assert payload["meta"] == []
    assert list(payload["fields"]) == ["limit"]


def test_http_errors_carry_status_and_detail() -> None:
    client = _build_client()

    response = client.get("/http")

    assert response.status_code == 404
    assert response.json() == {"code": 404, "meta": ["Client not found"], "fields": {}}


def test_http_error_payload_details_are_decoded() -> None:
    client = _build_client()

    response = client.get("/http-payload")

    assert response.status_code == 409
    assert response.json() == {"code": 409, "meta": ["Duplicate"], "fields": {"name": "taken"}}


def test_unknown_routes_use_status_phrase() -> None:
    client = _build_client()

    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {"code": 404, "meta": ["Not Found"], "fields": {}}


def test_unhandled_errors_do_not_leak_details(caplog: pytest.LogCaptureFixture) -> None:
    client = _build_client()

    with caplog.at_level(logging.ERROR, logger="errorset.api.handlers"):
        response = client.get("/crash")

    assert response.status_code == 500
    assert response.json() == {"code": 500, "meta": ["Internal server error"], "fields": {}}
    assert "hunter2" not in response.text
    assert "Unhandled exception while serving GET /crash" in caplog.text


def test_build_error_response_prefers_explicit_status() -> None:
    errs = bad_request()
    errs.add_meta("Teapot")

    response = build_error_response(errs, as_xml=True, status_code=418)

    assert response.status_code == 418
    assert response.media_type == "application/xml"
    assert response.body == b"<Error><Code>400</Code><Metas><Meta>Teapot</Meta></Metas><Fields></Fields></Error>"


@pytest.mark.parametrize(
    ("accept", "expected"),
    [
        (None, False),
        ("", False),
        ("application/json", False),
        ("application/xml", True),
        ("text/xml; charset=utf-8", True),
        ("text/html, application/xml;q=0.9, */*;q=0.8", True),
        ("application/json, application/xml", False),
        ("*/*", False),
    ],
)
def test_wants_xml(accept: str | None, expected: bool) -> None:
    assert wants_xml(accept) is expected


def test_http_error_detail_is_stored_literally() -> None:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/progress")
    def progress() -> None:
        raise StarletteHTTPException(status_code=409, detail="Upload is 100%% %s")

    response = TestClient(app).get("/progress")

    assert response.json() == {"code": 409, "meta": ["Upload is 100%% %s"], "fields": {}}


def test_error_set_without_xml_form_falls_back_to_json(caplog: pytest.LogCaptureFixture) -> None:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/rows")
    def rows() -> None:
        errs = bad_request()
        errs.set_field("rows[0]", "Missing value")
        raise errs

    with caplog.at_level(logging.WARNING, logger="errorset.api.handlers"):
        response = TestClient(app).get("/rows", headers={"Accept": "application/xml"})

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"code": 400, "meta": [], "fields": {"rows[0]": "Missing value"}}
    assert "Falling back to JSON" in caplog.text
