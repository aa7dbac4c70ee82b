# ruff: noqa

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, OperationalError

from taskboard.core import error_handling
from taskboard.core.error_handling import REQUEST_ID_HEADER, install_error_handling
from taskboard.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationFailedError,
)
from taskboard.db.transactions import atomic


def _app() -> FastAPI:
    app = FastAPI()
    install_error_handling(app)
    return app


def test_request_validation_error_includes_request_id():
    app = _app()

    @app.get("/needs-int")
    def needs_int(limit: int) -> dict[str, int]:
        return {"limit": limit}

    client = TestClient(app)
    resp = client.get("/needs-int?limit=abc")

    assert resp.status_code == 422
    body = resp.json()
    assert isinstance(body.get("detail"), list)
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_request_validation_error_handles_bytes_input_without_500():
    class Payload(BaseModel):
        content: str

    app = _app()

    @app.put("/needs-object")
    def needs_object(payload: Payload) -> dict[str, str]:
        return {"content": payload.content}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.put(
        "/needs-object",
        content=b"plain-text-body",
        headers={"content-type": "text/plain"},
    )

    assert resp.status_code == 422
    assert isinstance(resp.json().get("detail"), list)


def test_plain_http_exception_has_no_code():
    app = _app()

    @app.get("/nope")
    def nope() -> None:
        raise HTTPException(status_code=404, detail="nope")

    resp = TestClient(app).get("/nope")

    assert resp.status_code == 404
    body = resp.json()
    assert body["detail"] == "nope"
    assert "code" not in body
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (NotFoundError("Task not found"), 404, "not_found"),
        (ForbiddenError(), 403, "forbidden"),
        (ConflictError("User is already assigned to this task"), 409, "conflict"),
        (ValidationFailedError("Cannot move task to a different board"), 400, "validation_error"),
        (InternalError(), 500, "internal_error"),
    ],
)
def test_domain_errors_map_to_status_and_code(error, status_code, code):
    app = _app()

    @app.get("/fail")
    def fail() -> None:
        raise error

    resp = TestClient(app).get("/fail")

    assert resp.status_code == status_code
    body = resp.json()
    assert body["code"] == code
    assert body["detail"] == error.detail


def test_unhandled_exception_returns_500_with_request_id():
    app = _app()

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["detail"] == "Internal Server Error"
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_response_validation_error_returns_500_with_request_id():
    class Out(BaseModel):
        name: str = Field(min_length=1)

    app = _app()

    @app.get("/bad", response_model=Out)
    def bad() -> dict[str, str]:
        return {"name": ""}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/bad")

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Internal Server Error"


def test_client_provided_request_id_is_preserved():
    app = _app()

    @app.get("/needs-int")
    def needs_int(limit: int) -> dict[str, int]:
        return {"limit": limit}

    resp = TestClient(app).get("/needs-int?limit=abc", headers={REQUEST_ID_HEADER: "  req-123  "})

    assert resp.json()["request_id"] == "req-123"
    assert resp.headers.get(REQUEST_ID_HEADER) == "req-123"


def test_slow_request_emits_slow_log(monkeypatch: pytest.MonkeyPatch) -> None:
    app = _app()
    seen: list[str] = []

    @app.get("/ok")
    def ok() -> dict[str, bool]:
        return {"ok": True}

    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 0.0001)
    monkeypatch.setattr(error_handling.logger, "warning", lambda msg, **_kw: seen.append(msg))

    TestClient(app).get("/ok")

    assert seen == ["http.request.slow"]


class _FakeSession:
    def __init__(self, commit_error: Exception | None = None) -> None:
        self.commit_error = commit_error
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True


@pytest.mark.asyncio
async def test_atomic_commits_on_success():
    session = _FakeSession()
    async with atomic(session):
        pass
    assert session.committed
    assert not session.rolled_back


@pytest.mark.asyncio
async def test_atomic_maps_integrity_error_to_conflict():
    session = _FakeSession(IntegrityError("INSERT", {}, Exception("unique")))
    with pytest.raises(ConflictError):
        async with atomic(session):
            pass
    assert session.rolled_back


@pytest.mark.asyncio
async def test_atomic_hides_driver_errors():
    session = _FakeSession(OperationalError("COMMIT", {}, Exception("disk I/O error")))
    with pytest.raises(InternalError) as excinfo:
        async with atomic(session):
            pass
    assert "disk" not in str(excinfo.value.detail)
    assert session.rolled_back


@pytest.mark.asyncio
async def test_atomic_rolls_back_and_reraises_domain_errors():
    session = _FakeSession()
    with pytest.raises(NotFoundError):
        async with atomic(session):
            raise NotFoundError("List not found")
    assert session.rolled_back
    assert not session.committed
