"""
Tests for the request validator.

Mounts a throwaway route using ``validate_request`` with a context
schema, so path parameters and headers are checked before the body.
"""

from typing import Any

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from recordapi.interfaces.validation import suggested_fix, validate_request
from recordapi.shared.errors.handlers import register_error_handlers
from recordapi.shared.errors.normalizer import ErrorNormalizer


class Note(BaseModel):
    title: str = Field(min_length=1)


class NoteContext(BaseModel):
    note_id: str = Field(pattern=r"^\d+$")
    api_version: str = Field(alias="x-api-version")


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_error_handlers(app, ErrorNormalizer("test"))

    @app.put("/notes/{note_id}")
    async def put_note(
        note_id: str, payload: dict[str, Any] = Depends(validate_request(Note, NoteContext))
    ) -> dict[str, Any]:
        return payload

    return TestClient(app, raise_server_exceptions=False)


class TestContextSchema:
    def test_valid_context_and_body(self, client) -> None:
        response = client.put(
            "/notes/12", json={"title": "Hi", "extra": 1}, headers={"X-Api-Version": "2"}
        )
        assert response.status_code == 200
        assert response.json() == {"title": "Hi"}

    def test_bad_path_parameter(self, client) -> None:
        response = client.put("/notes/abc", json={"title": "Hi"}, headers={"X-Api-Version": "2"})
        assert response.status_code == 422
        error = response.json()["errors"][0]
        assert (error["field"], error["location"], error["code"]) == (
            "note_id",
            "path",
            "INVALID_FORMAT",
        )

    def test_missing_header_checked_before_body(self, client) -> None:
        response = client.put("/notes/12", json={})
        assert response.status_code == 422
        body = response.json()
        assert [(e["field"], e["location"]) for e in body["errors"]] == [
            ("x-api-version", "header")
        ]
        assert body["metadata"] == {"suggestedFix": "Missing required fields detected"}


class TestSuggestedFix:
    def test_missing_fields_take_priority(self) -> None:
        details = [{"type": "string_too_long"}, {"type": "missing"}]
        assert suggested_fix(details) == "Missing required fields detected"

    def test_text_issues(self) -> None:
        assert suggested_fix([{"type": "string_too_long"}]) == "Text format issues detected"

    def test_anything_else(self) -> None:
        assert suggested_fix([{"type": "int_parsing"}]) == "Review all highlighted fields"
