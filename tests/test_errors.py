"""
Tests for the error taxonomy and the error normalizer.

Covers classification order, diagnostics per environment and
production redaction. No HTTP involved.
"""

import pytest

from recordapi.domain.records.errors import (
    ApiError,
    DuplicateKeyError,
    ErrorValue,
    FieldError,
    NotFoundError,
    SchemaValidationError,
    ValidationError,
    title_case,
)
from recordapi.shared.errors.normalizer import ErrorNormalizer, strip_punctuation
from recordapi.shared.errors.validation import RequestValidationFailure


class TestErrorValue:
    def test_rejects_invalid_status(self) -> None:
        with pytest.raises(ValueError):
            ErrorValue(message="bad", status=99)

    def test_with_details_returns_copy(self) -> None:
        value = ErrorValue(message="boom", status=500)
        annotated = value.with_details(path="/x", method=None)
        assert dict(annotated.details) == {"path": "/x"}
        assert dict(value.details) == {}
        assert annotated.timestamp == value.timestamp


class TestApiError:
    def test_defaults(self) -> None:
        error = NotFoundError()
        assert error.status == 404
        assert error.message == "Resource not found"

    def test_to_dict(self) -> None:
        error = ValidationError(errors=[FieldError("name", "required")])
        data = error.to_dict()["error"]
        assert data["name"] == "ValidationError"
        assert data["status"] == 400
        assert data["errors"] == [{"field": "name", "message": "required", "location": "body"}]


class TestDuplicateKeyError:
    def test_title_case(self) -> None:
        assert title_case("company_name") == "Company Name"
        assert title_case("SLUG") == "Slug"

    def test_one_error_per_field(self) -> None:
        error = DuplicateKeyError.for_fields(["name", "tax_id"])
        assert error.status == 400
        assert [e.message for e in error.errors] == [
            "Name already in use.",
            "Tax Id already in use.",
        ]


class TestClassify:
    def test_schema_failure(self) -> None:
        exc = SchemaValidationError({"name": "Company name cannot be empty"}, {"name": "value_error"})
        value = ErrorNormalizer("test").classify(exc)
        assert value.status == 400
        assert value.message == "Validation Error"
        assert value.errors[0].field == "name"
        assert value.errors[0].type == "value_error"

    def test_request_validation_failure(self) -> None:
        exc = RequestValidationFailure(
            [{"loc": ("body", "name"), "msg": "Field required!", "type": "missing", "code": "REQUIRED_FIELD"}]
        )
        value = ErrorNormalizer("test").classify(exc)
        assert value.status == 422
        error = value.errors[0]
        assert (error.field, error.location, error.message, error.code) == (
            "name",
            "body",
            "Field required",
            "REQUIRED_FIELD",
        )

    def test_nested_location_without_group(self) -> None:
        exc = RequestValidationFailure([{"loc": ("address", "city"), "msg": "bad"}], status_code=400)
        error = ErrorNormalizer("test").classify(exc).errors[0]
        assert error.field == "address.city"
        assert error.location == "body"

    def test_request_validation_keeps_suggestions_and_fix(self) -> None:
        exc = RequestValidationFailure(
            [
                {
                    "loc": ("body", "name"),
                    "msg": "Field required",
                    "type": "missing",
                    "suggestion": "This field is required",
                }
            ],
            metadata={"suggestedFix": "Missing required fields detected"},
        )
        normalizer = ErrorNormalizer("test")
        value = normalizer.classify(exc)
        assert value.errors[0].suggestion == "This field is required"
        body = normalizer.to_envelope(value)
        assert body["errors"][0]["suggestion"] == "This field is required"
        assert body["metadata"] == {"suggestedFix": "Missing required fields detected"}

    def test_api_error_passes_through(self) -> None:
        exc = NotFoundError()
        assert ErrorNormalizer("test").classify(exc) is exc.value

    def test_unknown_failure(self) -> None:
        value = ErrorNormalizer("test").classify(RuntimeError("db down"))
        assert value.status == 500
        assert value.message == "db down"

    def test_unknown_failure_without_message(self) -> None:
        value = ErrorNormalizer("test").classify(RuntimeError())
        assert value.message == "An error occurred"

    def test_status_attribute_is_kept(self) -> None:
        class Teapot(Exception):
            status_code = 418

        assert ErrorNormalizer("test").classify(Teapot("short and stout")).status == 418


class TestStripPunctuation:
    def test_removes_non_word_characters(self) -> None:
        assert strip_punctuation("Field 'name' is required!") == "Field name is required"


class TestEnvironments:
    def test_development_attaches_diagnostics(self) -> None:
        normalizer = ErrorNormalizer("development")
        value = normalizer.normalize(RuntimeError("boom"), path="/api/v1/x", method="GET")
        body = normalizer.to_envelope(value)
        assert body["message"] == "boom"
        assert body["type"] == "RuntimeError"
        assert body["path"] == "/api/v1/x"
        assert body["method"] == "GET"
        assert "RuntimeError: boom" in body["stack"]

    def test_production_redacts_server_errors(self) -> None:
        normalizer = ErrorNormalizer("production")
        value = normalizer.normalize(
            ApiError("secret detail", 503, errors=[FieldError("db", "down")]),
            path="/x",
            method="GET",
        )
        body = normalizer.to_envelope(value)
        assert body == {"success": False, "code": 503, "message": "Internal Server Error"}

    def test_production_keeps_client_errors(self) -> None:
        normalizer = ErrorNormalizer("production")
        value = normalizer.normalize(DuplicateKeyError.for_fields(["name"]))
        body = normalizer.to_envelope(value)
        assert body["code"] == 400
        assert body["errors"][0]["message"] == "Name already in use."
        assert not {"stack", "type", "path", "method"} & body.keys()

    def test_test_environment_adds_nothing(self) -> None:
        normalizer = ErrorNormalizer("test")
        body = normalizer.to_envelope(normalizer.normalize(RuntimeError("boom"), "/x", "GET"))
        assert body == {"success": False, "code": 500, "message": "boom"}


class TestConversions:
    def test_rate_limited(self) -> None:
        normalizer = ErrorNormalizer("development")
        value = normalizer.rate_limited({"limit": 2, "current": 2, "remaining": 0}, "/x", "GET")
        body = normalizer.to_envelope(value)
        assert body["code"] == 429
        assert body["message"] == "Too many requests"
        assert body["limit"] == 2
        assert body["remaining"] == 0

    def test_rate_limited_without_diagnostics(self) -> None:
        normalizer = ErrorNormalizer("production")
        body = normalizer.to_envelope(normalizer.rate_limited({"limit": 2}, "/x", "GET"))
        assert body == {"success": False, "code": 429, "message": "Too many requests"}

    def test_route_not_found(self) -> None:
        normalizer = ErrorNormalizer("development")
        body = normalizer.to_envelope(normalizer.route_not_found("/nope", "POST"))
        assert body["code"] == 404
        assert body["path"] == "/nope"
        assert body["method"] == "POST"
