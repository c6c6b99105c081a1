"""normalize_error: classification and message extraction priority."""
from __future__ import annotations

from typing import Any

import httpx
import pytest

from dining_client.client import decode_body, extract_error_message, normalize_error


def _status_error(status_code: int, *, json: Any = None, text: str | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://backend.test/api/meals")
    if text is not None:
        response = httpx.Response(status_code, text=text, request=request)
    elif json is not None:
        response = httpx.Response(status_code, json=json, request=request)
    else:
        response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestServerErrors:
    def test_errors_list_is_joined(self) -> None:
        result = normalize_error(_status_error(422, json={"errors": ["a required", "b invalid"]}))
        assert result.success is False
        assert result.message == "a required, b invalid"
        assert result.status == "error"

    def test_plain_text_body_is_the_message(self) -> None:
        result = normalize_error(_status_error(500, text="Plain text error"))
        assert result.message == "Plain text error"
        assert result.status == "error"
        assert result.error == "Internal Server Error"

    def test_empty_object_synthesizes_http_message(self) -> None:
        result = normalize_error(_status_error(404, json={}))
        assert result.message == "HTTP 404: Not Found"
        assert result.error == "Not Found"

    def test_empty_body_synthesizes_http_message(self) -> None:
        result = normalize_error(_status_error(502))
        assert result.message == "HTTP 502: Bad Gateway"

    def test_message_wins_over_error_and_errors(self) -> None:
        body = {"message": "Email taken", "error": "Conflict", "errors": ["x"]}
        result = normalize_error(_status_error(409, json=body))
        assert result.message == "Email taken"
        assert result.error == "Conflict"

    def test_error_field_is_used_without_message(self) -> None:
        result = normalize_error(_status_error(400, json={"error": "Bad payload"}))
        assert result.message == "Bad payload"
        assert result.error == "Bad payload"

    def test_structured_errors_use_message_or_msg(self) -> None:
        body = {"errors": [{"message": "name required"}, {"msg": "price invalid"}, {"field": "x"}]}
        result = normalize_error(_status_error(422, json=body))
        assert result.message == "name required, price invalid, {'field': 'x'}"

    def test_body_status_is_carried_over(self) -> None:
        result = normalize_error(_status_error(403, json={"status": "fail", "message": "Forbidden"}))
        assert result.status == "fail"


class TestOtherFailures:
    def test_request_without_response_is_network_error(self) -> None:
        request = httpx.Request("GET", "http://backend.test/api/meals")
        result = normalize_error(httpx.ConnectError("refused", request=request))
        assert result.status == "network_error"
        assert result.message.startswith("Network error")

    def test_unexpected_exception_uses_its_text(self) -> None:
        result = normalize_error(ValueError("bad header value"))
        assert result.status == "unknown_error"
        assert result.message == "bad header value"
        assert result.error == "bad header value"

    def test_unexpected_exception_without_text_gets_default(self) -> None:
        result = normalize_error(RuntimeError())
        assert result.message == "An unexpected error occurred."
        assert result.error == "Unknown error"


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ("", "HTTP 418: I'm a teapot"),
        ({"message": ""}, "HTTP 418: I'm a teapot"),
        ({"errors": []}, "HTTP 418: I'm a teapot"),
        ({"errors": "not a list"}, "HTTP 418: I'm a teapot"),
    ],
)
def test_empty_candidates_fall_through(body: Any, expected: str) -> None:
    assert extract_error_message(body, 418, "I'm a teapot") == expected


def test_decode_body_falls_back_to_text() -> None:
    assert decode_body(httpx.Response(200, text="<html>")) == "<html>"
    assert decode_body(httpx.Response(200)) == {}
    assert decode_body(httpx.Response(200, json=[1, 2])) == [1, 2]
