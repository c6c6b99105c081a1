"""Async HTTP client for the Custom Dining backend.

Every verb returns an `ApiResult` and never raises. Two httpx event hooks
wrap each exchange:

- request hook: attaches `Authorization: Bearer <token>` read fresh from the
  credential provider and logs the call. If the provider fails, the request
  goes out unauthenticated (fail open).
- response hook: logs status and payload; on 401 purges stored credentials,
  then lets the error flow back to the verb wrapper unchanged.

POST is the only verb that retries, and only on HTTP 503 (backend cold start).
"""
from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from .config import API_TIMEOUT_S, DEFAULT_HEADERS, MAX_RETRIES, RETRY_BACKOFF_S, get_api_url
from .credentials import CredentialProvider
from .logging_conf import get_logger, redact
from .types import (
    STATUS_ERROR,
    STATUS_NETWORK_ERROR,
    STATUS_SUCCESS,
    STATUS_UNKNOWN_ERROR,
    ApiResult,
)

__all__ = ["ApiClient", "normalize_error", "extract_error_message", "decode_body"]

logger = get_logger("dining_client.api")

Sleep = Callable[[float], Awaitable[None]]
Params = Mapping[str, Any] | None

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
UNKNOWN_ERROR_MESSAGE = "An unexpected error occurred."


def decode_body(response: httpx.Response) -> Any:
    """Return the response body as JSON, falling back to text.

    An empty body decodes to `{}` so successful calls always carry data.
    """
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


def extract_error_message(body: Any, status_code: int, reason: str) -> str:
    """Pick the most useful human-readable message out of an error body.

    Order: plain-string body, `message`, `error`, `errors` list, then a
    synthesized `HTTP <status>: <reason>`.
    """
    if isinstance(body, str) and body:
        return body
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        if body.get("error"):
            return str(body["error"])
        errors = body.get("errors")
        if errors and isinstance(errors, list):
            return ", ".join(_error_item_text(e) for e in errors)
    return f"HTTP {status_code}: {reason}"


def _error_item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        text = item.get("message") or item.get("msg")
        if text:
            return str(text)
    return str(item)


def normalize_error(exc: BaseException) -> ApiResult[Any]:
    """Turn anything raised during a call into a failed `ApiResult`.

    - server answered with an error status -> status from body or "error"
    - no response at all (connect failure, timeout) -> "network_error"
    - anything else -> "unknown_error"
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        body = decode_body(response)
        reason = response.reason_phrase
        message = extract_error_message(body, response.status_code, reason)
        error = reason
        status = STATUS_ERROR
        if isinstance(body, dict):
            error = str(body["error"]) if body.get("error") else reason
            status = str(body["status"]) if body.get("status") else STATUS_ERROR
        logger.warning(
            "api.failed",
            extra={
                "event": "api_failed",
                "status_code": response.status_code,
                "detail": message,
            },
        )
        return ApiResult(success=False, message=message, error=error, status=status)

    if isinstance(exc, httpx.RequestError):
        logger.warning(
            "api.network_error",
            extra={"event": "api_network_error", "error": repr(exc)},
        )
        return ApiResult(
            success=False,
            message=NETWORK_ERROR_MESSAGE,
            error="No response from server",
            status=STATUS_NETWORK_ERROR,
        )

    logger.error(
        "api.unexpected_error",
        extra={"event": "api_unexpected_error", "error": repr(exc)},
    )
    text = str(exc)
    return ApiResult(
        success=False,
        message=text or UNKNOWN_ERROR_MESSAGE,
        error=text or "Unknown error",
        status=STATUS_UNKNOWN_ERROR,
    )


class ApiClient:
    """Uniform `get`/`post`/`put`/`delete` over one `httpx.AsyncClient`.

    Collaborators are injected so tests can swap them:
    - `credentials`: token source and purge target
    - `transport`: e.g. `httpx.MockTransport` or `httpx.ASGITransport`
    - `sleep`: awaited between POST retries (defaults to `asyncio.sleep`)
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        *,
        base_url: str | None = None,
        timeout: float = API_TIMEOUT_S,
        max_retries: int = MAX_RETRIES,
        retry_backoff_s: float = RETRY_BACKOFF_S,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.credentials = credentials
        self.timeout_s = timeout
        self.max_retries = max_retries
        self.retry_backoff_s = retry_backoff_s
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=base_url or get_api_url(),
            timeout=httpx.Timeout(timeout),
            headers=dict(DEFAULT_HEADERS),
            transport=transport,
            event_hooks={
                "request": [self._attach_credentials],
                "response": [self._inspect_response],
            },
        )

    @property
    def base_url(self) -> str:
        return str(self._http.base_url)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------
    # Hooks
    # ------------------------

    async def _attach_credentials(self, request: httpx.Request) -> None:
        try:
            token = await self.credentials.read_token()
        except Exception as e:
            # fail open
            logger.warning(
                "api.token_read_failed",
                extra={"event": "token_read_failed", "error": repr(e)},
            )
            token = None
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

        extra: dict[str, Any] = {
            "event": "api_request",
            "method": request.method,
            "path": request.url.path,
            "authenticated": bool(token),
        }
        if request.content:
            try:
                extra["body"] = redact(json.loads(request.content))
            except ValueError:
                extra["body_bytes"] = len(request.content)
        logger.info("api.request", extra=extra)

    async def _inspect_response(self, response: httpx.Response) -> None:
        await response.aread()
        logger.info(
            "api.response",
            extra={
                "event": "api_response",
                "method": response.request.method,
                "path": response.request.url.path,
                "status_code": response.status_code,
                "body": redact(decode_body(response)),
            },
        )
        if response.status_code == 401:
            logger.info("api.unauthorized", extra={"event": "api_unauthorized"})
            await self.credentials.clear()

    # ------------------------
    # Transport
    # ------------------------

    async def _send(
        self, method: str, path: str, *, body: Any = None, params: Params = None
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params
        # httpx times each phase separately; this caps the whole attempt.
        try:
            async with asyncio.timeout(self.timeout_s):
                response = await self._http.request(method, path, **kwargs)
        except TimeoutError as e:
            raise httpx.TimeoutException(
                f"{method} {path}: no response within {self.timeout_s}s"
            ) from e
        response.raise_for_status()
        return response

    # ------------------------
    # Verbs
    # ------------------------

    async def get(self, path: str, *, params: Params = None) -> ApiResult[Any]:
        """GET `path`; the body is returned as `data` untouched."""
        try:
            response = await self._send("GET", path, params=params)
        except Exception as e:
            return normalize_error(e)
        return ApiResult(success=True, message="Success", data=decode_body(response))

    async def post(self, path: str, body: Any = None, *, params: Params = None) -> ApiResult[Any]:
        """POST `path`, retrying on 503 while the backend wakes up.

        Success is read from the body's `status` field, so a 200 carrying
        `{"status": "error"}` still yields a failed result.
        """
        attempt = 0
        while True:
            if attempt > 0:
                await self._sleep(self.retry_backoff_s)
            try:
                response = await self._send("POST", path, body=body, params=params)
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 503 and attempt < self.max_retries:
                    attempt += 1
                    logger.warning(
                        "api.retry",
                        extra={
                            "event": "api_retry",
                            "path": path,
                            "attempt": attempt,
                            "backoff_s": self.retry_backoff_s,
                        },
                    )
                    continue
                return normalize_error(e)
            except Exception as e:
                return normalize_error(e)
            return self._post_result(decode_body(response))

    async def put(self, path: str, body: Any = None, *, params: Params = None) -> ApiResult[Any]:
        try:
            response = await self._send("PUT", path, body=body, params=params)
        except Exception as e:
            return normalize_error(e)
        return self._write_result(decode_body(response))

    async def delete(self, path: str, *, params: Params = None) -> ApiResult[Any]:
        try:
            response = await self._send("DELETE", path, params=params)
        except Exception as e:
            return normalize_error(e)
        return self._write_result(decode_body(response))

    @staticmethod
    def _post_result(payload: Any) -> ApiResult[Any]:
        status = payload.get("status") if isinstance(payload, dict) else None
        ok = status == STATUS_SUCCESS
        message = payload.get("message") if isinstance(payload, dict) else None
        if ok:
            return ApiResult(
                success=True,
                message=str(message) if message else "Success",
                data=payload,
                status=status,
            )
        return ApiResult(
            success=False,
            message=str(message) if message else "Request failed",
            error=str(payload["error"]) if isinstance(payload, dict) and payload.get("error") else None,
            status=status,
        )

    @staticmethod
    def _write_result(payload: Any) -> ApiResult[Any]:
        if not isinstance(payload, dict):
            return ApiResult(success=True, message="Success", data=payload)
        message = payload.get("message")
        return ApiResult(
            success=True,
            message=str(message) if message else "Success",
            data=payload.get("data") or payload,
            status=payload.get("status"),
        )
