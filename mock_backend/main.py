"""FastAPI app factory for the mock dining backend.

Besides the API routes it reproduces two behaviours of the hosted backend the
client has to cope with: a cold-start window answered with 503, and error
bodies shaped as `{"status": "error", "message": ...}`.
"""
from __future__ import annotations

import os
import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dining_client.logging_conf import get_logger, setup_logging

from .api import router as api_router
from .domain.tokens import get_secret_from_env
from .domain.warmup import Readiness, compute_readiness, get_cold_start_from_env
from .service.backend import BackendState, ServiceError

setup_logging()
logger = get_logger("mock_backend")

_UNGATED_PATHS = frozenset({"/api/health", "/docs", "/openapi.json"})


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def create_app(
    *, cold_start_requests: int | None = None, token_secret: str | None = None
) -> FastAPI:
    app = FastAPI(
        title="Custom Dining (mock backend)",
        version=os.getenv("APP_VERSION", "0.1.0"),
    )
    app.state.backend = BackendState.seeded(
        token_secret=token_secret or get_secret_from_env(),
        cold_start_requests=(
            get_cold_start_from_env() if cold_start_requests is None else cold_start_requests
        ),
    )

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        return _error(exc.status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"msg": f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}"}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=422, content={"status": "error", "errors": errors})

    @app.middleware("http")
    async def cold_start_gate(request: Request, call_next: Callable[[Request], Response]):
        """Answer 503 while the instance is still "waking up"."""
        if request.url.path in _UNGATED_PATHS:
            return await call_next(request)
        state: BackendState = app.state.backend
        served = state.served
        state.served += 1
        readiness = compute_readiness(served=served, cold_start_requests=state.cold_start_requests)
        if readiness is Readiness.warming:
            logger.info(
                "cold_start.rejected",
                extra={"event": "cold_start_rejected", "served": served, "path": request.url.path},
            )
            return _error(503, "Service is waking up, please retry shortly")
        return await call_next(request)

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """JSON request logging with correlation id.

        - If the client sends X-Request-ID we propagate it; otherwise we mint one
        - Logs a start and end event with method/path/status/elapsed_ms
        """
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "path": request.url.path,
                    "method": request.method,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.include_router(api_router)
    return app


# ASGI entrypoint for uvicorn: `uvicorn mock_backend.main:app --port 3006`
app = create_app()
