#!/usr/bin/env python3
"""End-to-end smoke run of the client against a live (or mock) backend.

Steps:
- wait for the health endpoint
- register the smoke account (an existing account is fine)
- log in, list meals and restaurants
- favorite the first meal and read favorites back
- log out, emit a compact summary and exit code
"""
from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from .auth import AuthService, SignupForm
from .cli import parse_args
from .client import ApiClient
from .config import AUTH_TIMEOUT_S, ENDPOINTS, RETRY_BACKOFF_S
from .credentials import MemoryStore, StorageKeys, StoredCredentials
from .logging_conf import get_logger, setup_logging
from .services import add_meal_to_favorites, get_all_meals, get_all_restaurants, get_favorite_meals
from .types import ApiResult, SmokeError

logger = get_logger("dining_client.smoke")


async def wait_for_health(
    base_url: str,
    timeout_s: float = 60.0,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Ping the health endpoint until it answers ok or raise after a timeout.

    A sleeping hosted backend can take a while to wake; each failed probe is
    retried after a short pause.
    """
    deadline = time.monotonic() + timeout_s
    async with httpx.AsyncClient(base_url=base_url, timeout=5.0, transport=transport) as client:
        while time.monotonic() < deadline:
            try:
                r = await client.get(ENDPOINTS.health)
                if r.status_code == 200 and r.json().get("ok") is True:
                    logger.info("health.ok", extra={"event": "health_ok"})
                    return
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("health.pending", extra={"event": "health_pending", "error": repr(e)})
            await asyncio.sleep(0.5)
    raise SmokeError("Health check did not pass within timeout")


async def _step(
    steps: list[dict[str, Any]], name: str, call: Callable[[], Awaitable[ApiResult[Any]]]
) -> ApiResult[Any]:
    started = time.perf_counter()
    result = await call()
    steps.append(
        {
            "step": name,
            "success": result.success,
            "status": result.status,
            "detail": result.message,
            "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 2),
        }
    )
    return result


async def run_smoke(
    *,
    base_url: str,
    email: str,
    password: str,
    username: str = "Smoke Tester",
    health_timeout_s: float = 60.0,
    retry_backoff_s: float = RETRY_BACKOFF_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    await wait_for_health(base_url, health_timeout_s, transport=transport)

    store = MemoryStore({StorageKeys.USER_TYPE: "customer"})
    credentials = StoredCredentials(store)
    steps: list[dict[str, Any]] = []

    async with ApiClient(
        credentials,
        base_url=base_url,
        timeout=AUTH_TIMEOUT_S,
        retry_backoff_s=retry_backoff_s,
        transport=transport,
    ) as client:
        auth = AuthService(client, store)
        first, _, last = username.partition(" ")
        form = SignupForm(
            first_name=first,
            last_name=last,
            email=email,
            phone_number="",
            password=password,
            confirm_password=password,
        )
        signup = await _step(steps, "signup", lambda: auth.signup(form))
        if not signup.success and "already exists" in signup.message:
            # Re-running against the same backend is expected.
            steps[-1]["success"] = True

        await _step(steps, "login", lambda: auth.login(email, password))
        meals = await _step(steps, "meals", lambda: get_all_meals(client))
        await _step(steps, "restaurants", lambda: get_all_restaurants(client))
        if meals.success and meals.data:
            meal_id = meals.data[0].id
            await _step(steps, "favorite.add", lambda: add_meal_to_favorites(client, meal_id))
            await _step(steps, "favorite.list", lambda: get_favorite_meals(client))
        await _step(steps, "logout", auth.logout)

    failed = [s["step"] for s in steps if not s["success"]]
    summary = {
        "component": "smoke",
        "event": "summary",
        "base_url": base_url,
        "steps": steps,
        "failed": failed,
    }
    logger.info("smoke.summary", extra=summary)
    return 0 if not failed else 1


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_args(argv if argv is not None else sys.argv[1:])
    code = asyncio.run(
        run_smoke(
            base_url=args.base_url,
            email=args.email,
            password=args.password,
            username=args.username,
            health_timeout_s=args.health_timeout,
            retry_backoff_s=RETRY_BACKOFF_S if args.backoff is None else args.backoff,
        )
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
