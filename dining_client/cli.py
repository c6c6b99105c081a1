from __future__ import annotations

import argparse
import os

from .config import get_api_url


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(description="Custom Dining API smoke runner")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", get_api_url()))
    parser.add_argument("--email", default=os.getenv("SMOKE_EMAIL", "smoke@example.test"))
    parser.add_argument("--password", default=os.getenv("SMOKE_PASSWORD", "smoke-pass-123"))
    parser.add_argument("--username", default="Smoke Tester")
    parser.add_argument("--health-timeout", type=float, default=60.0, dest="health_timeout")
    parser.add_argument("--backoff", type=float, default=None, help="override POST retry backoff (s)")
    return parser.parse_args(argv)
