from __future__ import annotations

import argparse
import os

import uvicorn

from dining_client.logging_conf import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Serve the mock backend: `python -m mock_backend --port 3006`."""
    parser = argparse.ArgumentParser(description="Custom Dining mock backend")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3006")))
    args = parser.parse_args(argv)
    setup_logging()
    # log_config=None keeps uvicorn from replacing our JSON handler
    uvicorn.run("mock_backend.main:app", host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
