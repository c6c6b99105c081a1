"""Pure domain utilities: session tokens and cold-start readiness.

These modules are free of FastAPI/HTTP concerns so they can be unit-tested
and reused by tests that need to mint tokens.
"""
__all__ = ["tokens", "warmup"]
