from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os

from pydantic import BaseModel, Field, ValidationError

__all__ = [
    "TOKEN_VERSION",
    "TokenPurpose",
    "TokenPayload",
    "TokenError",
    "UnsupportedTokenVersionError",
    "MalformedTokenError",
    "BadSignatureError",
    "get_secret_from_env",
    "encode_session_token",
    "decode_session_token",
]

# Bumped whenever the payload layout changes.
TOKEN_VERSION = 1


class TokenPurpose:
    SESSION = "session"
    RESET = "reset"
    VERIFY = "verify"


# ------------------------
# Errors
# ------------------------
class TokenError(ValueError):
    """Base class for token-related errors.

    The `code` attribute lets the API map errors to stable machine codes.
    """

    code: str = "invalid_token"


class UnsupportedTokenVersionError(TokenError):
    code = "unsupported_token_version"


class MalformedTokenError(TokenError):
    code = "malformed_token"


class BadSignatureError(TokenError):
    code = "bad_signature"


# ------------------------
# Schema
# ------------------------
class TokenPayload(BaseModel):
    """Signed, decodable payload of a bearer (or one-shot email) token.

    Fields are short to keep tokens compact when base64-encoded.
    """

    ver: int = Field(..., ge=1)  # token schema version
    sub: str  # account email
    role: str  # "user" | "restaurant"
    pur: str = TokenPurpose.SESSION  # what the token may be used for
    iat_ms: int  # issued-at epoch milliseconds


# ------------------------
# Internals
# ------------------------

def _sign(secret: str, body: bytes) -> str:
    """Keyed BLAKE2b over the encoded payload, hex encoded.

    The secret is hashed first so any length fits the 64-byte key limit.
    """
    key = hashlib.blake2b(secret.encode("utf-8")).digest()
    return hashlib.blake2b(body, key=key, digest_size=16).hexdigest()


def get_secret_from_env() -> str:
    """Read MOCK_TOKEN_SECRET, defaulting to a fixed dev secret."""
    return os.getenv("MOCK_TOKEN_SECRET", "dev-secret")


# ------------------------
# Public encode/decode
# ------------------------

def encode_session_token(
    *, email: str, role: str, issued_at_ms: int, secret: str, purpose: str = TokenPurpose.SESSION
) -> str:
    """Create a URL-safe `<payload>.<signature>` token."""
    payload = TokenPayload(ver=TOKEN_VERSION, sub=email, role=role, pur=purpose, iat_ms=issued_at_ms)
    as_json = json.dumps(payload.model_dump(), separators=(",", ":"), ensure_ascii=False)
    body = base64.urlsafe_b64encode(as_json.encode("utf-8"))
    return f"{body.decode('ascii')}.{_sign(secret, body)}"


def decode_session_token(token: str, *, secret: str) -> TokenPayload:
    """Verify and decode a token back into a `TokenPayload`.

    Raises a specific `TokenError` subclass if parsing/validation fails.
    """
    body, dot, signature = token.partition(".")
    if not dot or not body or not signature:
        raise MalformedTokenError("Token must look like <payload>.<signature>")

    try:
        raw_body = body.encode("ascii")
    except UnicodeEncodeError as e:
        raise MalformedTokenError("Token is not ASCII") from e

    if not hmac.compare_digest(_sign(secret, raw_body), signature):
        raise BadSignatureError("Token signature does not match")

    try:
        data = json.loads(base64.urlsafe_b64decode(raw_body).decode("utf-8"))
    except ValueError as e:
        raise MalformedTokenError("Token payload is malformed") from e

    try:
        payload = TokenPayload(**data)
    except (TypeError, ValidationError) as e:
        raise MalformedTokenError(f"Token schema invalid: {e}") from e

    if payload.ver != TOKEN_VERSION:
        raise UnsupportedTokenVersionError(f"Unsupported token version: {payload.ver}")

    return payload
