"""Mock backend domain helpers: signed tokens and cold-start readiness."""
from __future__ import annotations

import pytest

from mock_backend.domain.tokens import (
    BadSignatureError,
    MalformedTokenError,
    TokenPurpose,
    decode_session_token,
    encode_session_token,
)
from mock_backend.domain.warmup import Readiness, compute_readiness, get_cold_start_from_env


def _token(**overrides) -> str:
    kwargs = dict(email="ada@example.test", role="user", issued_at_ms=1_700_000_000_000, secret="s")
    kwargs.update(overrides)
    return encode_session_token(**kwargs)


class TestTokens:
    def test_decode_returns_payload(self) -> None:
        payload = decode_session_token(_token(purpose=TokenPurpose.RESET), secret="s")
        assert payload.sub == "ada@example.test"
        assert payload.role == "user"
        assert payload.pur == TokenPurpose.RESET

    def test_other_secret_is_rejected(self) -> None:
        with pytest.raises(BadSignatureError):
            decode_session_token(_token(), secret="other")

    def test_tampered_payload_is_rejected(self) -> None:
        body, _, sig = _token().partition(".")
        forged = _token(email="root@example.test").partition(".")[0]
        assert forged != body
        with pytest.raises(BadSignatureError):
            decode_session_token(f"{forged}.{sig}", secret="s")

    @pytest.mark.parametrize("raw", ["", "no-dot", ".sig", "body."])
    def test_malformed(self, raw: str) -> None:
        with pytest.raises(MalformedTokenError) as exc:
            decode_session_token(raw, secret="s")
        assert exc.value.code == "malformed_token"


class TestWarmup:
    def test_first_requests_are_warming(self) -> None:
        states = [compute_readiness(served=i, cold_start_requests=2) for i in range(4)]
        assert states == [Readiness.warming, Readiness.warming, Readiness.ready, Readiness.ready]

    def test_zero_means_always_ready(self) -> None:
        assert compute_readiness(served=0, cold_start_requests=0) is Readiness.ready

    def test_negative_values_are_rejected(self) -> None:
        with pytest.raises(ValueError):
            compute_readiness(served=0, cold_start_requests=-1)

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COLD_START_REQUESTS", raising=False)
        assert get_cold_start_from_env() == 0
        monkeypatch.setenv("COLD_START_REQUESTS", "3")
        assert get_cold_start_from_env() == 3
        monkeypatch.setenv("COLD_START_REQUESTS", "-2")
        with pytest.raises(ValueError):
            get_cold_start_from_env()
