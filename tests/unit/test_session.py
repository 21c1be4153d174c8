"""Unit tests for the signed session cookie."""

import pytest

from src.interface import session


@pytest.mark.unit
class TestSessionToken:
    """Tests for issue_session_token / read_session_token."""

    def test_round_trip(self):
        token = session.issue_session_token("user-42")

        assert session.read_session_token(token) == "user-42"

    def test_missing_token(self):
        assert session.read_session_token(None) is None
        assert session.read_session_token("") is None

    def test_tampered_token_rejected(self):
        token = session.issue_session_token("user-42")

        assert session.read_session_token(token[:-2] + "xx") is None

    def test_expired_token_rejected(self, monkeypatch):
        token = session.issue_session_token("user-42")
        monkeypatch.setattr(session.constants, "SESSION_MAX_AGE_SECONDS", -1)

        assert session.read_session_token(token) is None
