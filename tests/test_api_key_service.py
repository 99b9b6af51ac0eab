"""Tests for the API key guard."""

from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from envshare.database import engine as app_engine
from envshare.errors import AuthBackendError, InvalidCredential, MissingCredential
from envshare.services.api_key_service import authorize, issue_api_key


class TestAuthorize:
    def test_valid_key(self, db_session, api_key):
        assert authorize(db_session, f"Bearer {api_key}").key == api_key

    def test_missing_header(self, db_session):
        with pytest.raises(MissingCredential):
            authorize(db_session, None)

    @pytest.mark.parametrize("header", ["", "Basic abc", "bearer abc", "Bearer "])
    def test_bad_header(self, db_session, api_key, header):
        with pytest.raises(InvalidCredential):
            authorize(db_session, header)

    def test_unknown_key(self, db_session, api_key):
        with pytest.raises(InvalidCredential):
            authorize(db_session, f"Bearer {api_key}x")

    def test_lookup_failure(self, db_session):
        with patch.object(
            db_session,
            "execute",
            side_effect=OperationalError("SELECT", {}, Exception("gone")),
        ):
            with pytest.raises(AuthBackendError):
                authorize(db_session, "Bearer anything")


def test_issued_key_authorizes(db_session):
    key = issue_api_key(db_session)

    assert len(key) >= 40
    assert authorize(db_session, f"Bearer {key}").key == key
    assert issue_api_key(db_session) != key


def test_lookup_failure_keeps_key_out_of_logs(db_session):
    db_session.execute(text("DROP TABLE api_keys"))
    db_session.commit()

    with patch("envshare.services.api_key_service.logger") as mock_logger:
        with pytest.raises(AuthBackendError) as exc_info:
            authorize(db_session, "Bearer do-not-log-this-key")

    mock_logger.error.assert_called_once()
    assert "do-not-log-this-key" not in repr(mock_logger.mock_calls)
    assert "do-not-log-this-key" not in str(exc_info.value)


def test_application_engine_hides_bound_parameters():
    assert app_engine.hide_parameters is True
