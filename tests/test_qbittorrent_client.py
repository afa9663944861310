"""Unit tests for QBittorrentSessionClient and QBittorrentPortSink."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import requests

from qbitun.cli import (
    AccountLocked,
    InvalidCredentials,
    QBittorrentPortSink,
    QBittorrentSessionClient,
    Secret,
    SinkFieldMissing,
    SinkSession,
    SinkUnauthorized,
    SinkUnreachable,
    SinkWriteFailed,
)


def make_response(status_code: int = 200, text: str = "", payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def make_client() -> QBittorrentSessionClient:
    return QBittorrentSessionClient(
        url="http://qbittorrent:8080/", username="admin", password=Secret("hunter2"), timeout=5
    )


# =============================================================================
# Login
# =============================================================================


class TestLogin:
    """Tests for QBittorrentSessionClient.login."""

    def test_login_success_returns_session(self) -> None:
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            http = session_cls.return_value
            http.post.return_value = make_response(text="Ok.")

            session = client.login()

            assert isinstance(session, SinkSession)
            assert session.valid is True
            assert session.http is http
            http.post.assert_called_once_with(
                "http://qbittorrent:8080/api/v2/auth/login",
                data={"username": "admin", "password": "hunter2"},
                headers={"Referer": "http://qbittorrent:8080"},
                timeout=5,
            )

    def test_login_wrong_body_is_invalid_credentials(self) -> None:
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            http = session_cls.return_value
            http.post.return_value = make_response(text="Fails.")

            with pytest.raises(InvalidCredentials):
                client.login()
            http.close.assert_called_once()

    def test_login_403_is_account_locked(self) -> None:
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            session_cls.return_value.post.return_value = make_response(
                status_code=403, text="Your IP address has been banned"
            )

            with pytest.raises(AccountLocked):
                client.login()

    def test_account_locked_is_not_invalid_credentials(self) -> None:
        assert not issubclass(AccountLocked, InvalidCredentials)
        assert AccountLocked.kind != InvalidCredentials.kind

    def test_login_server_error_is_invalid_credentials(self) -> None:
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            session_cls.return_value.post.return_value = make_response(status_code=500)

            with pytest.raises(InvalidCredentials):
                client.login()

    def test_login_connection_error_is_unreachable(self) -> None:
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            session_cls.return_value.post.side_effect = requests.exceptions.ConnectionError(
                "Connection refused"
            )

            with pytest.raises(SinkUnreachable):
                client.login()

    def test_login_never_logs_password(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="qbitun.cli")
        client = make_client()

        with patch("qbitun.cli.requests.Session") as session_cls:
            session_cls.return_value.post.return_value = make_response(text="Ok.")
            client.login()

        assert "hunter2" not in caplog.text


class TestEnsureAuthenticated:
    """Tests for session reuse and re-login."""

    def test_reuses_valid_session(self) -> None:
        client = make_client()
        session = SinkSession(MagicMock())

        with patch.object(client, "login") as mock_login:
            assert client.ensure_authenticated(session) is session
            mock_login.assert_not_called()

    def test_logs_in_without_session(self) -> None:
        client = make_client()
        fresh = SinkSession(MagicMock())

        with patch.object(client, "login", return_value=fresh) as mock_login:
            assert client.ensure_authenticated(None) is fresh
            mock_login.assert_called_once_with()

    def test_logs_in_again_after_invalidation(self) -> None:
        client = make_client()
        stale = SinkSession(MagicMock())
        stale.invalidate()
        fresh = SinkSession(MagicMock())

        with patch.object(client, "login", return_value=fresh):
            assert client.ensure_authenticated(stale) is fresh
        stale.http.close.assert_called_once()


# =============================================================================
# Preferences
# =============================================================================


class TestGetListeningPort:
    """Tests for QBittorrentPortSink.get_listening_port."""

    def test_returns_listen_port(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080", timeout=5)
        session = SinkSession(MagicMock())
        session.http.get.return_value = make_response(
            payload={"listen_port": 12345, "upnp": False}
        )

        assert sink.get_listening_port(session) == 12345
        session.http.get.assert_called_once_with(
            "http://qbittorrent:8080/api/v2/app/preferences", timeout=5
        )

    def test_missing_field(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.get.return_value = make_response(payload={"upnp": False})

        with pytest.raises(SinkFieldMissing):
            sink.get_listening_port(session)

    def test_non_json_body_is_field_missing(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.get.return_value = make_response(payload=ValueError("no json"))

        with pytest.raises(SinkFieldMissing):
            sink.get_listening_port(session)

    @pytest.mark.parametrize("status", [401, 403])
    def test_rejected_session_is_unauthorized(self, status: int) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.get.return_value = make_response(status_code=status, text="Forbidden")

        with pytest.raises(SinkUnauthorized):
            sink.get_listening_port(session)

    def test_connection_error_is_unreachable(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(SinkUnreachable):
            sink.get_listening_port(session)


class TestSetListeningPort:
    """Tests for QBittorrentPortSink.set_listening_port."""

    def test_posts_json_form_field(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080/", timeout=5)
        session = SinkSession(MagicMock())
        session.http.post.return_value = make_response()

        sink.set_listening_port(session, 55000)

        session.http.post.assert_called_once_with(
            "http://qbittorrent:8080/api/v2/app/setPreferences",
            data={"json": json.dumps({"listen_port": 55000})},
            timeout=5,
        )

    def test_repeated_write_sends_identical_request(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.post.return_value = make_response()

        sink.set_listening_port(session, 55000)
        sink.set_listening_port(session, 55000)

        first, second = session.http.post.call_args_list
        assert first == second

    def test_server_error_is_write_failed(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.post.return_value = make_response(status_code=500)

        with pytest.raises(SinkWriteFailed):
            sink.set_listening_port(session, 55000)
        assert session.valid is True

    def test_forbidden_write_invalidates_session(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.post.return_value = make_response(status_code=403)

        with pytest.raises(SinkWriteFailed):
            sink.set_listening_port(session, 55000)
        assert session.valid is False

    def test_connection_error_is_write_failed(self) -> None:
        sink = QBittorrentPortSink("http://qbittorrent:8080")
        session = SinkSession(MagicMock())
        session.http.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(SinkWriteFailed):
            sink.set_listening_port(session, 55000)
