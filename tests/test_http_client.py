"""Tests for the shared HTTP helpers and logging utilities."""

import io
import logging
from unittest.mock import MagicMock, patch

import pytest
import requests

from constants import Constants
from common.errors import DownloadError
from common.http_client import download_file, get_text, new_session
from common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled, safe_url


def make_response(status=200, chunks=(), text=""):
    response = MagicMock()
    response.status_code = status
    response.iter_content.return_value = list(chunks)
    response.text = text
    return response


class TestDownloadFile:
    """Streaming downloads."""

    @patch("common.http_client.requests.get")
    def test_streams_body_to_file(self, mock_get, tmp_path):
        """Chunks are written in order and the response is closed."""
        response = make_response(chunks=[b"abc", b"", b"def"])
        mock_get.return_value = response
        dest = tmp_path / "out.tar"

        assert download_file("https://origin.test/x.tar", str(dest)) == str(dest)

        assert dest.read_bytes() == b"abcdef"
        assert mock_get.call_args.kwargs["stream"] is True
        assert mock_get.call_args.kwargs["timeout"] == Constants.REQUEST_TIMEOUT
        response.close.assert_called_once()

    @patch("common.http_client.requests.get")
    def test_non_200_is_download_error(self, mock_get, tmp_path):
        """HTTP errors are not retried and leave no file behind."""
        mock_get.return_value = make_response(status=404)
        dest = tmp_path / "out.tar"

        with pytest.raises(DownloadError) as exc:
            download_file("https://origin.test/x.tar", str(dest))

        assert "404" in str(exc.value)
        assert exc.value.url == "https://origin.test/x.tar"
        assert mock_get.call_count == 1
        assert not dest.exists()

    def test_uses_given_session(self, tmp_path):
        """Worker sessions are used instead of module-level requests."""
        session = MagicMock()
        session.get.return_value = make_response(chunks=[b"x"])

        download_file("https://origin.test/x.tar", str(tmp_path / "x"), session=session)

        session.get.assert_called_once()

    @patch("common.http_client.time.sleep")
    @patch("common.http_client.requests.get")
    def test_retries_connection_errors(self, mock_get, mock_sleep, tmp_path):
        """Connection failures are retried with backoff."""
        mock_get.side_effect = [requests.ConnectionError("reset"), make_response(chunks=[b"ok"])]
        dest = tmp_path / "out"

        download_file("https://origin.test/x.tar", str(dest))

        assert dest.read_bytes() == b"ok"
        assert mock_get.call_count == 2
        mock_sleep.assert_called_once_with(Constants.HTTP_RETRY_BASE_DELAY_SEC)

    @patch("common.http_client.time.sleep")
    @patch("common.http_client.requests.get")
    def test_gives_up_after_max_attempts(self, mock_get, mock_sleep, tmp_path):
        """Persistent timeouts become a DownloadError."""
        mock_get.side_effect = requests.Timeout()

        with pytest.raises(DownloadError) as exc:
            download_file("https://origin.test/x.tar", str(tmp_path / "out"))

        assert mock_get.call_count == Constants.HTTP_RETRY_MAX
        assert "timeout" in str(exc.value)

    @patch("common.http_client.requests.get")
    def test_broken_stream_removes_partial_file(self, mock_get, tmp_path):
        """A stream that dies midway leaves nothing on disk."""
        response = make_response()

        def chunks(chunk_size):
            yield b"partial"
            raise requests.ConnectionError("reset")

        response.iter_content.side_effect = chunks
        mock_get.return_value = response
        dest = tmp_path / "out"

        with pytest.raises(DownloadError):
            download_file("https://origin.test/x.tar", str(dest))

        assert not dest.exists()


class TestGetText:
    """Small text documents."""

    @patch("common.http_client.requests.get")
    def test_strips_body(self, mock_get):
        mock_get.return_value = make_response(text="33000\n")

        assert get_text("https://origin.test/latest") == "33000"

    @patch("common.http_client.requests.get")
    def test_error_status(self, mock_get):
        mock_get.return_value = make_response(status=500)

        with pytest.raises(DownloadError):
            get_text("https://origin.test/latest")


def test_new_session_headers():
    session = new_session()
    try:
        assert session.headers["User-Agent"] == Constants.USER_AGENT
    finally:
        session.close()


class TestLoggingUtils:
    """Structured logging helpers."""

    def test_safe_url_strips_credentials_and_query(self):
        assert safe_url("https://user:pw@origin.test:8443/update/1?token=abc#x") == "https://origin.test:8443/update/1"

    @pytest.mark.parametrize("url", ["http://origin.test:99999/x", "http://origin.test:bad/x"])
    def test_safe_url_malformed_port(self, url):
        assert safe_url(url) == "<invalid-url>"

    def test_extra_context_drops_none_and_redacts(self):
        ctx = extra_context(event="x", target=None, api_key="abcdef123")

        assert ctx == {"event": "x", "api_key": "ab****"}

    def test_timer_measures(self):
        with Timer() as t:
            pass

        assert t.duration_ms() >= 0

    def test_configure_logging_from_env(self, monkeypatch):
        monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "debug")
        stream = io.StringIO()
        root = logging.getLogger()
        saved = (root.level, root.handlers[:])
        try:
            configure_logging(stream=stream)
            logging.getLogger("relgate.test").debug("hello")

            assert is_debug_enabled(logging.getLogger("relgate.test"))
            assert "[DEBUG] hello" in stream.getvalue()
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            root.setLevel(saved[0])
            for handler in saved[1]:
                root.addHandler(handler)
