"""Tests for the shared HTTP helpers."""

from unittest.mock import MagicMock, patch

import requests

from relbisect.common.http_client import get_json, robust_get
from relbisect.constants import Constants


def _response(status_code, text="", headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    return response


class TestRobustGet:
    """Test GET with retries."""

    @patch("relbisect.common.http_client.time.sleep")
    @patch("relbisect.common.http_client.requests.get")
    def test_returns_first_success(self, mock_get, mock_sleep):
        """A successful first attempt is returned without retrying."""
        mock_get.return_value = _response(200, "ok", {"Content-Type": "text/plain"})

        status, headers, body = robust_get("https://example.test/releases.json")

        assert status == 200
        assert headers == {"Content-Type": "text/plain"}
        assert body == "ok"
        assert mock_get.call_count == 1
        mock_sleep.assert_not_called()
        assert mock_get.call_args.kwargs["timeout"] == Constants.REQUEST_TIMEOUT

    @patch("relbisect.common.http_client.time.sleep")
    @patch("relbisect.common.http_client.requests.get")
    def test_retries_server_errors(self, mock_get, mock_sleep):
        """5xx responses are retried with backoff."""
        mock_get.side_effect = [_response(503), _response(502), _response(200, "[]")]

        status, _, body = robust_get("https://example.test/releases.json")

        assert status == 200
        assert body == "[]"
        assert mock_get.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("relbisect.common.http_client.time.sleep")
    @patch("relbisect.common.http_client.requests.get")
    def test_client_errors_not_retried(self, mock_get, mock_sleep):
        """4xx responses are returned as-is."""
        mock_get.return_value = _response(404, "missing")

        status, _, _ = robust_get("https://example.test/releases.json")

        assert status == 404
        assert mock_get.call_count == 1

    @patch("relbisect.common.http_client.time.sleep")
    @patch("relbisect.common.http_client.requests.get")
    def test_gives_up_after_max_attempts(self, mock_get, mock_sleep):
        """Transport errors on every attempt yield status 0."""
        mock_get.side_effect = [
            requests.Timeout(),
            requests.ConnectionError("refused"),
            requests.ConnectionError("refused"),
        ]

        status, headers, body = robust_get("https://example.test/releases.json")

        assert status == 0
        assert headers == {}
        assert "refused" in body
        assert mock_get.call_count == Constants.HTTP_RETRY_MAX


class TestGetJson:
    """Test JSON fetching."""

    @patch("relbisect.common.http_client.robust_get")
    def test_parses_json(self, mock_robust_get):
        """Valid JSON bodies are parsed."""
        mock_robust_get.return_value = (200, {}, '[{"version": "1.0.0"}]')
        assert get_json("https://example.test") == (200, {}, [{"version": "1.0.0"}])

    @patch("relbisect.common.http_client.robust_get")
    def test_invalid_json(self, mock_robust_get):
        """Invalid JSON gives a None payload."""
        mock_robust_get.return_value = (200, {}, "<html>")
        assert get_json("https://example.test")[2] is None

    @patch("relbisect.common.http_client.robust_get")
    def test_non_200(self, mock_robust_get):
        """Non-200 responses are not parsed."""
        mock_robust_get.return_value = (500, {}, '{"error": true}')
        status, _, payload = get_json("https://example.test")
        assert status == 500
        assert payload is None
