"""
Tests for the healthcheck module.

Verifies the metrics endpoint check used by Docker HEALTHCHECK.
"""

import os
from unittest.mock import MagicMock, patch
import urllib.error

import pytest

from healthcheck import default_url, is_exporter_healthy


def _mock_response(status):
    response = MagicMock()
    response.status = status
    response.__enter__.return_value = response
    return response


class TestIsExporterHealthy:
    """Tests for the is_exporter_healthy function."""

    @patch("healthcheck.urllib.request.urlopen")
    def test_healthy(self, mock_urlopen):
        """Returns True when the endpoint answers with 200."""
        mock_urlopen.return_value = _mock_response(200)
        assert is_exporter_healthy("http://127.0.0.1:8080/metrics") is True
        mock_urlopen.assert_called_once_with("http://127.0.0.1:8080/metrics", timeout=5)

    @patch("healthcheck.urllib.request.urlopen")
    def test_unexpected_status(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(204)
        assert is_exporter_healthy("http://127.0.0.1:8080/metrics") is False

    @patch("healthcheck.urllib.request.urlopen", side_effect=urllib.error.URLError("refused"))
    def test_connection_refused(self, mock_urlopen):
        """Returns False when nothing listens on the port."""
        assert is_exporter_healthy("http://127.0.0.1:8080/metrics") is False

    @patch("healthcheck.urllib.request.urlopen", side_effect=TimeoutError("timed out"))
    def test_timeout(self, mock_urlopen):
        assert is_exporter_healthy("http://127.0.0.1:8080/metrics") is False

    @patch("healthcheck.urllib.request.urlopen")
    def test_default_url(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(200)
        with patch.dict(os.environ, {"METRICS_PORT": "9162"}, clear=True):
            assert is_exporter_healthy() is True
        mock_urlopen.assert_called_once_with("http://127.0.0.1:9162/metrics", timeout=5)


def test_default_url_without_env():
    with patch.dict(os.environ, {}, clear=True):
        assert default_url() == "http://127.0.0.1:8080/metrics"


def test_against_running_server(context):
    from metrics import start_metrics_server

    httpd = start_metrics_server(context, "127.0.0.1", 0)
    try:
        assert is_exporter_healthy(f"http://127.0.0.1:{httpd.server_port}/metrics") is True
        assert is_exporter_healthy(f"http://127.0.0.1:{httpd.server_port}/missing") is False
    finally:
        httpd.shutdown()
        httpd.server_close()


@pytest.mark.parametrize(
    "address, expected",
    [
        ("192.168.1.10", "http://192.168.1.10:9162/metrics"),
        ("0.0.0.0", "http://127.0.0.1:9162/metrics"),
        ("::", "http://127.0.0.1:9162/metrics"),
        ("fd00::10", "http://[fd00::10]:9162/metrics"),
    ],
)
def test_default_url_uses_listen_address(address, expected):
    with patch.dict(os.environ, {"METRICS_ADDRESS": address, "METRICS_PORT": "9162"}, clear=True):
        assert default_url() == expected
