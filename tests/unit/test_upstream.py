#!/usr/bin/env python3
"""
Unit tests for the upstream connection source
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from connections.upstream import FetchResult, FetchStatus, HttpUpstreamSource


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def source():
    return HttpUpstreamSource(base_url="https://connections.example.com/", timeout=4, token="t0k")


class TestFetchResult:

    def test_constructors(self):
        assert FetchResult.found({"a": {}}).is_found
        assert FetchResult.not_found().is_not_found
        failed = FetchResult.failed("boom", status_code=502)
        assert failed.is_error
        assert failed.status is FetchStatus.ERROR
        assert failed.status_code == 502


class TestHttpUpstreamInit:

    def test_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("CONNECTION_STORAGE_API_URL", "https://env.example.com")
        assert HttpUpstreamSource().base_url == "https://env.example.com"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CONNECTION_STORAGE_API_URL", raising=False)
        source = HttpUpstreamSource()
        assert source.timeout == HttpUpstreamSource.DEFAULT_TIMEOUT
        assert source.path_template == "/connection/{box_name}"

    def test_url_quotes_box_name(self, source):
        assert source.url_for("acme") == "https://connections.example.com/connection/acme"
        assert source.url_for("a/b c") == "https://connections.example.com/connection/a%2Fb%20c"

    def test_unconfigured_url_is_an_error(self, monkeypatch):
        monkeypatch.delenv("CONNECTION_STORAGE_API_URL", raising=False)
        with patch("connections.upstream.requests.get") as mock_get:
            result = HttpUpstreamSource().fetch("acme")
        assert result.is_error
        mock_get.assert_not_called()


class TestHttpUpstreamFetch:

    @patch("connections.upstream.requests.get")
    def test_found(self, mock_get, source, acme_payload):
        mock_get.return_value = make_response(200, acme_payload)

        result = source.fetch("acme")

        assert result.is_found
        assert result.payload == acme_payload
        mock_get.assert_called_once_with(
            "https://connections.example.com/connection/acme",
            headers={"Accept": "application/json", "Authorization": "Bearer t0k"},
            timeout=4,
        )

    @patch("connections.upstream.requests.get")
    def test_404_is_not_found(self, mock_get, source):
        mock_get.return_value = make_response(404)
        assert source.fetch("acme").is_not_found

    @patch("connections.upstream.requests.get")
    def test_server_error(self, mock_get, source):
        mock_get.return_value = make_response(503, text="maintenance")

        result = source.fetch("acme")

        assert result.is_error
        assert result.status_code == 503

    @patch("connections.upstream.requests.get")
    def test_unauthorized_is_an_error(self, mock_get, source):
        mock_get.return_value = make_response(401)
        assert source.fetch("acme").is_error

    @patch("connections.upstream.requests.get")
    def test_timeout(self, mock_get, source):
        mock_get.side_effect = requests.Timeout()

        result = source.fetch("acme")

        assert result.is_error
        assert "timeout" in result.error

    @patch("connections.upstream.requests.get")
    def test_connection_error(self, mock_get, source):
        mock_get.side_effect = requests.ConnectionError("refused")
        assert source.fetch("acme").is_error

    @patch("connections.upstream.requests.get")
    def test_invalid_json(self, mock_get, source):
        mock_get.return_value = make_response(200, ValueError("Expecting value"))
        assert source.fetch("acme").is_error

    @patch("connections.upstream.requests.get")
    def test_non_object_payload(self, mock_get, source):
        mock_get.return_value = make_response(200, ["acme"])

        result = source.fetch("acme")

        assert result.is_error
        assert result.payload is None

    @patch("connections.upstream.requests.get")
    def test_no_token_no_authorization_header(self, mock_get, acme_payload):
        mock_get.return_value = make_response(200, acme_payload)

        HttpUpstreamSource(base_url="https://connections.example.com").fetch("acme")

        assert "Authorization" not in mock_get.call_args.kwargs["headers"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
