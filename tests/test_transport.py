"""Tests for the httpx transport."""

from unittest.mock import Mock, patch

import httpx
import pytest

from suitecrm_toolkit.client.transport import HttpTransport, TransportResponse


@pytest.fixture
def mock_http_client():
    """Create a mock httpx client."""
    return Mock(spec=httpx.Client)


def make_http_response(status_code=200, text='{"id": "1"}', headers=None):
    response = Mock(spec=httpx.Response)
    response.status_code = status_code
    response.text = text
    response.headers = headers or {"content-type": "application/json"}
    return response


def test_post_sends_form_fields(mock_http_client):
    """Test that POST data is form-encoded via data=."""
    mock_http_client.post.return_value = make_http_response()
    transport = HttpTransport(http_client=mock_http_client, headers={"X-Test": "1"})

    result = transport.post("https://crm.example.com/service/v4_1/rest.php", {"method": "login"})

    mock_http_client.post.assert_called_once_with(
        "https://crm.example.com/service/v4_1/rest.php",
        data={"method": "login"},
        headers={"Accept": "application/json", "X-Test": "1"},
    )
    assert result == TransportResponse(
        body='{"id": "1"}',
        headers={"content-type": "application/json"},
        status_code=200,
    )


def test_get_sends_params(mock_http_client):
    """Test GET with query parameters."""
    mock_http_client.get.return_value = make_http_response(status_code=404, text="missing")
    transport = HttpTransport(http_client=mock_http_client)

    result = transport.get("https://crm.example.com/", params={"a": "b"})

    call_kwargs = mock_http_client.get.call_args.kwargs
    assert call_kwargs["params"] == {"a": "b"}
    assert result.status_code == 404
    assert result.body == "missing"
    assert result.error is None


def test_request_error_becomes_response(mock_http_client):
    """Test that network failures are reported, not raised."""
    mock_http_client.post.side_effect = httpx.ConnectError("Connection refused")
    transport = HttpTransport(http_client=mock_http_client)

    result = transport.post("https://crm.example.com/", {})

    assert result.status_code == 0
    assert result.body == ""
    assert "Connection refused" in result.error


def test_close_leaves_injected_client_open(mock_http_client):
    """Test that an injected client is not closed by the transport."""
    transport = HttpTransport(http_client=mock_http_client)
    transport.close()

    mock_http_client.close.assert_not_called()


def test_owned_client_is_configured_and_closed():
    """Test that a transport-created client gets timeout/verify/redirect settings."""
    with patch("suitecrm_toolkit.client.transport.httpx.Client") as client_cls:
        with HttpTransport(timeout=12, ssl_verify=False) as transport:
            assert transport.http_client is client_cls.return_value

        client_cls.assert_called_once_with(
            timeout=12,
            verify=False,
            follow_redirects=True,
            max_redirects=5,
        )
        client_cls.return_value.close.assert_called_once()


def test_transport_response_to_dict():
    """Test TransportResponse.to_dict."""
    response = TransportResponse(body="", status_code=0, error="Request failed: boom")
    assert response.to_dict() == {
        "body": "",
        "headers": {},
        "status_code": 0,
        "error": "Request failed: boom",
    }
