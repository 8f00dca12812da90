# tests/unit/services/dropbox/test_dropbox_client.py
import asyncio

import aiohttp
import pytest

from cloudtunes.core.exceptions import DropboxAuthError, DropboxTransportError, MalformedResponseError
from cloudtunes.services.dropbox.client import DropboxClient, build_endpoint_url


def mock_session(mocker, status=200, text='{"contents": []}'):
    """Patch aiohttp.ClientSession and return the session object requests go through"""
    mock_response = mocker.MagicMock()
    mock_response.status = status
    mock_response.text = mocker.AsyncMock(return_value=text)

    session = mocker.MagicMock()
    session.request.return_value.__aenter__.return_value = mock_response

    session_cls = mocker.patch("cloudtunes.services.dropbox.client.aiohttp.ClientSession")
    session_cls.return_value.__aenter__.return_value = session
    return session


@pytest.mark.parametrize("path,expected", [
    ("", "https://api.test/meta/"),
    ("/", "https://api.test/meta/"),
    ("/Music", "https://api.test/meta/Music"),
    ("/Music/My Band/01 #1.mp3", "https://api.test/meta/Music/My%20Band/01%20%231.mp3"),
])
def test_build_endpoint_url(path, expected):
    assert build_endpoint_url("https://api.test/meta/", path) == expected


@pytest.mark.asyncio
async def test_get_json_returns_object(mocker):
    session = mock_session(mocker, text='{"contents": [{"path": "/a.mp3"}]}')
    client = DropboxClient(timeout=5)

    result = await client.get_json("https://api.test/meta/", {"Authorization": "OAuth x"})

    assert result == {"contents": [{"path": "/a.mp3"}]}
    args, kwargs = session.request.call_args
    assert args == ("GET", "https://api.test/meta/")
    assert kwargs["headers"] == {"Authorization": "OAuth x"}
    assert kwargs["data"] is None


@pytest.mark.asyncio
async def test_post_json_sends_empty_body(mocker):
    session = mock_session(mocker, text='{"url": "https://dl.test/a"}')
    client = DropboxClient()

    result = await client.post_json("https://api.test/media/a.mp3", {"Authorization": "OAuth x"})

    assert result["url"] == "https://dl.test/a"
    args, kwargs = session.request.call_args
    assert args[0] == "POST"
    assert kwargs["data"] == b""


@pytest.mark.asyncio
async def test_unauthorized_raises_auth_error(mocker):
    mock_session(mocker, status=401, text='{"error": "Invalid signature"}')

    with pytest.raises(DropboxAuthError) as exc_info:
        await DropboxClient().get_json("https://api.test/meta/", {})
    assert exc_info.value.status == 401


@pytest.mark.asyncio
async def test_http_error_raises_transport_error(mocker):
    mock_session(mocker, status=503, text="down")

    with pytest.raises(DropboxTransportError) as exc_info:
        await DropboxClient().get_json("https://api.test/meta/", {})
    assert exc_info.value.status == 503
    assert not isinstance(exc_info.value, DropboxAuthError)


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error(mocker):
    session = mock_session(mocker)
    session.request.side_effect = aiohttp.ClientConnectionError("connection refused")

    with pytest.raises(DropboxTransportError):
        await DropboxClient().get_json("https://api.test/meta/", {})


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(mocker):
    session = mock_session(mocker)
    session.request.side_effect = asyncio.TimeoutError()

    with pytest.raises(DropboxTransportError):
        await DropboxClient(timeout=1).get_json("https://api.test/meta/", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["<html>oops</html>", "[1, 2]", "null"])
async def test_non_object_body_is_malformed(mocker, body):
    mock_session(mocker, text=body)

    with pytest.raises(MalformedResponseError):
        await DropboxClient().get_json("https://api.test/meta/", {})
