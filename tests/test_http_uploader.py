"""Tests for the HTTP uploader adapter."""
from pathlib import Path

import httpx
import pytest

from pushdrop.config import UploaderSettings
from pushdrop.errors import (
    AuthFailed,
    ConnectFailed,
    FileOpenFailed,
    NotConfigured,
    UnsupportedAuthMode,
    WriteFailed,
)
from pushdrop.models import UploadRequest, UploadSource
from pushdrop.services.http_uploader import HTTPUploader

ENDPOINT = "https://files.test/upload"


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "shot.png"
    path.write_bytes(b"png-bytes")
    return path


def _request(path, name=None):
    return UploadRequest(file_local_path=path, source=UploadSource.clipboard_file(), remote_file_name=name)


def _json_handler(status=200, payload=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload if payload is not None else {})
    return handler


@pytest.mark.asyncio
async def test_successful_upload_returns_server_url(sample_file):
    seen = []
    transport = httpx.MockTransport(
        _json_handler(payload={"path": "/u/Abc.png", "url": "https://cdn.test/Abc.png"}, seen=seen)
    )
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        response = await uploader.upload(_request(sample_file, "Abc.png"))

    assert response.remote_path == "/u/Abc.png"
    assert response.public_url == "https://cdn.test/Abc.png"

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == ENDPOINT
    body = request.content
    assert b'name="file"; filename="Abc.png"' in body
    assert b"png-bytes" in body
    assert b"clipboard_file" in body
    assert "authorization" not in request.headers


@pytest.mark.asyncio
async def test_bearer_token_is_sent(sample_file):
    seen = []
    settings = UploaderSettings(endpoint=ENDPOINT, auth_mode="bearer", token="s3cret")
    transport = httpx.MockTransport(_json_handler(payload={"url": "https://cdn.test/x"}, seen=seen))
    async with HTTPUploader(settings, transport=transport) as uploader:
        await uploader.upload(_request(sample_file))

    assert seen[0].headers["authorization"] == "Bearer s3cret"


@pytest.mark.asyncio
async def test_fallback_url_when_server_returns_none(sample_file):
    settings = UploaderSettings(endpoint=ENDPOINT, public_base_url="https://cdn.test/u")
    transport = httpx.MockTransport(_json_handler(payload={"path": "/u/shot.png"}))
    async with HTTPUploader(settings, transport=transport) as uploader:
        response = await uploader.upload(_request(sample_file))

    assert response.public_url == "https://cdn.test/u/shot.png"


@pytest.mark.asyncio
async def test_non_json_body_gives_no_url(sample_file):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="ok"))
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        response = await uploader.upload(_request(sample_file))

    assert response.public_url is None
    assert response.remote_path is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_rejected(sample_file, status):
    transport = httpx.MockTransport(_json_handler(status=status))
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        with pytest.raises(AuthFailed):
            await uploader.upload(_request(sample_file))


@pytest.mark.asyncio
async def test_server_error_is_write_failure(sample_file):
    transport = httpx.MockTransport(_json_handler(status=500, payload={"error": "disk full"}))
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        with pytest.raises(WriteFailed) as exc_info:
            await uploader.upload(_request(sample_file))

    assert "HTTP 500" in exc_info.value.message
    assert "disk full" in exc_info.value.message


@pytest.mark.asyncio
async def test_connection_error(sample_file):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = httpx.MockTransport(refuse)
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        with pytest.raises(ConnectFailed) as exc_info:
            await uploader.upload(_request(sample_file))

    assert "connection refused" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_endpoint(sample_file):
    transport = httpx.MockTransport(_json_handler())
    async with HTTPUploader(UploaderSettings(endpoint=""), transport=transport) as uploader:
        with pytest.raises(NotConfigured):
            await uploader.upload(_request(sample_file))


@pytest.mark.asyncio
async def test_bearer_without_token(sample_file):
    settings = UploaderSettings(endpoint=ENDPOINT, auth_mode="bearer")
    async with HTTPUploader(settings, transport=httpx.MockTransport(_json_handler())) as uploader:
        with pytest.raises(NotConfigured):
            await uploader.upload(_request(sample_file))


@pytest.mark.asyncio
async def test_unsupported_auth_mode(sample_file):
    settings = UploaderSettings(endpoint=ENDPOINT, auth_mode="kerberos")
    async with HTTPUploader(settings, transport=httpx.MockTransport(_json_handler())) as uploader:
        with pytest.raises(UnsupportedAuthMode):
            await uploader.upload(_request(sample_file))


@pytest.mark.asyncio
async def test_unreadable_file(tmp_path):
    async with HTTPUploader(
        UploaderSettings(endpoint=ENDPOINT), transport=httpx.MockTransport(_json_handler())
    ) as uploader:
        with pytest.raises(FileOpenFailed):
            await uploader.upload(_request(tmp_path / "gone.png"))


@pytest.mark.asyncio
async def test_upload_outside_context_is_rejected(sample_file):
    uploader = HTTPUploader(UploaderSettings(endpoint=ENDPOINT))
    with pytest.raises(RuntimeError):
        await uploader.upload(_request(sample_file))


@pytest.mark.asyncio
async def test_file_is_streamed_from_an_open_handle(sample_file, monkeypatch):
    opened = []
    real_open = Path.open

    def tracking_open(self, *args, **kwargs):
        handle = real_open(self, *args, **kwargs)
        if self == sample_file:
            opened.append(handle)
        return handle

    def no_full_read(self):
        raise AssertionError("file contents loaded into memory")

    monkeypatch.setattr(Path, "open", tracking_open)
    monkeypatch.setattr(Path, "read_bytes", no_full_read)

    seen = []
    transport = httpx.MockTransport(_json_handler(payload={"url": "https://cdn.test/shot.png"}, seen=seen))
    async with HTTPUploader(UploaderSettings(endpoint=ENDPOINT), transport=transport) as uploader:
        response = await uploader.upload(_request(sample_file))

    assert response.public_url == "https://cdn.test/shot.png"
    assert b"png-bytes" in seen[0].content
    assert len(opened) == 1
    assert opened[0].closed


@pytest.mark.asyncio
async def test_file_handle_closed_on_transport_error(sample_file, monkeypatch):
    opened = []
    real_open = Path.open

    def tracking_open(self, *args, **kwargs):
        handle = real_open(self, *args, **kwargs)
        opened.append(handle)
        return handle

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(Path, "open", tracking_open)
    async with HTTPUploader(
        UploaderSettings(endpoint=ENDPOINT), transport=httpx.MockTransport(refuse)
    ) as uploader:
        with pytest.raises(ConnectFailed):
            await uploader.upload(_request(sample_file))

    assert opened and all(handle.closed for handle in opened)
