"""HTTP adapter implementing the IUploader capability."""
from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..config import UploaderSettings
from ..errors import (
    AuthFailed,
    ConnectFailed,
    FileOpenFailed,
    NotConfigured,
    UnsupportedAuthMode,
    WriteFailed,
    describe_exception,
)
from ..models import UploadRequest, UploadResponse
from ..naming import fallback_url

logger = logging.getLogger(__name__)

SUPPORTED_AUTH_MODES = {"none", "bearer"}


class HTTPUploader:
    """
    Uploads files as a multipart POST to a configured endpoint.

    Implements IUploader protocol. One ``httpx.AsyncClient`` is shared by
    concurrent uploads.

    Usage:
        async with HTTPUploader(UploaderSettings(endpoint=url)) as uploader:
            response = await uploader.upload(request)
    """

    def __init__(
        self,
        settings: UploaderSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self._settings.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        mode = self._settings.auth_mode
        if mode not in SUPPORTED_AUTH_MODES:
            raise UnsupportedAuthMode(mode)
        if mode == "bearer":
            if not self._settings.token:
                raise NotConfigured("token")
            return {"Authorization": f"Bearer {self._settings.token}"}
        return {}

    async def upload(self, request: UploadRequest) -> UploadResponse:
        if not self._client:
            raise RuntimeError("HTTPUploader not initialized. Use 'async with' context.")

        endpoint = self._settings.endpoint.strip()
        if not endpoint:
            raise NotConfigured("endpoint")
        headers = self._headers()

        name = request.effective_name
        path = Path(request.file_local_path)
        try:
            handle = await asyncio.to_thread(path.open, "rb")
        except OSError as exc:
            raise FileOpenFailed(f"{path.name}: {describe_exception(exc)}") from exc

        mimetype = mimetypes.guess_type(name)[0] or "application/octet-stream"
        logger.info("[http] Start upload: file=%s name=%s endpoint=%s", path.name, name, endpoint)

        # httpx streams the open file in chunks as the multipart body.
        with handle:
            try:
                response = await self._client.post(
                    endpoint,
                    headers=headers,
                    data={"name": name, "source": request.source.kind.value},
                    files={self._settings.field_name: (name, handle, mimetype)},
                )
            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                raise ConnectFailed(describe_exception(exc)) from exc
            except httpx.HTTPError as exc:
                raise WriteFailed(describe_exception(exc)) from exc
            except OSError as exc:
                raise FileOpenFailed(f"{path.name}: {describe_exception(exc)}") from exc

        if response.status_code in (401, 403):
            raise AuthFailed(f"HTTP {response.status_code}")
        if response.status_code >= 400:
            raise WriteFailed(f"HTTP {response.status_code}: {_error_detail(response)}")

        body = _json_body(response)
        remote_path = body.get("path") or body.get("remote_path")
        public_url = body.get("url") or body.get("public_url")
        if not public_url and self._settings.public_base_url:
            public_url = fallback_url(name, self._settings.public_base_url)

        logger.info("[http] Upload OK: remote=%s url=%s", remote_path, public_url)
        return UploadResponse(remote_path=remote_path, public_url=public_url)


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_detail(response: httpx.Response) -> str:
    try:
        return str(response.json())
    except ValueError:
        return response.text
