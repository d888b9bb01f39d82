"""
Content Storage Service

Content-addressed storage for asset files and metadata documents, backed by
Pinata's IPFS pinning API.

Uploads never raise: every failure (missing credentials, unreadable file,
network error, non-2xx response) comes back as UploadResult(success=False)
so callers can carry on with the original reference.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import httpx
import structlog

from assetmint.models.base import AssetMintModel, utc_now
from assetmint.monitoring.logging import log_duration

logger = structlog.get_logger(__name__)


MIME_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
}
DEFAULT_MIME_TYPE = "image/jpeg"


def guess_mime_type(reference: str) -> str:
    """MIME type from the reference's extension; JPEG when unknown."""
    path = urlparse(reference).path or reference
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def extract_cid(data: Any) -> str | None:
    """Pull the content id out of any of the response shapes Pinata has used."""
    if not isinstance(data, dict):
        return None
    nested = data.get("data")
    if isinstance(nested, dict) and nested.get("cid"):
        return str(nested["cid"])
    for key in ("cid", "IpfsHash", "ipfsHash"):
        if data.get(key):
            return str(data[key])
    return None


class UploadResult(AssetMintModel):
    """Outcome of a content upload."""

    success: bool
    content_hash: str | None = None
    url: str | None = None
    size: int | None = None
    timestamp: str | None = None
    error: str | None = None


class ConnectionTest(AssetMintModel):
    configured: bool
    connected: bool
    latency_ms: float | None = None
    error: str | None = None


@runtime_checkable
class ContentStorageGateway(Protocol):
    """Stores a file or JSON document and returns its content id and URL."""

    async def upload_file(self, reference: str, name: str) -> UploadResult: ...

    async def upload_metadata(self, document: dict[str, Any]) -> UploadResult: ...


class PinataContentGateway:
    """Pinata v3 upload client."""

    def __init__(
        self,
        jwt: str | None,
        gateway_url: str = "https://gateway.pinata.cloud",
        upload_url: str = "https://uploads.pinata.cloud/v3/files",
        api_url: str = "https://api.pinata.cloud",
        timeout_seconds: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._jwt = jwt
        self._gateway_url = gateway_url.rstrip("/")
        self._upload_url = upload_url
        self._api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @property
    def configured(self) -> bool:
        return bool(self._jwt)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def retrieval_url(self, content_hash: str) -> str:
        return f"{self._gateway_url}/ipfs/{content_hash}"

    async def upload_file(self, reference: str, name: str) -> UploadResult:
        """Upload the file at a local path, file:// URI or http(s) URL."""
        if not self._jwt:
            logger.warning("pinata_not_configured", operation="upload_file")
            return UploadResult(success=False, error="Pinata JWT not configured")

        try:
            content = await self._read_reference(reference)
        except (OSError, httpx.HTTPError) as e:
            logger.warning("pinata_file_read_failed", reference=reference, error=str(e))
            return UploadResult(success=False, error=f"Could not read file: {e}")

        logger.info("pinata_uploading_file", name=name, size=len(content))
        return await self._upload(name, content, guess_mime_type(reference))

    async def upload_metadata(self, document: dict[str, Any]) -> UploadResult:
        """Upload a JSON document as <name>-metadata.json."""
        if not self._jwt:
            logger.warning("pinata_not_configured", operation="upload_metadata")
            return UploadResult(success=False, error="Pinata JWT not configured")

        file_name = f"{document.get('name', 'asset')}-metadata.json"
        content = json.dumps(document).encode("utf-8")
        logger.info("pinata_uploading_metadata", name=document.get("name"))
        return await self._upload(file_name, content, "application/json")

    async def test_connection(self) -> ConnectionTest:
        """Check credentials against the authentication endpoint."""
        if not self._jwt:
            return ConnectionTest(configured=False, connected=False, error="PINATA_JWT not set")

        start = time.monotonic()
        try:
            response = await self._client.get(
                f"{self._api_url}/data/testAuthentication",
                headers={"Authorization": f"Bearer {self._jwt}"},
            )
        except httpx.HTTPError as e:
            return ConnectionTest(configured=True, connected=False, error=str(e) or "Network error")

        latency_ms = round((time.monotonic() - start) * 1000, 2)
        if response.is_error:
            return ConnectionTest(
                configured=True,
                connected=False,
                latency_ms=latency_ms,
                error=f"Pinata returned {response.status_code}",
            )
        return ConnectionTest(configured=True, connected=True, latency_ms=latency_ms)

    async def _read_reference(self, reference: str) -> bytes:
        parsed = urlparse(reference)
        if parsed.scheme in ("http", "https"):
            response = await self._client.get(reference)
            response.raise_for_status()
            return response.content
        if parsed.scheme == "file":
            return Path(unquote(parsed.path)).read_bytes()
        return Path(reference).read_bytes()

    async def _upload(self, file_name: str, content: bytes, mime_type: str) -> UploadResult:
        try:
            with log_duration(logger, "pinata_upload", name=file_name):
                response = await self._client.post(
                    self._upload_url,
                    headers={"Authorization": f"Bearer {self._jwt}"},
                    files={"file": (file_name, content, mime_type)},
                )
        except httpx.HTTPError as e:
            return UploadResult(success=False, error=str(e) or "Network error during upload")

        if response.is_error:
            logger.warning(
                "pinata_upload_rejected",
                name=file_name,
                status_code=response.status_code,
            )
            return UploadResult(
                success=False,
                error=f"Upload failed: {response.status_code} - {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError:
            return UploadResult(success=False, error="Failed to parse response")

        cid = extract_cid(data)
        if not cid:
            return UploadResult(success=False, error="Upload response carried no content id")

        nested = data.get("data") if isinstance(data.get("data"), dict) else {}
        logger.info("pinata_upload_succeeded", name=file_name, cid=cid)
        return UploadResult(
            success=True,
            content_hash=cid,
            url=self.retrieval_url(cid),
            size=nested.get("size") or data.get("PinSize"),
            timestamp=nested.get("created_at") or utc_now().isoformat(),
        )
