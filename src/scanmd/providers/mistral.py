"""Mistral OCR backend.

Recognition takes three dependent requests: the PDF is uploaded to the
files endpoint, a signed URL is requested for the uploaded file, and the OCR
endpoint is pointed at that URL.  Every non‑success response and every
transport failure is reported as a single :class:`RemoteServiceError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from scanmd.config import PipelineConfig
from scanmd.errors import ConfigurationError, FilesystemError, RemoteServiceError
from scanmd.providers.base import OcrImage, OcrPage, OcrResult, Stage, StageCallback, strip_data_uri

logger = logging.getLogger(__name__)


class MistralProvider:
    provider_id = "mistral"
    name = "Mistral AI"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.mistral.ai/v1",
        model: str = "mistral-ocr-latest",
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("The mistral provider requires an API key")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "MistralProvider":
        return cls(
            api_key=config.api_key or "",
            base_url=config.base_url,
            model=config.model,
            timeout=config.request_timeout,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    @staticmethod
    async def _send(client: httpx.AsyncClient, step: str, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"Mistral {step} failed: {exc}") from exc
        if not response.is_success:
            raise RemoteServiceError(f"Mistral {step} failed: {response.status_code} {response.text}")
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(f"Mistral {step} failed: invalid JSON response") from exc

    async def upload_file(self, client: httpx.AsyncClient, path: Path) -> str:
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise FilesystemError(f"Cannot read {path}: {exc}") from exc
        files = {"file": (path.name or "file.pdf", content, "application/pdf")}
        data = await self._send(client, "upload", "POST", "/files", files=files, data={"purpose": "ocr"})
        try:
            return str(data["id"])
        except KeyError as exc:
            raise RemoteServiceError("Mistral upload failed: response has no file id") from exc

    async def get_signed_url(self, client: httpx.AsyncClient, file_id: str) -> str:
        data = await self._send(client, "signed URL", "GET", f"/files/{file_id}/url")
        try:
            return str(data["url"])
        except KeyError as exc:
            raise RemoteServiceError("Mistral signed URL failed: response has no url") from exc

    async def call_ocr_api(self, client: httpx.AsyncClient, document_url: str) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "document": {"type": "document_url", "document_url": document_url},
            "include_image_base64": True,
        }
        return await self._send(client, "OCR", "POST", "/ocr", json=payload)

    @staticmethod
    def _parse_pages(data: Dict[str, Any]) -> OcrResult:
        pages = []
        try:
            for position, raw in enumerate(data["pages"]):
                images = []
                for img in raw.get("images") or []:
                    b64 = img.get("image_base64")
                    images.append(OcrImage(id=str(img["id"]), base64=strip_data_uri(b64) if b64 else None))
                pages.append(OcrPage(index=int(raw.get("index", position)), markdown=raw.get("markdown", ""),
                                     images=images))
        except (KeyError, TypeError, AttributeError) as exc:
            raise RemoteServiceError(f"Mistral OCR failed: unexpected response shape ({exc})") from exc
        return OcrResult(pages=pages)

    async def process_file(self, path: Path, progress: Optional[StageCallback] = None) -> OcrResult:
        report = progress or (lambda stage: None)
        async with self._client() as client:
            report(Stage.SUBMITTED)
            file_id = await self.upload_file(client, path)
            logger.debug("Uploaded %s as %s", path.name, file_id)

            url = await self.get_signed_url(client, file_id)
            report(Stage.ACCESS_GRANTED)

            report(Stage.RECOGNITION_REQUESTED)
            data = await self.call_ocr_api(client, url)
            report(Stage.RECOGNITION_COMPLETE)

        result = self._parse_pages(data)
        logger.debug("Mistral returned %d pages for %s", len(result.pages), path.name)
        return result
