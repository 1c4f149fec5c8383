"""Upload the off-chain metadata document to Cloudinary."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from tokenforge.core.config import DEFAULT_UPLOAD_PRESET, LaunchSettings
from tokenforge.core.errors import (
    ConfigurationError,
    NetworkError,
    ProtocolError,
    RemoteError,
    UploadTimeoutError,
    ValidationError,
)

from .request import MetadataJson

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"
UPLOAD_TIMEOUT = 10.0

UploadRequestFn = Callable[..., Awaitable[httpx.Response]]


async def _post_multipart(
    url: str,
    *,
    data: dict[str, str],
    files: dict[str, tuple[str, bytes, str]],
    timeout: float,
) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(url, data=data, files=files)


@dataclass
class MetadataUploader:
    """Turns a metadata document into a durable URI with one multipart POST."""

    cloud_name: str | None
    upload_preset: str = DEFAULT_UPLOAD_PRESET
    timeout: float = UPLOAD_TIMEOUT
    _request: UploadRequestFn | None = None
    _clock: Callable[[], float] = time.time

    def __post_init__(self) -> None:
        if self._request is None:
            self._request = _post_multipart

    @classmethod
    def from_settings(cls, settings: LaunchSettings) -> MetadataUploader:
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            upload_preset=settings.cloudinary_upload_preset,
            timeout=settings.upload_timeout,
        )

    @property
    def upload_url(self) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.cloud_name}/raw/upload"

    def check_configured(self) -> None:
        if not self.cloud_name:
            raise ConfigurationError(
                "Cloud name is not configured. Set TOKENFORGE_CLOUDINARY_CLOUD_NAME or cloudinary_cloud_name."
            )

    async def upload(self, document: MetadataJson) -> str:
        """Upload `document` and return the store's `secure_url`."""
        if not document.name or not document.symbol:
            raise ValidationError("Token metadata must include name and symbol.")
        self.check_configured()

        blob = json.dumps(document.model_dump()).encode("utf-8")
        filename = f"token-metadata-{int(self._clock() * 1000)}.json"
        form = {"upload_preset": self.upload_preset, "resource_type": "raw"}
        files = {"file": (filename, blob, "application/json")}

        try:
            response = await self._request(  # type: ignore[misc]
                self.upload_url, data=form, files=files, timeout=self.timeout
            )
        except httpx.TimeoutException as exc:
            raise UploadTimeoutError("Request to the metadata store timed out. Try again later.") from exc
        except httpx.RequestError as exc:
            raise NetworkError(
                f"No response received from the metadata store ({exc}). Check your network connection."
            ) from exc

        if not response.is_success:
            body = _response_body(response)
            logger.error("Metadata upload failed with status %s: %s", response.status_code, body)
            raise RemoteError(response.status_code, body)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProtocolError("Metadata store returned a non-JSON response.") from exc
        secure_url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not isinstance(secure_url, str) or not secure_url:
            raise ProtocolError("Invalid response from the metadata store. Missing secure_url in response data.")

        logger.info("Uploaded metadata %s to %s", filename, secure_url)
        return secure_url


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = ["CLOUDINARY_API_BASE", "MetadataUploader", "UPLOAD_TIMEOUT"]
