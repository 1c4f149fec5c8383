from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from tokenforge.core.config import LaunchSettings
from tokenforge.core.errors import (
    ConfigurationError,
    NetworkError,
    ProtocolError,
    RemoteError,
    UploadError,
    UploadTimeoutError,
    ValidationError,
)
from tokenforge.launch.request import MetadataJson
from tokenforge.launch.uploader import MetadataUploader

SECURE_URL = "https://res.cloudinary.com/demo-cloud/raw/upload/v1/token-metadata-1700000000000.json"


def make_response(status_code: int, *, json_data: Any = None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", "https://api.cloudinary.com/v1_1/demo-cloud/raw/upload")
    if text is not None:
        return httpx.Response(status_code=status_code, text=text, request=request)
    return httpx.Response(status_code=status_code, json=json_data, request=request)


class RecordingRequest:
    def __init__(self, outcome: httpx.Response | Exception) -> None:
        self.outcome = outcome
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, url: str, *, data: dict[str, str], files: dict[str, Any], timeout: float) -> httpx.Response:
        self.calls.append({"url": url, "data": data, "files": files, "timeout": timeout})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def make_uploader(outcome: httpx.Response | Exception, **kwargs: Any) -> tuple[MetadataUploader, RecordingRequest]:
    request = RecordingRequest(outcome)
    kwargs.setdefault("cloud_name", "demo-cloud")
    uploader = MetadataUploader(_request=request, _clock=lambda: 1_700_000_000.0, **kwargs)
    return uploader, request


DOCUMENT = MetadataJson(name="My Token", symbol="MTK", description="A community token")


@pytest.mark.asyncio
async def test_upload_returns_secure_url() -> None:
    uploader, request = make_uploader(make_response(200, json_data={"secure_url": SECURE_URL}))

    uri = await uploader.upload(DOCUMENT)

    assert uri == SECURE_URL
    call = request.calls[0]
    assert call["url"] == "https://api.cloudinary.com/v1_1/demo-cloud/raw/upload"
    assert call["data"] == {"upload_preset": "token_launchpad_upload_preset", "resource_type": "raw"}
    assert call["timeout"] == 10.0
    filename, blob, content_type = call["files"]["file"]
    assert filename == "token-metadata-1700000000000.json"
    assert content_type == "application/json"
    assert json.loads(blob) == {
        "name": "My Token",
        "symbol": "MTK",
        "description": "A community token",
        "image": "",
        "attributes": [],
    }


@pytest.mark.asyncio
async def test_non_success_status_is_remote_error() -> None:
    uploader, _ = make_uploader(make_response(400, json_data={"error": {"message": "Upload preset not found"}}))

    with pytest.raises(RemoteError) as excinfo:
        await uploader.upload(DOCUMENT)

    assert excinfo.value.status_code == 400
    assert excinfo.value.body == {"error": {"message": "Upload preset not found"}}
    assert isinstance(excinfo.value, UploadError)


@pytest.mark.asyncio
async def test_timeout_is_upload_timeout_error() -> None:
    uploader, _ = make_uploader(httpx.ReadTimeout("timed out"))

    with pytest.raises(UploadTimeoutError):
        await uploader.upload(DOCUMENT)


@pytest.mark.asyncio
async def test_no_response_is_network_error() -> None:
    uploader, _ = make_uploader(httpx.ConnectError("connection refused"))

    with pytest.raises(NetworkError):
        await uploader.upload(DOCUMENT)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        make_response(200, json_data={"public_id": "abc"}),
        make_response(200, json_data={"secure_url": ""}),
        make_response(200, text="<html>ok</html>"),
    ],
)
async def test_missing_secure_url_is_protocol_error(response: httpx.Response) -> None:
    uploader, _ = make_uploader(response)

    with pytest.raises(ProtocolError):
        await uploader.upload(DOCUMENT)


@pytest.mark.asyncio
async def test_missing_cloud_name_fails_before_request() -> None:
    uploader, request = make_uploader(make_response(200, json_data={"secure_url": SECURE_URL}), cloud_name=None)

    with pytest.raises(ConfigurationError):
        await uploader.upload(DOCUMENT)

    assert request.calls == []


@pytest.mark.asyncio
async def test_empty_name_is_validation_error() -> None:
    uploader, request = make_uploader(make_response(200, json_data={"secure_url": SECURE_URL}))

    with pytest.raises(ValidationError):
        await uploader.upload(MetadataJson(name="", symbol="MTK"))

    assert request.calls == []


def test_from_settings_uses_configured_store(settings: LaunchSettings) -> None:
    uploader = MetadataUploader.from_settings(settings)

    assert uploader.cloud_name == "demo-cloud"
    assert uploader.timeout == 10.0
    assert uploader.upload_url.endswith("/demo-cloud/raw/upload")
