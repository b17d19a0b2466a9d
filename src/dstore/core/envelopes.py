"""Gateway response envelopes.

Every non-success response is expected to carry ``{"message": ...}``. Success
bodies differ per provider; an envelope shape knows how to pull the name,
content identifier and size out of its provider's upload and info responses.
"""

import logging
from typing import Any, Dict

import requests

from .exceptions import DecodeError
from .models import FileInfo, RemoteLocator, UploadResult


logger = logging.getLogger(__name__)


def failure_message(response: requests.Response) -> str:
    """Decode the ``message`` of a failure envelope, falling back to the status."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return f"HTTP {response.status_code}"


def json_body(response: requests.Response) -> Dict[str, Any]:
    """Decode a success body as a JSON object."""
    try:
        body = response.json()
    except ValueError as e:
        raise DecodeError(
            f"Response from {response.url} is not valid JSON", response.text
        ) from e
    if not isinstance(body, dict):
        raise DecodeError(
            f"Response from {response.url} is not a JSON object", response.text
        )
    return body


def _require(body: Dict[str, Any], key: str) -> Any:
    try:
        return body[key]
    except KeyError:
        raise DecodeError(f"Response is missing field '{key}'", str(body)) from None


def _as_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise DecodeError(f"Invalid size value: {value!r}") from None
    if size < 0:
        raise DecodeError(f"Invalid size value: {value!r}")
    return size


class ResponseEnvelopeShape:
    """Maps a provider's success bodies onto dstore models."""

    def decode_upload(
        self, body: Dict[str, Any], locator: RemoteLocator, bytes_sent: int
    ) -> UploadResult:
        raise NotImplementedError

    def decode_file_info(self, body: Dict[str, Any]) -> FileInfo:
        raise NotImplementedError


class DfsEnvelope(ResponseEnvelopeShape):
    """FairOS-dfs style bodies.

    Upload answers ``{"Responses": [{"file_name": ..., "message": ...}]}``;
    the content is addressed by pod and path, so the content identifier is the
    locator itself.
    """

    def decode_upload(
        self, body: Dict[str, Any], locator: RemoteLocator, bytes_sent: int
    ) -> UploadResult:
        responses = _require(body, "Responses")
        if not isinstance(responses, list) or not responses:
            raise DecodeError("Upload response lists no files", str(body))
        entry = responses[0]
        if not isinstance(entry, dict):
            raise DecodeError("Upload response entry is not an object", str(body))
        name = _require(entry, "file_name")
        return UploadResult(name=name, content_id=str(locator), size=bytes_sent)

    def decode_file_info(self, body: Dict[str, Any]) -> FileInfo:
        return FileInfo(
            size=_as_size(_require(body, "fileSize")),
            content_id=f"{_require(body, 'podName')}:{_require(body, 'filePath')}",
            encryption=False,
            name=_require(body, "fileName"),
            mime_type=body.get("contentType"),
        )


class LighthouseEnvelope(ResponseEnvelopeShape):
    """Lighthouse style bodies: ``{"Name", "Hash", "Size"}`` with size as a string."""

    def decode_upload(
        self, body: Dict[str, Any], locator: RemoteLocator, bytes_sent: int
    ) -> UploadResult:
        return UploadResult(
            name=_require(body, "Name"),
            content_id=_require(body, "Hash"),
            size=_as_size(_require(body, "Size")),
        )

    def decode_file_info(self, body: Dict[str, Any]) -> FileInfo:
        return FileInfo(
            size=_as_size(_require(body, "fileSizeInBytes")),
            content_id=_require(body, "cid"),
            encryption=bool(body.get("encryption", False)),
            name=_require(body, "fileName"),
            mime_type=body.get("mimeType"),
        )
