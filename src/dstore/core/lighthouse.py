"""Client for Lighthouse style gateways: static API key, content identifiers."""

import logging
import os
from pathlib import Path
from typing import Optional

import requests

from .auth import BearerAuth, bearer_context
from .client import GatewayClient
from .envelopes import LighthouseEnvelope
from .exceptions import ValidationError
from .models import DownloadResult, FileInfo, RemoteLocator, UploadResult
from .progress import ProgressReporter
from .streams import DEFAULT_CHUNK_SIZE
from .transfer import DownloadEngine, Sink, Source, UploadEngine


logger = logging.getLogger(__name__)


class LighthouseClient(GatewayClient):
    """Bearer-authenticated client addressing content by identifier (CID).

    Uploads go to the upload node, metadata comes from the API host and
    downloads are served by the public gateway, so each has its own URL.
    """

    auth_strategy = BearerAuth()
    envelope = LighthouseEnvelope()

    UPLOAD_URL = "https://node.lighthouse.storage/api/v0/add"
    INFO_URL = "https://api.lighthouse.storage/api/lighthouse/file_info"
    GATEWAY_URL = "https://gateway.lighthouse.storage/ipfs"

    def __init__(
        self,
        api_key: Optional[str] = None,
        upload_url: str = UPLOAD_URL,
        info_url: str = INFO_URL,
        gateway_url: str = GATEWAY_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        authenticated_downloads: bool = False,
    ) -> None:
        """Initialize the Lighthouse client.

        Args:
            api_key: API key. If not provided, read from LIGHTHOUSE_API_KEY.
            upload_url: Upload route
            info_url: File info route
            gateway_url: Download gateway prefix, the CID is appended
            session: Optional requests session to reuse
            timeout: Optional per-request timeout in seconds
            chunk_size: Bytes read or received per chunk
            authenticated_downloads: Send the API key with downloads too
        """
        api_key = api_key or os.getenv("LIGHTHOUSE_API_KEY")
        context = bearer_context(upload_url, api_key)
        super().__init__(upload_url, context, session, timeout, chunk_size)
        self.upload_url = upload_url
        self.info_url = info_url
        self.gateway_url = gateway_url.rstrip("/")
        self.authenticated_downloads = authenticated_downloads

    def upload_file(
        self,
        local_path: Source,
        file_name: Optional[str] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> UploadResult:
        """Upload a file and return its name, CID and size."""
        if file_name is None:
            name = getattr(local_path, "name", local_path)
            if not isinstance(name, (str, os.PathLike)):
                raise ValidationError("file_name", None, "required when uploading a stream")
            file_name = Path(name).name
        return UploadEngine(self).upload(
            self.upload_url,
            local_path,
            file_name,
            # The CID is unknown until the gateway answers.
            RemoteLocator(content_id=file_name),
            fields={"resourceName": file_name},
            file_field="FileData",
            reporter=reporter,
        )

    def get_file_info(self, cid: str) -> FileInfo:
        """Fetch size, name, encryption flag and MIME type of a CID."""
        if not cid:
            raise ValidationError("cid", cid, "must not be empty")
        body = self._request_json(
            "GET", self.info_url, authenticated=False, params={"cid": cid}
        )
        return self.envelope.decode_file_info(body)

    def download_file(
        self,
        cid: str,
        destination: Optional[Sink] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> DownloadResult:
        """Download the content behind ``cid`` to ``destination`` (default: the CID)."""
        if not cid:
            raise ValidationError("cid", cid, "must not be empty")
        return DownloadEngine(self).download(
            f"{self.gateway_url}/{cid}",
            destination if destination is not None else cid,
            RemoteLocator(content_id=cid),
            authenticated=self.authenticated_downloads,
            reporter=reporter,
        )

    def url(self, path: str) -> str:
        # Routes here are absolute URLs rather than paths under one endpoint.
        if path.startswith(("http://", "https://")):
            return path
        return super().url(path)

