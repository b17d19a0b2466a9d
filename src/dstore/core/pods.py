"""Client for FairOS-dfs style gateways: cookie sessions and pods."""

import fnmatch
import logging
import os
import posixpath
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional, Union

import requests

from .auth import CookieAuth, cookie_token_from_header
from .client import GatewayClient
from .envelopes import DfsEnvelope, failure_message, json_body
from .exceptions import (
    AuthenticationFailed,
    DecodeError,
    DStoreError,
    PodError,
    UploadFailed,
    ValidationError,
)
from .models import (
    CredentialContext,
    DownloadResult,
    FileInfo,
    RemoteLocator,
    ShareReference,
    TokenKind,
    UploadResult,
)
from .progress import ProgressReporter
from .streams import DEFAULT_CHUNK_SIZE
from .transfer import DownloadEngine, Sink, Source, UploadEngine


logger = logging.getLogger(__name__)


class PodClient(GatewayClient):
    """Session-authenticated client for pod lifecycle and file transfer.

    Typical flow::

        client = PodClient("http://localhost:9090", "alice", "secret")
        client.login()
        client.new_pod("photos")
        client.upload_file("photos", "cat.jpg", "/")
        reference = client.share_pod("photos")
    """

    auth_strategy = CookieAuth()
    envelope = DfsEnvelope()

    LOGIN_PATH = "/v2/user/login"
    BLOCK_SIZE = 1_000_000  # 1 MB

    def __init__(
        self,
        endpoint: str,
        username: str,
        password: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        block_size: int = BLOCK_SIZE,
        context: Optional[CredentialContext] = None,
    ) -> None:
        """Initialize the pod client.

        Args:
            endpoint: Gateway base URL
            username: Account name used by login()
            password: Account password, also sent when opening or sharing pods
            session: Optional requests session to reuse
            timeout: Optional per-request timeout in seconds
            chunk_size: Bytes read or received per chunk
            block_size: Storage block size hint sent with uploads
            context: An already authenticated context to reuse
        """
        super().__init__(endpoint, context, session, timeout, chunk_size)
        self.username = username
        self.password = password
        self.block_size = block_size

    # Session
    def login(self) -> CredentialContext:
        """Exchange username and password for a session cookie.

        Returns a new context; any previous context is replaced, never modified.
        """
        logger.info(f"Logging in to {self.endpoint} as {self.username}")
        response = self.send(
            "POST",
            self.url(self.LOGIN_PATH),
            authenticated=False,
            json={"username": self.username, "password": self.password},
        )
        with response:
            if not response.ok:
                message = failure_message(response)
                logger.error(f"Login rejected ({response.status_code}): {message}")
                raise AuthenticationFailed(message, response.status_code)
            token = cookie_token_from_header(response.headers.get("Set-Cookie"))

        self._context = CredentialContext(
            endpoint=self.endpoint, token=token, token_kind=TokenKind.COOKIE
        )
        logger.info("Login was successful")
        return self._context

    # Pod lifecycle
    def _pod_request(self, action: str, path: str, pod_name: str) -> requests.Response:
        if not pod_name:
            raise ValidationError("pod_name", pod_name, "must not be empty")
        logger.info(f"{action.capitalize()} pod request for {pod_name}")
        return self._make_request(
            "POST",
            path,
            error_cls=partial(PodError, action=action),
            json={"podName": pod_name, "password": self.password},
        )

    def new_pod(self, pod_name: str) -> None:
        """Create a pod."""
        self._pod_request("new", "/v1/pod/new", pod_name).close()
        logger.info(f"Pod {pod_name} created")

    def open_pod(self, pod_name: str) -> None:
        """Open a pod so its files can be transferred."""
        self._pod_request("open", "/v1/pod/open", pod_name).close()
        logger.info(f"Pod {pod_name} opened")

    def share_pod(self, pod_name: str) -> ShareReference:
        """Share a pod and return the reference others import it with."""
        with self._pod_request("share", "/v1/pod/share", pod_name) as response:
            body = json_body(response)
        if not body.get("podSharingReference"):
            raise DecodeError("Share response has no podSharingReference", str(body))
        reference = ShareReference(reference=body["podSharingReference"])
        logger.info(f"Pod {pod_name} shared")
        return reference

    def receive_pod(self, reference: Union[str, ShareReference]) -> None:
        """Import a pod someone shared, by its sharing reference."""
        reference = str(reference)
        if not reference:
            raise ValidationError("reference", reference, "must not be empty")
        logger.info(f"Receive pod request for reference {reference}")
        self._make_request(
            "GET",
            "/v1/pod/receive",
            error_cls=partial(PodError, action="receive"),
            params={"sharingRef": reference},
        ).close()
        logger.info("Pod received")

    # Files
    def upload_file(
        self,
        pod_name: str,
        local_path: Source,
        dir_path: str = "/",
        file_name: Optional[str] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> UploadResult:
        """Upload a local file into ``dir_path`` of an open pod.

        Args:
            pod_name: Target pod
            local_path: Local path or readable binary handle
            dir_path: Remote directory (default: pod root)
            file_name: Remote file name (default: local file name)
            reporter: Optional progress reporter

        Returns:
            Upload result, with ``content_id`` of the form ``pod:/dir/name``
        """
        if file_name is None:
            name = getattr(local_path, "name", local_path)
            if not isinstance(name, (str, os.PathLike)):
                raise ValidationError("file_name", None, "required when uploading a stream")
            file_name = Path(name).name
        remote_path = posixpath.join(dir_path or "/", file_name)
        locator = RemoteLocator(pod=pod_name, path=remote_path)
        return UploadEngine(self).upload(
            self.url("/v1/file/upload"),
            local_path,
            file_name,
            locator,
            fields={
                "podName": pod_name,
                "dirPath": dir_path or "/",
                "blockSize": str(self.block_size),
            },
            file_field="files",
            reporter=reporter,
        )

    def download_file(
        self,
        pod_name: str,
        remote_path: str,
        destination: Optional[Sink] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> DownloadResult:
        """Download ``remote_path`` of a pod to ``destination`` (default: its file name)."""
        if destination is None:
            destination = posixpath.basename(remote_path)
        return DownloadEngine(self).download(
            self.url("/v1/file/download"),
            destination,
            RemoteLocator(pod=pod_name, path=remote_path),
            method="POST",
            form={"podName": pod_name, "filePath": remote_path},
            reporter=reporter,
        )

    def stat_file(self, pod_name: str, remote_path: str) -> FileInfo:
        """Fetch metadata of a file in a pod."""
        body = self._request_json(
            "GET",
            "/v1/file/stat",
            error_cls=partial(PodError, action="stat"),
            params={"podName": pod_name, "filePath": remote_path},
        )
        return self.envelope.decode_file_info(body)

    def upload_directory(
        self,
        pod_name: str,
        local_dir: Union[str, Path],
        remote_dir: str = "/",
        exclude_patterns: Optional[List[str]] = None,
        max_workers: int = 4,
        reporter: Optional[ProgressReporter] = None,
    ) -> Dict[str, UploadResult]:
        """Upload a directory tree into a pod, several files at a time.

        Each file is one transfer on its own worker thread. All workers share
        this client's credential context and ``reporter``.

        Returns:
            Upload results keyed by remote path

        Raises:
            UploadFailed: if any file failed, after all others have finished
        """
        local_dir = Path(local_dir)
        if not local_dir.is_dir():
            raise ValidationError("local_dir", str(local_dir), "is not a directory")
        exclude_patterns = exclude_patterns or []

        jobs = []
        for file_path in sorted(local_dir.rglob("*")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(local_dir).as_posix()
            if any(fnmatch.fnmatch(relative, pattern) for pattern in exclude_patterns):
                continue
            remote_parent = posixpath.join(remote_dir, posixpath.dirname(relative))
            jobs.append((file_path, remote_parent.rstrip("/") or "/"))

        logger.info(f"Starting directory upload: {len(jobs)} files")
        results: Dict[str, UploadResult] = {}
        failed: Dict[str, str] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(
                    self.upload_file, pod_name, str(path), parent, None, reporter
                ): posixpath.join(parent, path.name)
                for path, parent in jobs
            }
            for future in as_completed(futures):
                remote_path = futures[future]
                try:
                    results[remote_path] = future.result()
                    logger.info(f"Uploaded ({len(results)}/{len(jobs)}): {remote_path}")
                except DStoreError as e:
                    logger.error(f"Failed to upload {remote_path}: {e}")
                    failed[remote_path] = e.message

        if failed:
            summary = "; ".join(f"{path}: {message}" for path, message in sorted(failed.items()))
            raise UploadFailed(f"Failed to upload {len(failed)} of {len(jobs)} files: {summary}")
        logger.info(f"Directory upload completed: {len(results)} files uploaded")
        return results
