"""Programmatic API for dstore operations."""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from .config import DStoreConfig, load_config
from .exceptions import ConfigurationError
from .lighthouse import LighthouseClient
from .models import DownloadResult, FileInfo, ShareReference, UploadResult
from .pods import PodClient
from .progress import ProgressReporter


logger = logging.getLogger(__name__)


class StorageAPI:
    """High-level API over the configured gateways."""

    def __init__(self, config: Optional[DStoreConfig] = None):
        """Initialize the storage API.

        Args:
            config: Loaded configuration (default: ``load_config()``)
        """
        self.config = config or load_config()
        self._pods: Optional[PodClient] = None
        self._lighthouse: Optional[LighthouseClient] = None
        self._open_pods = set()

    def __enter__(self) -> "StorageAPI":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        for client in (self._pods, self._lighthouse):
            if client is not None:
                client.close()

    @property
    def pods(self) -> PodClient:
        """Pod client, logged in on first use."""
        if self._pods is None:
            dfs = self.config.dfs
            if dfs is None:
                raise ConfigurationError(
                    "dfs settings required. Set them in the config file or via "
                    "DSTORE_DFS_ENDPOINT, DSTORE_DFS_USERNAME and DSTORE_DFS_PASSWORD."
                )
            client = PodClient(
                dfs.endpoint,
                dfs.username,
                dfs.password,
                timeout=self.config.transfer.timeout,
                chunk_size=self.config.transfer.chunk_size,
                block_size=dfs.block_size,
            )
            client.login()
            self._pods = client
        return self._pods

    @property
    def lighthouse(self) -> LighthouseClient:
        """Lighthouse client built from the configured API key."""
        if self._lighthouse is None:
            settings = self.config.lighthouse
            if settings is None:
                raise ConfigurationError(
                    "lighthouse settings required. Set them in the config file or via "
                    "LIGHTHOUSE_API_KEY."
                )
            self._lighthouse = LighthouseClient(
                settings.api_key,
                upload_url=settings.upload_url,
                info_url=settings.info_url,
                gateway_url=settings.gateway_url,
                timeout=self.config.transfer.timeout,
                chunk_size=self.config.transfer.chunk_size,
            )
        return self._lighthouse

    # Pods
    def create_pod(self, name: str) -> None:
        self.pods.new_pod(name)
        self._open_pods.add(name)

    def open_pod(self, name: str) -> None:
        """Open a pod once per API instance."""
        if name not in self._open_pods:
            self.pods.open_pod(name)
            self._open_pods.add(name)

    def share_pod(self, name: str) -> ShareReference:
        return self.pods.share_pod(name)

    def import_pod(self, reference: Union[str, ShareReference]) -> None:
        self.pods.receive_pod(reference)

    # File Operations
    def upload_file(
        self,
        local_path: Union[str, Path],
        pod: str,
        dir_path: str = "/",
        reporter: Optional[ProgressReporter] = None,
    ) -> UploadResult:
        """Open ``pod`` if needed and upload a file into ``dir_path``."""
        self.open_pod(pod)
        return self.pods.upload_file(pod, str(local_path), dir_path, reporter=reporter)

    def download_file(
        self,
        pod: str,
        remote_path: str,
        local_path: Optional[Union[str, Path]] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> DownloadResult:
        """Open ``pod`` if needed and download ``remote_path``."""
        self.open_pod(pod)
        if local_path is None:
            local_path = Path(remote_path).name
        return self.pods.download_file(pod, remote_path, str(local_path), reporter=reporter)

    def upload_directory(
        self,
        local_dir: Union[str, Path],
        pod: str,
        remote_dir: str = "/",
        reporter: Optional[ProgressReporter] = None,
    ) -> Dict[str, UploadResult]:
        self.open_pod(pod)
        return self.pods.upload_directory(pod, local_dir, remote_dir, reporter=reporter)

    # Content-addressed storage
    def add_file(
        self, local_path: Union[str, Path], reporter: Optional[ProgressReporter] = None
    ) -> UploadResult:
        """Upload a file to Lighthouse and return its CID."""
        return self.lighthouse.upload_file(str(local_path), reporter=reporter)

    def get_file(
        self,
        cid: str,
        local_path: Optional[Union[str, Path]] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> DownloadResult:
        destination = str(local_path) if local_path is not None else None
        return self.lighthouse.download_file(cid, destination, reporter=reporter)

    def file_info(self, cid: str) -> FileInfo:
        return self.lighthouse.get_file_info(cid)


# Convenience functions for quick usage
def upload_file(
    local_path: Union[str, Path],
    pod: str,
    dir_path: str = "/",
    config: Optional[DStoreConfig] = None,
) -> UploadResult:
    """Quick function to upload a file into a pod."""
    with StorageAPI(config) as api:
        return api.upload_file(local_path, pod, dir_path)


def download_file(
    pod: str,
    remote_path: str,
    local_path: Optional[Union[str, Path]] = None,
    config: Optional[DStoreConfig] = None,
) -> DownloadResult:
    """Quick function to download a file from a pod."""
    with StorageAPI(config) as api:
        return api.download_file(pod, remote_path, local_path)
