"""Tests for the high-level StorageAPI facade."""

from pathlib import Path

import pytest

from dstore.core import api as api_module
from dstore.core.api import StorageAPI
from dstore.core.config import DfsConfig, DStoreConfig, LighthouseConfig, TransferConfig
from dstore.core.exceptions import AuthenticationFailed, ConfigurationError


@pytest.fixture
def config(gateway) -> DStoreConfig:
    return DStoreConfig(
        dfs=DfsConfig(endpoint=gateway.url, username="alice", password="secret"),
        lighthouse=LighthouseConfig(
            api_key="test-key",
            upload_url=f"{gateway.url}/api/v0/add",
            info_url=f"{gateway.url}/api/lighthouse/file_info",
            gateway_url=f"{gateway.url}/ipfs",
        ),
        transfer=TransferConfig(chunk_size=4096, timeout=10),
    )


class TestStorageAPI:
    """Facade over both providers."""

    def test_pod_file_round_trip(self, config, make_file, tmp_path: Path) -> None:
        source = make_file("a.bin", 20_000)
        with StorageAPI(config) as api:
            api.create_pod("docs")
            result = api.upload_file(source, "docs", "/in")
            assert result.content_id == "docs:/in/a.bin"
            download = api.download_file("docs", "/in/a.bin", tmp_path / "b.bin")
        assert (tmp_path / "b.bin").read_bytes() == source.read_bytes()
        assert download.size == 20_000

    def test_pods_client_is_logged_in_once(self, config) -> None:
        with StorageAPI(config) as api:
            assert api.pods is api.pods
            assert api.pods.is_authenticated
            assert api.pods.timeout == 10
            assert api.pods.chunk_size == 4096

    def test_open_pod_once(self, config, gateway) -> None:
        with StorageAPI(config) as api:
            api.create_pod("docs")
            gateway.store.get_pod("alice", "docs").is_open = False
            # Already opened through this instance, so no request is made.
            api.open_pod("docs")
            assert not gateway.store.get_pod("alice", "docs").is_open

    def test_share_and_import(self, config, gateway) -> None:
        with StorageAPI(config) as api:
            api.create_pod("docs")
            reference = api.share_pod("docs")
        bob = config.model_copy(
            update={"dfs": DfsConfig(endpoint=gateway.url, username="bob", password="hunter2")}
        )
        with StorageAPI(bob) as api:
            api.import_pod(reference)
        assert gateway.store.get_pod("bob", "docs") is not None

    def test_lighthouse_round_trip(self, config, make_file, tmp_path: Path) -> None:
        source = make_file("c.bin", 5000)
        with StorageAPI(config) as api:
            cid = api.add_file(source).content_id
            assert api.file_info(cid).size == 5000
            api.get_file(cid, tmp_path / "c.copy")
        assert (tmp_path / "c.copy").read_bytes() == source.read_bytes()

    def test_upload_directory(self, config, tmp_path: Path) -> None:
        (tmp_path / "tree").mkdir()
        (tmp_path / "tree" / "x.txt").write_text("x")
        with StorageAPI(config) as api:
            api.create_pod("docs")
            results = api.upload_directory(tmp_path / "tree", "docs", "/t")
        assert list(results) == ["/t/x.txt"]

    def test_missing_sections(self) -> None:
        api = StorageAPI(DStoreConfig())
        with pytest.raises(ConfigurationError):
            api.pods
        with pytest.raises(ConfigurationError):
            api.lighthouse

    def test_bad_credentials(self, config) -> None:
        bad = config.model_copy(
            update={"dfs": config.dfs.model_copy(update={"password": "nope"})}
        )
        with pytest.raises(AuthenticationFailed):
            StorageAPI(bad).pods


class TestConvenienceFunctions:
    def test_upload_and_download(self, config, make_file, tmp_path: Path) -> None:
        with StorageAPI(config) as api:
            api.create_pod("docs")
        source = make_file("q.bin", 100)
        result = api_module.upload_file(source, "docs", "/", config=config)
        assert result.size == 100
        api_module.download_file("docs", "/q.bin", tmp_path / "q.copy", config=config)
        assert (tmp_path / "q.copy").read_bytes() == source.read_bytes()
