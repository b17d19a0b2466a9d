"""Tests for configuration loading."""

from pathlib import Path

import pytest

from dstore.core.config import DStoreConfig, load_config
from dstore.core.exceptions import ConfigurationError
from dstore.core.streams import DEFAULT_CHUNK_SIZE


def write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """YAML file first, then environment overrides."""

    def test_reads_yaml(self, tmp_path: Path) -> None:
        path = write(
            tmp_path / "config.yaml",
            "dfs:\n"
            "  endpoint: http://localhost:9090\n"
            "  username: alice\n"
            "  password: secret\n"
            "transfer:\n"
            "  chunk_size: 8192\n",
        )
        config = load_config(path, environ={})
        assert config.dfs.endpoint == "http://localhost:9090"
        assert config.dfs.block_size == 1_000_000
        assert config.transfer.chunk_size == 8192
        assert config.lighthouse is None

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        path = write(
            tmp_path / "config.yaml",
            "dfs:\n  endpoint: http://a\n  username: alice\n  password: secret\n",
        )
        config = load_config(
            path,
            environ={
                "DSTORE_DFS_ENDPOINT": "http://b",
                "LIGHTHOUSE_API_KEY": "key",
                "DSTORE_TIMEOUT": "2.5",
            },
        )
        assert config.dfs.endpoint == "http://b"
        assert config.dfs.username == "alice"
        assert config.lighthouse.api_key == "key"
        assert config.transfer.timeout == 2.5

    def test_environment_only(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr("dstore.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
        config = load_config(
            environ={
                "DSTORE_DFS_ENDPOINT": "http://gw",
                "DSTORE_DFS_USERNAME": "bob",
                "DSTORE_DFS_PASSWORD": "pw",
            }
        )
        assert config.dfs.username == "bob"
        assert config.transfer.chunk_size == DEFAULT_CHUNK_SIZE
        assert config.transfer.timeout is None

    def test_defaults(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr("dstore.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
        assert load_config(environ={}) == DStoreConfig()

    def test_explicit_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "nope.yaml", environ={})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = write(tmp_path / "config.yaml", "dfs: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={})

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = write(tmp_path / "config.yaml", "- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={})

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = write(tmp_path / "config.yaml", "transfer:\n  chunk_size: 10\n")
        with pytest.raises(ConfigurationError):
            load_config(path, environ={})

    def test_incomplete_section(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr("dstore.core.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")
        with pytest.raises(ConfigurationError):
            load_config(environ={"DSTORE_DFS_ENDPOINT": "http://gw"})
