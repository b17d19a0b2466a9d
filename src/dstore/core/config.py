"""Configuration models and loader.

Settings come from an optional YAML file, then environment variables override
individual values::

    dfs:
      endpoint: http://localhost:9090
      username: alice
      password: secret
    lighthouse:
      api_key: ...
    transfer:
      chunk_size: 65536
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .streams import DEFAULT_CHUNK_SIZE


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/dstore/config.yaml")

ENV_OVERRIDES = {
    "DSTORE_DFS_ENDPOINT": ("dfs", "endpoint"),
    "DSTORE_DFS_USERNAME": ("dfs", "username"),
    "DSTORE_DFS_PASSWORD": ("dfs", "password"),
    "LIGHTHOUSE_API_KEY": ("lighthouse", "api_key"),
    "DSTORE_CHUNK_SIZE": ("transfer", "chunk_size"),
    "DSTORE_TIMEOUT": ("transfer", "timeout"),
}


class DfsConfig(BaseModel):
    """FairOS-dfs gateway account."""

    endpoint: str = Field(..., min_length=1, description="Gateway base URL")
    username: str = Field(..., min_length=1, description="Account name")
    password: str = Field(..., description="Account password")
    block_size: int = Field(1_000_000, ge=1, description="Block size hint for uploads")


class LighthouseConfig(BaseModel):
    """Lighthouse gateway account."""

    api_key: str = Field(..., min_length=1, description="Lighthouse API key")
    upload_url: str = Field("https://node.lighthouse.storage/api/v0/add")
    info_url: str = Field("https://api.lighthouse.storage/api/lighthouse/file_info")
    gateway_url: str = Field("https://gateway.lighthouse.storage/ipfs")


class TransferConfig(BaseModel):
    """Settings shared by all transfers."""

    chunk_size: int = Field(
        DEFAULT_CHUNK_SIZE, ge=1024, le=64 * 1024 * 1024, description="Bytes per chunk"
    )
    timeout: Optional[float] = Field(
        None, gt=0, description="Per-request timeout in seconds, none by default"
    )


class DStoreConfig(BaseModel):
    """Top-level configuration."""

    dfs: Optional[DfsConfig] = None
    lighthouse: Optional[LighthouseConfig] = None
    transfer: TransferConfig = Field(default_factory=TransferConfig)


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> DStoreConfig:
    """Load configuration from ``path`` (or the default location) and the environment.

    An explicitly given file must exist; the default file is optional.
    """
    environ = os.environ if environ is None else environ

    if path is not None:
        data = _read_file(Path(path).expanduser())
    else:
        default = DEFAULT_CONFIG_PATH.expanduser()
        data = _read_file(default) if default.is_file() else {}

    for variable, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            section_data = data.get(section) or {}
            if not isinstance(section_data, dict):
                raise ConfigurationError(f"Config section '{section}' must be a mapping")
            data[section] = {**section_data, key: value}
            logger.debug(f"Config {section}.{key} taken from {variable}")

    try:
        return DStoreConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
