"""
dstore - Streaming uploads and downloads for decentralized storage gateways.

This package provides:
- Chunked, progress-reporting transfer engines over HTTP
- Clients for FairOS-dfs pods (cookie sessions) and Lighthouse (API keys)
- CLI tool for moving files from the terminal
- A local gateway emulator for development and tests
"""

__version__ = "1.0.0"

from .core.api import StorageAPI, download_file, upload_file
from .core.config import DStoreConfig, load_config
from .core.exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    DecodeError,
    DownloadFailed,
    DStoreError,
    GatewayError,
    PodError,
    SinkUnavailable,
    SinkWriteError,
    SourceUnavailable,
    TransportError,
    UploadFailed,
    ValidationError,
)
from .core.lighthouse import LighthouseClient
from .core.models import (
    CredentialContext,
    DownloadResult,
    FileInfo,
    Phase,
    ProgressEvent,
    RemoteLocator,
    ShareReference,
    TokenKind,
    TransferDescriptor,
    UploadResult,
)
from .core.pods import PodClient
from .core.progress import (
    CallbackProgressReporter,
    LoggingProgressReporter,
    NullProgressReporter,
    ProgressReporter,
    RecordingProgressReporter,
    RichProgressReporter,
)
from .core.transfer import DownloadEngine, UploadEngine

__all__ = [
    # Core classes
    "StorageAPI",
    "PodClient",
    "LighthouseClient",
    "UploadEngine",
    "DownloadEngine",
    # Models
    "CredentialContext",
    "TokenKind",
    "RemoteLocator",
    "TransferDescriptor",
    "ProgressEvent",
    "Phase",
    "UploadResult",
    "DownloadResult",
    "FileInfo",
    "ShareReference",
    # Progress
    "ProgressReporter",
    "NullProgressReporter",
    "RecordingProgressReporter",
    "CallbackProgressReporter",
    "LoggingProgressReporter",
    "RichProgressReporter",
    # Configuration
    "DStoreConfig",
    "load_config",
    # Exceptions
    "DStoreError",
    "SourceUnavailable",
    "SinkUnavailable",
    "SinkWriteError",
    "TransportError",
    "GatewayError",
    "AuthenticationFailed",
    "UploadFailed",
    "DownloadFailed",
    "PodError",
    "DecodeError",
    "ValidationError",
    "ConfigurationError",
    # Convenience functions
    "upload_file",
    "download_file",
    # Metadata
    "__version__",
]
