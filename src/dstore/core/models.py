"""
Pydantic models for dstore.

Credentials, transfer descriptors, progress events and the decoded gateway
results the engines hand back to callers.
"""

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TokenKind(str, Enum):
    """How a credential is attached to outbound requests."""

    COOKIE = "cookie"
    BEARER = "bearer"


class Direction(str, Enum):
    """Transfer direction."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


class Phase(str, Enum):
    """Progress event phase."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class CredentialContext(BaseModel):
    """Authenticated session state attached to every gateway request.

    Instances are frozen. Authenticating again produces a new context, so a
    context can be shared by any number of concurrent transfers.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(..., min_length=1, description="Gateway base URL")
    token: str = Field(..., min_length=1, description="Cookie value or bearer token")
    token_kind: TokenKind = Field(..., description="How the token is attached")

    @field_validator("endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def url(self, path: str) -> str:
        """Join a route onto the endpoint."""
        return f"{self.endpoint}/{path.lstrip('/')}"

    def __repr__(self) -> str:
        return (
            f"CredentialContext(endpoint={self.endpoint!r}, "
            f"token_kind={self.token_kind.value!r})"
        )

    __str__ = __repr__


class RemoteLocator(BaseModel):
    """Where a file lives on the gateway: pod + path, or a content identifier."""

    model_config = ConfigDict(frozen=True)

    pod: Optional[str] = None
    path: Optional[str] = None
    content_id: Optional[str] = None

    @model_validator(mode="after")
    def check_exactly_one_form(self) -> "RemoteLocator":
        has_pod_path = self.pod is not None and self.path is not None
        if has_pod_path == (self.content_id is not None):
            raise ValueError("Specify either pod and path, or content_id")
        return self

    def __str__(self) -> str:
        if self.content_id is not None:
            return self.content_id
        return f"{self.pod}:{self.path}"


class TransferDescriptor(BaseModel):
    """Describes one upload or download."""

    model_config = ConfigDict(frozen=True)

    transfer_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    direction: Direction
    local_path: str
    remote_locator: RemoteLocator
    declared_size: Optional[int] = Field(None, ge=0)
    destination_name: str = Field(..., min_length=1)

    @property
    def label(self) -> str:
        verb = "Uploading" if self.direction == Direction.UPLOAD else "Downloading"
        return f"{verb} {self.destination_name}"


class ProgressEvent(BaseModel):
    """A single progress notification for one transfer."""

    model_config = ConfigDict(frozen=True)

    bytes_transferred: int = Field(..., ge=0)
    total_bytes: Optional[int] = Field(None, ge=0)
    phase: Phase = Phase.IN_PROGRESS

    @property
    def fraction(self) -> Optional[float]:
        """Completed fraction, or None when the total is unknown."""
        if self.total_bytes is None:
            return None
        if self.total_bytes == 0:
            return 1.0
        return self.bytes_transferred / self.total_bytes

    @property
    def is_terminal(self) -> bool:
        return self.phase != Phase.IN_PROGRESS


class UploadResult(BaseModel):
    """Decoded result of a successful upload."""

    name: str = Field(..., description="Remote file name", examples=["report.pdf"])
    content_id: str = Field(
        ..., description="Identifier addressing the uploaded content"
    )
    size: int = Field(..., ge=0, description="Uploaded size in bytes")


class DownloadResult(BaseModel):
    """Summary of a finished download."""

    local_path: str = Field(..., description="Where the bytes were written")
    size: int = Field(..., ge=0, description="Bytes written")
    total_bytes: Optional[int] = Field(
        None, description="Length advertised by the gateway, if any"
    )


class FileInfo(BaseModel):
    """File metadata returned by an info route."""

    size: int = Field(..., ge=0)
    content_id: str
    encryption: bool = False
    name: str
    mime_type: Optional[str] = None

    @field_validator("mime_type", mode="before")
    @classmethod
    def coerce_mime_type(cls, v: Any) -> Optional[str]:
        # Some gateways send a boolean placeholder when no type is known.
        if isinstance(v, bool) or v == "":
            return None
        return v


class ShareReference(BaseModel):
    """Reference another user can import a shared pod with."""

    model_config = ConfigDict(frozen=True)

    reference: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return self.reference


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
