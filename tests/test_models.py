"""Tests for dstore models."""

import pytest
from pydantic import ValidationError

from dstore.core.models import (
    CredentialContext,
    Direction,
    FileInfo,
    Phase,
    ProgressEvent,
    RemoteLocator,
    TokenKind,
    TransferDescriptor,
)


class TestCredentialContext:
    """Tests for the immutable credential context."""

    def test_trailing_slash_is_stripped(self) -> None:
        context = CredentialContext(
            endpoint="http://gw:9090/", token="a=b", token_kind=TokenKind.COOKIE
        )
        assert context.endpoint == "http://gw:9090"
        assert context.url("/v1/pod/new") == "http://gw:9090/v1/pod/new"

    def test_context_is_frozen(self) -> None:
        context = CredentialContext(endpoint="http://gw", token="k", token_kind=TokenKind.BEARER)
        with pytest.raises(ValidationError):
            context.token = "other"

    def test_repr_hides_token(self) -> None:
        context = CredentialContext(
            endpoint="http://gw", token="super-secret", token_kind=TokenKind.BEARER
        )
        assert "super-secret" not in repr(context)
        assert "super-secret" not in str(context)

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CredentialContext(endpoint="http://gw", token="", token_kind=TokenKind.COOKIE)


class TestRemoteLocator:
    """A locator is either pod + path or a content id."""

    def test_pod_and_path(self) -> None:
        locator = RemoteLocator(pod="photos", path="/2024/cat.jpg")
        assert str(locator) == "photos:/2024/cat.jpg"

    def test_content_id(self) -> None:
        assert str(RemoteLocator(content_id="bafkabc")) == "bafkabc"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"pod": "photos"},
            {"pod": "photos", "path": "/a", "content_id": "bafk"},
        ],
    )
    def test_exactly_one_form_required(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            RemoteLocator(**kwargs)


class TestProgressEvent:
    """Tests for progress event helpers."""

    def test_fraction_with_total(self) -> None:
        event = ProgressEvent(bytes_transferred=25, total_bytes=100)
        assert event.fraction == 0.25
        assert not event.is_terminal

    def test_fraction_unknown_total(self) -> None:
        assert ProgressEvent(bytes_transferred=10).fraction is None

    def test_fraction_empty_file(self) -> None:
        event = ProgressEvent(bytes_transferred=0, total_bytes=0, phase=Phase.COMPLETED)
        assert event.fraction == 1.0
        assert event.is_terminal

    def test_negative_bytes_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProgressEvent(bytes_transferred=-1)


class TestTransferDescriptor:
    def test_ids_are_unique(self) -> None:
        kwargs = dict(
            direction=Direction.UPLOAD,
            local_path="a.bin",
            remote_locator=RemoteLocator(content_id="a.bin"),
            destination_name="a.bin",
        )
        assert TransferDescriptor(**kwargs).transfer_id != TransferDescriptor(**kwargs).transfer_id

    def test_label(self) -> None:
        transfer = TransferDescriptor(
            direction=Direction.DOWNLOAD,
            local_path="out/a.bin",
            remote_locator=RemoteLocator(pod="p", path="/a.bin"),
            destination_name="a.bin",
        )
        assert transfer.label == "Downloading a.bin"


class TestFileInfo:
    """mime_type is a string or None, never a boolean."""

    @pytest.mark.parametrize("value", [False, True, ""])
    def test_placeholder_mime_type_becomes_none(self, value) -> None:
        info = FileInfo(size=1, content_id="c", name="n", mime_type=value)
        assert info.mime_type is None

    def test_real_mime_type_kept(self) -> None:
        info = FileInfo(size=1, content_id="c", name="n.txt", mime_type="text/plain")
        assert info.mime_type == "text/plain"
