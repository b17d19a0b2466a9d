"""Integration tests for the Lighthouse client against the gateway emulator."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from dstore.core.exceptions import AuthenticationFailed, DownloadFailed, GatewayError, UploadFailed
from dstore.core.lighthouse import LighthouseClient
from dstore.core.models import Phase, TokenKind
from dstore.core.progress import RecordingProgressReporter


class TestLighthouseClient:
    """Bearer-authenticated, content-addressed transfers."""

    def test_context_is_bearer(self, lighthouse_client) -> None:
        assert lighthouse_client.context.token_kind == TokenKind.BEARER

    def test_missing_api_key(self, monkeypatch) -> None:
        monkeypatch.delenv("LIGHTHOUSE_API_KEY", raising=False)
        with pytest.raises(AuthenticationFailed):
            LighthouseClient()

    def test_api_key_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("LIGHTHOUSE_API_KEY", "env-key")
        with LighthouseClient() as client:
            assert client.context.token == "env-key"

    def test_upload_returns_cid(self, lighthouse_client, gateway, make_file) -> None:
        source = make_file("cat.jpg", 12_345)
        result = lighthouse_client.upload_file(str(source))
        assert result.name == "cat.jpg"
        assert result.size == 12_345
        assert result.content_id.startswith("bafk")
        assert gateway.store.get_blob(result.content_id).data == source.read_bytes()

    def test_round_trip(self, lighthouse_client, make_file, tmp_path: Path) -> None:
        source = make_file("doc.txt", 9000)
        cid = lighthouse_client.upload_file(str(source)).content_id

        info = lighthouse_client.get_file_info(cid)
        assert info.size == 9000
        assert info.content_id == cid
        assert info.name == "doc.txt"
        assert info.mime_type == "text/plain"
        assert info.encryption is False

        target = tmp_path / "doc.copy"
        result = lighthouse_client.download_file(cid, str(target))
        assert target.read_bytes() == source.read_bytes()
        assert result.total_bytes == 9000

    def test_unknown_mime_type_is_none(self, lighthouse_client, make_file) -> None:
        cid = lighthouse_client.upload_file(str(make_file("blob", 10))).content_id
        assert lighthouse_client.get_file_info(cid).mime_type is None

    def test_large_download(self, lighthouse_client, make_file, tmp_path: Path) -> None:
        source = make_file("large.bin", 10 * 4096 * 16)
        cid = lighthouse_client.upload_file(str(source)).content_id

        recorder = RecordingProgressReporter()
        lighthouse_client.download_file(cid, str(tmp_path / "large.copy"), reporter=recorder)
        events = recorder.all_events
        assert (tmp_path / "large.copy").read_bytes() == source.read_bytes()
        assert len(events) >= 10
        assert events[-1].phase == Phase.COMPLETED
        assert events[-1].bytes_transferred == 10 * 4096 * 16

    def test_rejected_key(self, gateway, make_file) -> None:
        client = LighthouseClient(
            "wrong-key",
            upload_url=f"{gateway.url}/api/v0/add",
            info_url=f"{gateway.url}/api/lighthouse/file_info",
            gateway_url=f"{gateway.url}/ipfs",
        )
        recorder = RecordingProgressReporter()
        with client, pytest.raises(UploadFailed) as exc_info:
            client.upload_file(str(make_file()), reporter=recorder)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "invalid API key"
        assert recorder.all_events[-1].phase == Phase.FAILED

    def test_unknown_cid(self, lighthouse_client, tmp_path: Path) -> None:
        with pytest.raises(GatewayError):
            lighthouse_client.get_file_info("bafkmissing")
        with pytest.raises(DownloadFailed):
            lighthouse_client.download_file("bafkmissing", str(tmp_path / "x"))

    def test_concurrent_uploads_share_context(self, lighthouse_client, make_file) -> None:
        sources = [make_file(f"part{i}.bin", 20_000 + i) for i in range(6)]
        context = lighthouse_client.context
        recorder = RecordingProgressReporter()

        with ThreadPoolExecutor(max_workers=3) as executor:
            results = list(
                executor.map(
                    lambda path: lighthouse_client.upload_file(str(path), reporter=recorder),
                    sources,
                )
            )

        assert [r.size for r in results] == [20_000 + i for i in range(6)]
        assert len({r.content_id for r in results}) == 6
        assert lighthouse_client.context is context
        assert len(recorder.events) == 6
        for transfer_id in recorder.events:
            events = recorder.events_for(transfer_id)
            assert [e.is_terminal for e in events].count(True) == 1
            assert events[-1].phase == Phase.COMPLETED
