"""Tests for transfer progress tracking and reporters."""

import logging

import pytest

from dstore.core.models import Direction, Phase, RemoteLocator, TransferDescriptor
from dstore.core.progress import (
    CallbackProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
    RecordingProgressReporter,
    TransferProgress,
)


@pytest.fixture
def transfer() -> TransferDescriptor:
    return TransferDescriptor(
        direction=Direction.UPLOAD,
        local_path="data.bin",
        remote_locator=RemoteLocator(pod="p", path="/data.bin"),
        declared_size=100,
        destination_name="data.bin",
    )


class TestTransferProgress:
    """Byte counts only grow, stay within the total, and end exactly once."""

    def test_events_are_monotonic_and_capped(self, transfer) -> None:
        recorder = RecordingProgressReporter()
        progress = TransferProgress(transfer, recorder)
        progress.start(100)
        for n in (40, 40, 40):
            progress.advance(n)
        progress.complete()

        events = recorder.events_for(transfer.transfer_id)
        counts = [e.bytes_transferred for e in events]
        assert counts == sorted(counts)
        assert all(c <= 100 for c in counts)
        assert events[-1].phase == Phase.COMPLETED
        assert recorder.totals[transfer.transfer_id] == 100

    def test_single_terminal_event(self, transfer) -> None:
        recorder = RecordingProgressReporter()
        progress = TransferProgress(transfer, recorder)
        progress.start(100)
        progress.advance(10)
        progress.fail()
        progress.complete()
        progress.advance(10)

        events = recorder.events_for(transfer.transfer_id)
        assert [e.phase for e in events] == [Phase.IN_PROGRESS, Phase.FAILED]
        assert events[-1].bytes_transferred == 10

    def test_zero_byte_advance_is_silent(self, transfer) -> None:
        recorder = RecordingProgressReporter()
        progress = TransferProgress(transfer, recorder)
        progress.start(0)
        progress.advance(0)
        progress.complete()

        events = recorder.events_for(transfer.transfer_id)
        assert len(events) == 1
        assert events[0].phase == Phase.COMPLETED
        assert events[0].fraction == 1.0

    def test_unknown_total(self, transfer) -> None:
        recorder = RecordingProgressReporter()
        progress = TransferProgress(transfer, recorder)
        progress.start(None)
        progress.advance(5000)
        progress.complete()

        last = recorder.events_for(transfer.transfer_id)[-1]
        assert last.total_bytes is None
        assert last.bytes_transferred == 5000

    def test_reporter_errors_do_not_break_transfer(self, transfer, caplog) -> None:
        class Broken(ProgressReporter):
            def update(self, transfer, event):
                raise RuntimeError("display gone")

        progress = TransferProgress(transfer, Broken())
        progress.start(10)
        with caplog.at_level(logging.WARNING, logger="dstore.core.progress"):
            progress.advance(10)
            progress.complete()
        assert progress.finished
        assert "display gone" in caplog.text

    def test_no_reporter(self, transfer) -> None:
        progress = TransferProgress(transfer)
        progress.start(10)
        progress.advance(10)
        progress.complete()
        assert progress.reported == 10


class TestReporters:
    def test_callback_reporter(self, transfer) -> None:
        seen = []
        progress = TransferProgress(
            transfer, CallbackProgressReporter(lambda t, e: seen.append((t.transfer_id, e.phase)))
        )
        progress.start(1)
        progress.advance(1)
        progress.complete()
        assert seen == [
            (transfer.transfer_id, Phase.IN_PROGRESS),
            (transfer.transfer_id, Phase.COMPLETED),
        ]

    def test_logging_reporter_steps(self, transfer, caplog) -> None:
        progress = TransferProgress(transfer, LoggingProgressReporter(step=50))
        with caplog.at_level(logging.INFO, logger="dstore.core.progress"):
            progress.start(100)
            for _ in range(10):
                progress.advance(10)
            progress.complete()

        messages = [r.getMessage() for r in caplog.records]
        assert sum("%" in m for m in messages) == 2
        assert messages[-1].endswith("done, 100 bytes")
