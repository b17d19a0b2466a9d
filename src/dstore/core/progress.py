"""Progress reporting for transfers.

The engines never talk to a terminal directly. They drive a
:class:`TransferProgress` tracker, which forwards events to whatever
:class:`ProgressReporter` the caller injected.
"""

import logging
from threading import Lock
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .models import Phase, ProgressEvent, TransferDescriptor


logger = logging.getLogger(__name__)


class ProgressReporter:
    """Sink for progress events.

    Reporters shared between concurrent transfers must serialize their own
    state; the engines call them from the transfer's worker thread.
    """

    def start(self, transfer: TransferDescriptor, total: Optional[int]) -> None:
        """Called once before the first byte moves."""

    def update(self, transfer: TransferDescriptor, event: ProgressEvent) -> None:
        """Called for every event, terminal ones included."""


class NullProgressReporter(ProgressReporter):
    """Discards everything."""


class RecordingProgressReporter(ProgressReporter):
    """Keeps every event in memory, keyed by transfer id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.totals: Dict[str, Optional[int]] = {}
        self.events: Dict[str, List[ProgressEvent]] = {}

    def start(self, transfer: TransferDescriptor, total: Optional[int]) -> None:
        with self._lock:
            self.totals[transfer.transfer_id] = total
            self.events.setdefault(transfer.transfer_id, [])

    def update(self, transfer: TransferDescriptor, event: ProgressEvent) -> None:
        with self._lock:
            self.events.setdefault(transfer.transfer_id, []).append(event)

    def events_for(self, transfer_id: str) -> List[ProgressEvent]:
        with self._lock:
            return list(self.events.get(transfer_id, []))

    @property
    def all_events(self) -> List[ProgressEvent]:
        with self._lock:
            return [e for events in self.events.values() for e in events]


class CallbackProgressReporter(ProgressReporter):
    """Adapts a plain ``callback(transfer, event)`` function."""

    def __init__(
        self, callback: Callable[[TransferDescriptor, ProgressEvent], None]
    ) -> None:
        self.callback = callback

    def update(self, transfer: TransferDescriptor, event: ProgressEvent) -> None:
        self.callback(transfer, event)


class LoggingProgressReporter(ProgressReporter):
    """Logs progress every ``step`` bytes and on completion."""

    def __init__(self, step: int = 10 * 1024 * 1024, level: int = logging.INFO) -> None:
        self.step = step
        self.level = level
        self._lock = Lock()
        self._next_mark: Dict[str, int] = {}

    def start(self, transfer: TransferDescriptor, total: Optional[int]) -> None:
        with self._lock:
            self._next_mark[transfer.transfer_id] = self.step
        size = f"{total} bytes" if total is not None else "unknown size"
        logger.log(self.level, f"{transfer.label} ({size})")

    def update(self, transfer: TransferDescriptor, event: ProgressEvent) -> None:
        if event.phase == Phase.COMPLETED:
            logger.log(
                self.level,
                f"{transfer.label}: done, {event.bytes_transferred} bytes",
            )
            return
        if event.phase == Phase.FAILED:
            logger.log(
                self.level,
                f"{transfer.label}: failed after {event.bytes_transferred} bytes",
            )
            return

        with self._lock:
            mark = self._next_mark.get(transfer.transfer_id, self.step)
            if event.bytes_transferred < mark:
                return
            self._next_mark[transfer.transfer_id] = (
                event.bytes_transferred // self.step + 1
            ) * self.step

        if event.fraction is not None:
            logger.log(
                self.level,
                f"{transfer.label}: {event.bytes_transferred}/{event.total_bytes} "
                f"bytes ({event.fraction * 100:.1f}%)",
            )
        else:
            logger.log(self.level, f"{transfer.label}: {event.bytes_transferred} bytes")


class RichProgressReporter(ProgressReporter):
    """Terminal progress bars, one task per transfer.

    Use as a context manager so the live display is started and stopped::

        with RichProgressReporter() as reporter:
            client.upload_file("pod", "big.bin", "/", reporter=reporter)
    """

    def __init__(self, console: Optional[Console] = None, transient: bool = False) -> None:
        self._lock = Lock()
        self._tasks: Dict[str, TaskID] = {}
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=transient,
        )

    def __enter__(self) -> "RichProgressReporter":
        self.progress.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.progress.stop()

    def start(self, transfer: TransferDescriptor, total: Optional[int]) -> None:
        with self._lock:
            self._tasks[transfer.transfer_id] = self.progress.add_task(
                transfer.label, total=total
            )

    def update(self, transfer: TransferDescriptor, event: ProgressEvent) -> None:
        with self._lock:
            task = self._tasks.get(transfer.transfer_id)
            if task is None:
                return
            if event.phase == Phase.COMPLETED:
                self.progress.update(
                    task,
                    completed=event.bytes_transferred,
                    total=event.total_bytes or event.bytes_transferred,
                    description=f"[green]✓[/green] {transfer.destination_name}",
                )
            elif event.phase == Phase.FAILED:
                self.progress.update(
                    task, description=f"[red]✗[/red] {transfer.destination_name}"
                )
                self.progress.stop_task(task)
            else:
                self.progress.update(task, completed=event.bytes_transferred)


class TransferProgress:
    """Per-transfer bookkeeping in front of a reporter.

    Guarantees that reported byte counts never decrease, never exceed a known
    total, and that exactly one terminal event is emitted, after which the
    tracker goes silent.
    """

    def __init__(
        self,
        transfer: TransferDescriptor,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.transfer = transfer
        self.reporter = reporter or NullProgressReporter()
        self.total: Optional[int] = None
        self.transferred = 0
        self.finished = False

    def start(self, total: Optional[int]) -> None:
        self.total = total
        self._call(self.reporter.start, self.transfer, total)

    def advance(self, nbytes: int) -> None:
        if self.finished or nbytes <= 0:
            return
        self.transferred += nbytes
        self._emit(Phase.IN_PROGRESS)

    def complete(self) -> None:
        if self.finished:
            return
        self.finished = True
        self._emit(Phase.COMPLETED)

    def fail(self) -> None:
        if self.finished:
            return
        self.finished = True
        self._emit(Phase.FAILED)

    @property
    def reported(self) -> int:
        """Byte count as reported, capped at the declared total."""
        if self.total is not None:
            return min(self.transferred, self.total)
        return self.transferred

    def _emit(self, phase: Phase) -> None:
        event = ProgressEvent(
            bytes_transferred=self.reported, total_bytes=self.total, phase=phase
        )
        self._call(self.reporter.update, self.transfer, event)

    def _call(self, method, *args) -> None:
        try:
            method(*args)
        except Exception as e:
            logger.warning(f"Progress reporter error: {e}")
