"""Chunked streaming upload and download engines.

Neither engine holds more than one chunk of file data at a time. Both report
through a :class:`TransferProgress` tracker and emit exactly one terminal
event per transfer, whatever the outcome.
"""

import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Dict, Iterable, Iterator, Optional, Tuple, Union

from .envelopes import failure_message, json_body
from .exceptions import (
    DownloadFailed,
    SinkUnavailable,
    SinkWriteError,
    SourceUnavailable,
    TransportError,
    UploadFailed,
    ValidationError,
)
from .models import (
    Direction,
    DownloadResult,
    RemoteLocator,
    TransferDescriptor,
    UploadResult,
)
from .progress import ProgressReporter, TransferProgress
from .streams import (
    Chunk,
    MultipartStream,
    SizedMultipartStream,
    iter_file_chunks,
    iter_response_chunks,
    source_size,
)

if TYPE_CHECKING:
    from .client import GatewayClient


logger = logging.getLogger(__name__)

Source = Union[str, "os.PathLike[str]", BinaryIO]
Sink = Union[str, "os.PathLike[str]", BinaryIO]


def _describe(target: Union[Source, Sink]) -> str:
    if isinstance(target, (str, os.PathLike)):
        return os.fspath(target)
    return str(getattr(target, "name", "<stream>"))


def _open_source(source: Source) -> Tuple[BinaryIO, bool]:
    """Return a readable handle and whether the engine owns (and must close) it."""
    if not isinstance(source, (str, os.PathLike)):
        if not hasattr(source, "read"):
            raise SourceUnavailable(f"Upload source is not readable: {source!r}")
        return source, False
    try:
        return open(source, "rb"), True
    except OSError as e:
        raise SourceUnavailable(f"Cannot open {os.fspath(source)}: {e}", os.fspath(source)) from e


def _open_sink(destination: Sink) -> Tuple[BinaryIO, bool]:
    if not isinstance(destination, (str, os.PathLike)):
        if not hasattr(destination, "write"):
            raise SinkUnavailable(f"Download destination is not writable: {destination!r}")
        return destination, False
    path = Path(destination)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "wb"), True
    except OSError as e:
        raise SinkUnavailable(f"Cannot create {path}: {e}", str(path)) from e


def _human_mb_per_s(num_bytes: int, seconds: float) -> float:
    return (num_bytes / (1024 * 1024)) / seconds if seconds > 0 else 0.0


class UploadEngine:
    """Streams a local source to the gateway as one multipart file part."""

    def __init__(self, client: "GatewayClient", chunk_size: Optional[int] = None) -> None:
        self.client = client
        self.chunk_size = chunk_size or client.chunk_size

    def upload(
        self,
        url: str,
        source: Source,
        destination_name: str,
        locator: RemoteLocator,
        fields: Optional[Dict[str, str]] = None,
        file_field: str = "file",
        reporter: Optional[ProgressReporter] = None,
    ) -> UploadResult:
        """Upload ``source`` to ``url`` under ``destination_name``.

        Args:
            url: Upload route.
            source: Local path or a readable binary handle. Handles passed in
                are left open; paths are opened and closed here.
            destination_name: Remote file name, also the multipart filename.
            locator: Where the file will live once uploaded.
            fields: Plain-text form fields sent before the file part.
            file_field: Name of the multipart file part.
            reporter: Receives progress events.

        Returns:
            The decoded upload result.
        """
        if not destination_name:
            raise ValidationError("destination_name", destination_name, "must not be empty")

        label = _describe(source)
        handle, owned = _open_source(source)
        progress: Optional[TransferProgress] = None
        try:
            size = source_size(handle)
            transfer = TransferDescriptor(
                direction=Direction.UPLOAD,
                local_path=label,
                remote_locator=locator,
                declared_size=size,
                destination_name=destination_name,
            )
            progress = TransferProgress(transfer, reporter)
            progress.start(size)

            chunks = self._observe(iter_file_chunks(handle, self.chunk_size), progress, label)
            if size is not None:
                body: MultipartStream = SizedMultipartStream(
                    fields or {}, file_field, destination_name, chunks, file_size=size
                )
            else:
                body = MultipartStream(fields or {}, file_field, destination_name, chunks)

            logger.info(f"Uploading {label} to {locator} ({size if size is not None else '?'} bytes)")
            start_time = time.time()
            response = self.client.send(
                "POST", url, headers={"Content-Type": body.content_type}, data=body
            )

            with response:
                if not response.ok:
                    message = failure_message(response)
                    progress.fail()
                    logger.error(f"Upload of {label} rejected ({response.status_code}): {message}")
                    raise UploadFailed(message, response.status_code)
                result = self.client.envelope.decode_upload(
                    json_body(response), locator, progress.transferred
                )

            progress.complete()
            elapsed = time.time() - start_time
            logger.info(
                f"Uploaded {result.name} ({progress.transferred} bytes, "
                f"{_human_mb_per_s(progress.transferred, elapsed):.2f} MB/s)"
            )
            return result
        except Exception:
            # Any error after the transfer started ends it with a single Failed event.
            if progress is not None:
                progress.fail()
            raise
        finally:
            if owned:
                handle.close()

    @staticmethod
    def _observe(
        chunks: Iterable[Chunk], progress: TransferProgress, label: str
    ) -> Iterator[bytes]:
        """Count each chunk before the HTTP layer sends it."""
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise SourceUnavailable(
                    f"Reading {label} failed after {progress.transferred} bytes: {chunk}",
                    label,
                ) from chunk
            progress.advance(len(chunk))
            yield chunk


class DownloadEngine:
    """Streams a response body into a local sink chunk by chunk."""

    def __init__(self, client: "GatewayClient", chunk_size: Optional[int] = None) -> None:
        self.client = client
        self.chunk_size = chunk_size or client.chunk_size

    def download(
        self,
        url: str,
        destination: Sink,
        locator: RemoteLocator,
        method: str = "GET",
        params: Optional[Dict[str, str]] = None,
        form: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
        reporter: Optional[ProgressReporter] = None,
    ) -> DownloadResult:
        """Download from ``url`` into ``destination``.

        ``form`` fields are sent as a multipart selector, ``params`` as the
        query string. Bytes written before a failure are left in place.
        """
        label = _describe(destination)
        name = Path(locator.path).name if locator.path else str(locator)
        transfer = TransferDescriptor(
            direction=Direction.DOWNLOAD,
            local_path=label,
            remote_locator=locator,
            destination_name=name or label,
        )
        progress = TransferProgress(transfer, reporter)

        files = {key: (None, value) for key, value in form.items()} if form else None
        try:
            response = self.client.send(
                method, url, authenticated=authenticated, params=params, files=files, stream=True
            )
            with response:
                if not response.ok:
                    message = failure_message(response)
                    logger.error(f"Download of {locator} rejected ({response.status_code}): {message}")
                    raise DownloadFailed(message, response.status_code)

                total = self._content_length(response)
                progress.transfer = transfer.model_copy(update={"declared_size": total})
                sink, owned = _open_sink(destination)

                logger.info(f"Downloading {locator} to {label} ({total if total is not None else '?'} bytes)")
                start_time = time.time()
                progress.start(total)
                written = 0
                try:
                    for chunk in iter_response_chunks(response, self.chunk_size):
                        if isinstance(chunk, Exception):
                            raise TransportError(
                                f"Download of {locator} interrupted after {written} bytes: {chunk}"
                            ) from chunk
                        try:
                            sink.write(chunk)
                        except (OSError, ValueError) as e:
                            raise SinkWriteError(
                                f"Writing to {label} failed after {written} bytes: {e}", written
                            ) from e
                        written += len(chunk)
                        progress.advance(len(chunk))
                    if owned:
                        try:
                            sink.close()
                        except OSError as e:
                            raise SinkWriteError(f"Closing {label} failed: {e}", written) from e
                finally:
                    if owned and not sink.closed:
                        sink.close()
        except Exception:
            progress.fail()
            raise

        progress.complete()
        elapsed = time.time() - start_time
        logger.info(
            f"Downloaded {locator} ({written} bytes, {_human_mb_per_s(written, elapsed):.2f} MB/s)"
        )
        return DownloadResult(local_path=label, size=written, total_bytes=total)

    @staticmethod
    def _content_length(response) -> Optional[int]:
        value = response.headers.get("Content-Length")
        if value is None:
            return None
        try:
            length = int(value)
        except ValueError:
            logger.warning(f"Ignoring invalid Content-Length: {value!r}")
            return None
        return length if length >= 0 else None
