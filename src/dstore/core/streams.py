"""Lazy byte-chunk sequences and the streamed multipart request body.

Chunk sequences are single-pass. A failure while producing chunks is yielded
as the last element (the exception instance itself) instead of being raised,
so the consuming loop sees data and errors in one place.
"""

import logging
import os
import stat
from typing import BinaryIO, Dict, Iterable, Iterator, Optional, Union

import requests
from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

Chunk = Union[bytes, Exception]


def iter_file_chunks(handle: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Chunk]:
    """Yield chunks read from ``handle``; a read error ends the sequence."""
    while True:
        try:
            chunk = handle.read(chunk_size)
        except (OSError, ValueError) as e:
            # ValueError covers reads on a handle closed underneath us.
            yield e
            return
        if not chunk:
            return
        yield chunk


def iter_response_chunks(
    response: requests.Response, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[Chunk]:
    """Yield body chunks of a streamed response; a transport error ends the sequence."""
    try:
        for chunk in response.iter_content(chunk_size=chunk_size):
            if chunk:
                yield chunk
    except (requests.RequestException, OSError) as e:
        yield e


def source_size(handle: BinaryIO) -> Optional[int]:
    """Remaining bytes in ``handle`` if that can be determined, else None."""
    try:
        st = os.fstat(handle.fileno())
        position = handle.tell()
    except (AttributeError, OSError, ValueError):
        pass
    else:
        if stat.S_ISREG(st.st_mode):
            return max(0, st.st_size - position)

    try:
        if not handle.seekable():
            return None
        position = handle.tell()
        end = handle.seek(0, os.SEEK_END)
        handle.seek(position)
    except (AttributeError, OSError, ValueError):
        return None
    return max(0, end - position)


class MultipartStream:
    """A ``multipart/form-data`` body produced lazily.

    Text fields are rendered up front; the single file part streams its bytes
    from ``chunks`` as the HTTP layer iterates the body. The file part is last.
    """

    def __init__(
        self,
        fields: Dict[str, str],
        file_field: str,
        filename: str,
        chunks: Iterable[bytes],
        content_type: str = "application/octet-stream",
        boundary: Optional[str] = None,
    ) -> None:
        self.boundary = boundary or choose_boundary()
        self.chunks = chunks
        self._head = b"".join(
            self._part_header(self._text_field(name, value)) + value.encode("utf-8") + b"\r\n"
            for name, value in fields.items()
        )
        file_part = RequestField(name=file_field, data=b"", filename=filename)
        file_part.make_multipart(content_type=content_type)
        self._head += self._part_header(file_part)
        self._tail = f"\r\n--{self.boundary}--\r\n".encode("latin-1")

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def overhead(self) -> int:
        """Bytes the body adds around the file content."""
        return len(self._head) + len(self._tail)

    def _text_field(self, name: str, value: str) -> RequestField:
        field = RequestField(name=name, data=value)
        field.make_multipart()
        return field

    def _part_header(self, field: RequestField) -> bytes:
        return f"--{self.boundary}\r\n".encode("latin-1") + field.render_headers().encode(
            "utf-8"
        )

    def __iter__(self) -> Iterator[bytes]:
        yield self._head
        for chunk in self.chunks:
            yield chunk
        yield self._tail


class SizedMultipartStream(MultipartStream):
    """A multipart body whose file size is known, so the request gets a Content-Length."""

    def __init__(self, *args, file_size: int, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.file_size = file_size

    def __len__(self) -> int:
        return self.overhead + self.file_size
