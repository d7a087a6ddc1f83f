"""Pull-style multipart part iterator on top of python-multipart's push parser.

The request body is fed to ``MultipartParser`` one buffer at a time and only
when the consumer needs more data, so at most one buffer of part data (plus
the headers of the next part, capped by the parser's header limits) is
pending at any moment. Parts are read with
io-style ``readinto``; asking for the next part abandons what is left of the
current one.
"""

from collections import deque
from collections.abc import Iterator
from typing import Any

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from uploader.core.logger import LogIcon, logger
from uploader.transfer.buffer import DEFAULT_BUFFER_SIZE, TransferBuffer
from uploader.transfer.errors import MalformedRequestError, TransientIOError, UnsupportedMediaTypeError

MULTIPART_FORM_DATA = b"multipart/form-data"
MAX_HEADER_SIZE = 8 * 1024
MAX_HEADER_COUNT = 16

_PART, _DATA, _END = "part", "data", "end"


def boundary_from_content_type(content_type: str | bytes | None) -> bytes:
    """Extract the boundary of a ``multipart/form-data`` content type."""
    ctype, options = parse_options_header(content_type)
    if ctype != MULTIPART_FORM_DATA:
        raise UnsupportedMediaTypeError()
    boundary = options.get(b"boundary")
    if not boundary:
        raise MalformedRequestError("multipart body has no boundary")
    return boundary


def _decode(value: bytes | None) -> str | None:
    return value.decode("utf-8", errors="replace") if value is not None else None


class Part:
    """One segment of a multipart body, readable until its closing boundary."""

    __slots__ = ("headers", "field_name", "file_name", "_reader", "finished")

    def __init__(self, reader: "MultipartReader", headers: dict[str, bytes]) -> None:
        self.headers = headers
        _, options = parse_options_header(headers.get("content-disposition"))
        self.field_name = _decode(options.get(b"name"))
        self.file_name = _decode(options.get(b"filename"))
        self._reader = reader
        self.finished = False

    def __repr__(self) -> str:
        return f"Part(field_name={self.field_name!r}, file_name={self.file_name!r})"

    @property
    def is_file(self) -> bool:
        return bool(self.file_name)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: memoryview | bytearray) -> int:
        """Copy up to ``len(buffer)`` bytes of this part; 0 means end of part."""
        return self._reader._read_part(self, memoryview(buffer))

    def read(self, size: int) -> bytes:
        buffer = bytearray(size)
        count = self.readinto(buffer)
        return bytes(buffer[:count])


class MultipartReader:
    """Iterate the parts of a multipart body read from a blocking byte source."""

    def __init__(self, source: Any, boundary: bytes | str, *, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._source = source
        self._buffer = TransferBuffer(buffer_size)
        self._events: deque[tuple[str, Any]] = deque()
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._headers: dict[str, bytes] = {}
        self._current: Part | None = None
        self._ended = False
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_end": self._on_end,
            },
            max_header_count=MAX_HEADER_COUNT,
            max_header_size=MAX_HEADER_SIZE,
        )

    # -------------------------------------------------------------------------
    # Parser callbacks
    # -------------------------------------------------------------------------

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        name = self._header_field.decode("latin-1").strip().lower()
        self._headers[name] = bytes(self._header_value)
        self._header_field.clear()
        self._header_value.clear()

    def _on_headers_finished(self) -> None:
        self._events.append((_PART, self._headers))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if end > start:
            self._events.append((_DATA, memoryview(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append((_END, None))

    def _on_end(self) -> None:
        self._ended = True

    # -------------------------------------------------------------------------
    # Feeding
    # -------------------------------------------------------------------------

    def _pump(self) -> None:
        """Feed one buffer of the body to the parser."""
        count = self._buffer.read_into(self._source)
        if count <= 0:
            if not self._ended:
                raise MalformedRequestError("multipart body ended before the closing boundary")
            return
        try:
            self._parser.write(bytes(self._buffer.view(0, count)))
        except MultipartParseError as ex:
            logger.error("Malformed multipart body", icon=LogIcon.ERROR, error=str(ex))
            raise MalformedRequestError() from ex

    def _read_part(self, part: Part, target: memoryview) -> int:
        if part is not self._current or part.finished or not target:
            return 0
        while not self._events:
            if self._ended:
                part.finished = True
                return 0
            self._pump()

        kind, payload = self._events[0]
        if kind == _DATA:
            count = min(len(target), len(payload))
            target[:count] = payload[:count]
            if count < len(payload):
                self._events[0] = (_DATA, payload[count:])
            else:
                self._events.popleft()
            return count

        if kind == _END:
            self._events.popleft()
        part.finished = True
        return 0

    def _abandon_current(self) -> None:
        part = self._current
        if part is None or part.finished:
            return
        logger.debug("Abandoning unread part", field=part.field_name)
        while True:
            while not self._events:
                if self._ended:
                    part.finished = True
                    return
                self._pump()
            kind, _ = self._events[0]
            if kind == _PART:
                part.finished = True
                return
            self._events.popleft()
            if kind == _END:
                part.finished = True
                return

    def next_part(self) -> Part | None:
        """Return the next part, or ``None`` once the closing boundary was seen."""
        try:
            self._abandon_current()
            while True:
                while not self._events:
                    if self._ended:
                        self._current = None
                        return None
                    self._pump()
                kind, payload = self._events.popleft()
                if kind == _PART:
                    self._current = Part(self, payload)
                    return self._current
        except OSError as ex:
            raise TransientIOError() from ex

    def __iter__(self) -> Iterator[Part]:
        while (part := self.next_part()) is not None:
            yield part
