"""Fixed-size transfer buffer shared by every streaming operation."""

from typing import Any

DEFAULT_BUFFER_SIZE = 8 * 1024


class TransferBuffer:
    """Reusable byte buffer of constant capacity.

    The capacity is the only bound on per-call memory use: callers read into
    views of this buffer and write out of views of it, never accumulating more
    than ``size`` bytes of pending data.
    """

    __slots__ = ("_data", "_view")

    def __init__(self, size: int = DEFAULT_BUFFER_SIZE) -> None:
        if size < 1:
            raise ValueError(f"buffer size must be positive, not {size}")
        self._data = bytearray(size)
        self._view = memoryview(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"TransferBuffer(size={len(self)})"

    @property
    def size(self) -> int:
        return len(self._data)

    def view(self, start: int = 0, end: int | None = None) -> memoryview:
        """Return a zero-copy slice of the buffer."""
        return self._view[start:end]

    def read_into(self, source: Any, start: int = 0) -> int:
        """Read once from ``source`` into ``buffer[start:]``; 0 means end-of-stream."""
        target = self._view[start:]
        if not target:
            return 0
        readinto = getattr(source, "readinto", None)
        if readinto is not None:
            count = readinto(target)
            return count or 0
        chunk = source.read(len(target))
        if not chunk:
            return 0
        target[: len(chunk)] = chunk
        return len(chunk)

    def fill_from(self, source: Any) -> int:
        """Read until the buffer is full or ``source`` is exhausted."""
        total = 0
        while total < len(self._data):
            count = self.read_into(source, total)
            if count <= 0:
                break
            total += count
        return total
