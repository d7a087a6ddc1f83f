"""Test fixtures for robyn-stream-uploader unit tests."""

import io
import tracemalloc
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from uploader.core.lifespan import State
from uploader.transfer.admission import UnboundedAdmission
from uploader.transfer.cipher import CipherSpec
from uploader.transfer.config import TransferConfig

BOUNDARY = "----uploaderTestBoundary7MA4YWxkTrZu0gW"
SECRET = b"secret"
KEY = bytes(range(32))
IV = bytes(range(16, 32))


# -----------------------------------------------------------------------------
# Byte sources and sinks
# -----------------------------------------------------------------------------


class ChunkedReader(io.RawIOBase):
    """Byte source that never returns more than the next chunk size per read."""

    def __init__(self, data: bytes, sizes: Iterable[int] = (7,)) -> None:
        self._data = memoryview(data)
        self._sizes = list(sizes) or [1]
        self._pos = 0
        self._calls = 0
        self.requested: list[int] = []

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        self.requested.append(len(buffer))
        size = self._sizes[self._calls % len(self._sizes)]
        self._calls += 1
        chunk = self._data[self._pos : self._pos + min(size, len(buffer))]
        buffer[: len(chunk)] = chunk
        self._pos += len(chunk)
        return len(chunk)


class FailingReader(io.RawIOBase):
    """Returns ``data`` once, then fails every read."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = data

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._data:
            count = min(len(buffer), len(self._data))
            buffer[:count] = self._data[:count]
            self._data = self._data[count:]
            return count
        raise ConnectionResetError("connection reset by peer")


class PatternReader(io.RawIOBase):
    """Byte source of ``size`` filler bytes that never holds them all at once."""

    def __init__(self, size: int) -> None:
        self.remaining = size

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        count = min(len(buffer), self.remaining)
        buffer[:count] = b"\x5a" * count
        self.remaining -= count
        return count


class CountingSink:
    """Sink that only counts what it is given."""

    def __init__(self) -> None:
        self.size = 0

    def write(self, data) -> int:
        self.size += len(data)
        return len(data)


class ShortWriter:
    """Sink that accepts one byte less than it is given."""

    def __init__(self) -> None:
        self.written = bytearray()

    def write(self, data) -> int:
        accepted = max(len(data) - 1, 0)
        self.written += bytes(data[:accepted])
        return accepted

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


def write_pattern_file(path: Path, size: int) -> Path:
    """Write ``size`` filler bytes to ``path`` in bounded chunks."""
    source = PatternReader(size)
    chunk = bytearray(64 * 1024)
    with path.open("wb") as handle:
        while count := source.readinto(chunk):
            handle.write(chunk[:count])
    return path


# -----------------------------------------------------------------------------
# Memory measurement
# -----------------------------------------------------------------------------

MEMORY_BUFFER_SIZE = 4096
MEMORY_SIZES = (MEMORY_BUFFER_SIZE // 2, 10 * MEMORY_BUFFER_SIZE, 10_000 * MEMORY_BUFFER_SIZE)
MEMORY_PEAK_LIMIT = 64 * MEMORY_BUFFER_SIZE


class PeakMemory:
    """Record the peak traced allocation of the enclosed block."""

    peak: int = 0

    def __enter__(self) -> "PeakMemory":
        tracemalloc.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.peak = tracemalloc.get_traced_memory()[1]
        tracemalloc.stop()


def assert_flat(peaks: list[int]) -> None:
    """Peaks must stay under a small multiple of the buffer whatever the input size."""
    assert max(peaks) < MEMORY_PEAK_LIMIT, peaks
    assert max(peaks) - min(peaks) < 4 * MEMORY_BUFFER_SIZE, peaks


# -----------------------------------------------------------------------------
# Multipart bodies
# -----------------------------------------------------------------------------


def multipart_body(parts: Iterable[tuple[str, str | None, bytes]], boundary: str = BOUNDARY) -> bytes:
    """Encode ``(field_name, file_name, content)`` triples as multipart/form-data."""
    chunks = []
    for field_name, file_name, content in parts:
        disposition = f'form-data; name="{field_name}"'
        if file_name is not None:
            disposition += f'; filename="{file_name}"'
        chunks.append(f"--{boundary}\r\nContent-Disposition: {disposition}\r\n".encode())
        if file_name is not None:
            chunks.append(b"Content-Type: application/octet-stream\r\n")
        chunks.append(b"\r\n" + content + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks)


def content_type(boundary: str = BOUNDARY) -> str:
    return f"multipart/form-data; boundary={boundary}"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock Headers object for Robyn Request."""

    _data: dict = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: bytes | str = b""
    headers: MockHeaders = field(default_factory=MockHeaders)
    path_params: dict = field(default_factory=dict)
    method: str = "GET"
    path: str = "/"


# -----------------------------------------------------------------------------
# Configuration and state fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "bucket"
    root.mkdir()
    return root


@pytest.fixture
def cipher_spec() -> CipherSpec:
    return CipherSpec(key=KEY, iv=IV)


@pytest.fixture
def transfer_config(storage_root: Path) -> TransferConfig:
    return TransferConfig(root=storage_root, token=SECRET, buffer_size=64)


@pytest.fixture
def cipher_config(storage_root: Path, cipher_spec: CipherSpec) -> TransferConfig:
    return TransferConfig(root=storage_root, token=SECRET, buffer_size=64, cipher=cipher_spec)


@pytest.fixture
def test_state() -> State:
    """Create a test state container."""
    return State()


@pytest.fixture
def global_dependencies(test_state: State, transfer_config: TransferConfig) -> dict:
    """Setup global dependencies for tests."""
    test_state.transfer = transfer_config
    test_state.admission = UnboundedAdmission()
    yield {"state": test_state}
    test_state.clear()


@pytest.fixture
def make_upload_request():
    """Factory fixture to create multipart upload requests."""

    def _make(parts: Iterable[tuple[str, str | None, bytes]], boundary: str = BOUNDARY) -> MockRequest:
        headers = MockHeaders({"content-type": content_type(boundary)})
        return MockRequest(body=multipart_body(parts, boundary), headers=headers, method="POST", path="/upload")

    return _make
