"""Peak memory of the drain and serve pipelines does not grow with object size."""

from pathlib import Path

import pytest
from conftest import (
    MEMORY_BUFFER_SIZE,
    MEMORY_SIZES,
    CountingSink,
    PatternReader,
    PeakMemory,
    assert_flat,
    write_pattern_file,
)

from uploader.transfer.cipher import CipherSpec
from uploader.transfer.drain import drain
from uploader.transfer.serve import open_object, serve_path, stream_object


@pytest.fixture(params=[False, True], ids=["plain", "cipher"])
def cipher(request: pytest.FixtureRequest, cipher_spec: CipherSpec) -> CipherSpec | None:
    return cipher_spec if request.param else None


class TestMemoryBound:
    """Each pipeline runs at N/2, 10*N and 10000*N bytes with the same peak."""

    def test_drain(self, storage_root: Path, cipher: CipherSpec | None) -> None:
        """Verify draining keeps a flat peak."""
        destination = storage_root / "obj"
        drain(PatternReader(MEMORY_SIZES[0]), destination, buffer_size=MEMORY_BUFFER_SIZE, cipher=cipher)

        peaks = []
        for size in MEMORY_SIZES:
            source = PatternReader(size)
            with PeakMemory() as memory:
                stats = drain(source, destination, buffer_size=MEMORY_BUFFER_SIZE, cipher=cipher)
            assert stats.bytes == size
            peaks.append(memory.peak)

        assert_flat(peaks)

    def test_serve_path(self, storage_root: Path, cipher: CipherSpec | None) -> None:
        """Verify serving to a sink keeps a flat peak."""
        path = storage_root / "obj"
        serve_path(write_pattern_file(path, MEMORY_SIZES[0]), CountingSink(), buffer_size=MEMORY_BUFFER_SIZE)

        peaks = []
        for size in MEMORY_SIZES:
            write_pattern_file(path, size)
            sink = CountingSink()
            with PeakMemory() as memory:
                serve_path(path, sink, buffer_size=MEMORY_BUFFER_SIZE, cipher=cipher)
            assert sink.size == size
            peaks.append(memory.peak)

        assert_flat(peaks)

    def test_stream_object(self, storage_root: Path, cipher: CipherSpec | None) -> None:
        """Verify the streaming response body keeps a flat peak."""
        path = storage_root / "obj"
        write_pattern_file(path, MEMORY_SIZES[0])
        list(stream_object(open_object(path), buffer_size=MEMORY_BUFFER_SIZE, cipher=cipher))

        peaks = []
        for size in MEMORY_SIZES:
            write_pattern_file(path, size)
            with PeakMemory() as memory:
                sent = sum(len(chunk) for chunk in stream_object(
                    open_object(path), buffer_size=MEMORY_BUFFER_SIZE, cipher=cipher
                ))
            assert sent == size
            peaks.append(memory.peak)

        assert_flat(peaks)
