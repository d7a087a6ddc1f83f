"""Download serve: stream a stored object to a response sink."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any, BinaryIO

from uploader.core.logger import LogIcon, logger
from uploader.transfer.buffer import DEFAULT_BUFFER_SIZE, TransferBuffer
from uploader.transfer.cipher import CipherSpec, DecoratedReader
from uploader.transfer.errors import ObjectNotFoundError, StorageError, TransientIOError
from uploader.transfer.stats import Throughput, TransferStats


def open_object(path: Path) -> BinaryIO:
    """Open a stored object for reading before any response header is sent."""
    try:
        return path.open("rb")
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as ex:
        logger.warning("Stored object not found", icon=LogIcon.WARNING, path=str(path))
        raise ObjectNotFoundError() from ex
    except OSError as ex:
        logger.error("Failed to open file for reading", icon=LogIcon.ERROR, path=str(path), error=str(ex))
        raise StorageError("failed to open file for reading") from ex


def read_chunks(
    source: Any,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    cipher: CipherSpec | None = None,
) -> Iterator[memoryview]:
    """Yield ``source`` one buffer at a time.

    Every chunk is a view on the same buffer and is only valid until the next
    one is requested.
    """
    reader = DecoratedReader(source, cipher) if cipher else source
    buffer = TransferBuffer(buffer_size)
    while True:
        try:
            count = buffer.read_into(reader)
        except OSError as ex:
            logger.error("Error reading data", icon=LogIcon.ERROR, error=str(ex))
            raise TransientIOError() from ex
        if count <= 0:
            return
        yield buffer.view(0, count)


def serve(
    source: Any,
    sink: Any,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    cipher: CipherSpec | None = None,
) -> TransferStats:
    """Copy ``source`` to ``sink`` one buffer at a time.

    Once bytes have reached the sink a failure cannot be undone; the caller
    only gets a ``TransientIOError`` to log.
    """
    stats = TransferStats()
    for chunk in read_chunks(source, buffer_size=buffer_size, cipher=cipher):
        try:
            sink.write(chunk)
        except OSError as ex:
            logger.error("Error writing response", icon=LogIcon.ERROR, error=str(ex))
            raise TransientIOError("error writing data") from ex
        stats.add(len(chunk))
    return stats


def serve_path(
    path: Path,
    sink: Any,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    cipher: CipherSpec | None = None,
) -> TransferStats:
    """Open ``path`` and serve it, releasing the handle on every exit path."""
    with open_object(path) as source:
        stats = serve(source, sink, buffer_size=buffer_size, cipher=cipher)
    logger.info("Returned file", icon=LogIcon.DOWNLOAD, path=str(path), size=stats.bytes)
    return stats


def stream_object(
    source: BinaryIO,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    cipher: CipherSpec | None = None,
) -> Iterator[bytes]:
    """Yield an already opened object as response body chunks, then close it.

    Meant for streaming responses: the object is opened with ``open_object``
    first so lookup failures are still reported with a status code, and this
    generator only runs once the response has started.
    """
    started_ns = Throughput.now()
    stats = TransferStats()
    try:
        for chunk in read_chunks(source, buffer_size=buffer_size, cipher=cipher):
            stats.add(len(chunk))
            yield bytes(chunk)
    finally:
        source.close()
        logger.info("Streamed file", icon=LogIcon.STREAMING, **Throughput.measure(started_ns, stats).as_dict())
