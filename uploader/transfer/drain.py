"""Upload drain: copy one multipart part to disk through a bounded buffer."""

from pathlib import Path
from typing import Any

from uploader.core.logger import LogIcon, logger
from uploader.transfer.buffer import DEFAULT_BUFFER_SIZE, TransferBuffer
from uploader.transfer.cipher import CipherSpec, DecoratedWriter
from uploader.transfer.errors import StorageError, TransientIOError
from uploader.transfer.stats import TransferStats


def drain(
    part: Any,
    destination: Path,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    cipher: CipherSpec | None = None,
) -> TransferStats:
    """Stream ``part`` into ``destination``, truncating any previous content.

    Peak memory is one buffer (plus one cipher scratch buffer) whatever the
    size of the part. The destination is flushed and closed on every exit.
    """
    logger.info("Draining part", icon=LogIcon.UPLOAD, destination=str(destination))
    try:
        handle = destination.open("wb")
    except OSError as ex:
        logger.error("Cannot write out file", icon=LogIcon.ERROR, destination=str(destination), error=str(ex))
        raise StorageError() from ex

    buffer = TransferBuffer(buffer_size)
    stats = TransferStats()
    sink = DecoratedWriter(handle, cipher) if cipher else handle
    try:
        while True:
            try:
                count = buffer.read_into(part)
            except OSError as ex:
                logger.error("Error reading data", icon=LogIcon.ERROR, error=str(ex))
                raise TransientIOError() from ex
            if count <= 0:
                break
            try:
                sink.write(buffer.view(0, count))
            except OSError as ex:
                logger.error("Error writing data", icon=LogIcon.ERROR, destination=str(destination), error=str(ex))
                raise StorageError() from ex
            stats.add(count)
        try:
            sink.flush()
        except OSError as ex:
            raise StorageError() from ex
    finally:
        handle.close()

    logger.info("Wrote file", icon=LogIcon.FILE, destination=str(destination), size=stats.bytes)
    return stats
