"""Bounded verification of the upload token."""

import hmac
from typing import Any

from uploader.core.logger import LogIcon, logger
from uploader.transfer.buffer import TransferBuffer


def verify(stream: Any, expected: bytes, buffer: TransferBuffer) -> bool:
    """Check that ``stream`` holds exactly ``expected``, reading at most one buffer.

    The stream is consumed. A secret longer than the buffer can never match,
    and any read failure counts as a mismatch.
    """
    try:
        total = buffer.fill_from(stream)
    except OSError as ex:
        logger.warning("Token read failed", icon=LogIcon.AUTH, error=str(ex))
        return False

    if total != len(expected):
        return False
    return hmac.compare_digest(buffer.view(0, total), expected)
