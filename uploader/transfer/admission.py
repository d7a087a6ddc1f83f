"""Pluggable admission gate evaluated before a session is started."""

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

from uploader.core.logger import LogIcon, logger
from uploader.transfer.errors import AdmissionRejectedError


class AdmissionGate(Protocol):
    def admit(self) -> AbstractContextManager[None]: ...


class UnboundedAdmission:
    """Admit every session."""

    @contextmanager
    def admit(self) -> Iterator[None]:
        yield


class BoundedAdmission:
    """Admit at most ``limit`` concurrent sessions, refusing the rest immediately."""

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"admission limit must be positive, not {limit}")
        self.limit = limit
        self._slots = threading.BoundedSemaphore(limit)

    @contextmanager
    def admit(self) -> Iterator[None]:
        if not self._slots.acquire(blocking=False):
            logger.warning("Session refused", icon=LogIcon.FORBIDDEN, limit=self.limit)
            raise AdmissionRejectedError()
        try:
            yield
        finally:
            self._slots.release()


def build_admission(limit: int) -> AdmissionGate:
    """Pick the gate for ``limit``; zero or less means unbounded."""
    return BoundedAdmission(limit) if limit > 0 else UnboundedAdmission()
