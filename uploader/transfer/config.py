"""Immutable configuration handed to the transfer core."""

from dataclasses import dataclass, field
from pathlib import Path

from uploader.transfer.buffer import DEFAULT_BUFFER_SIZE
from uploader.transfer.cipher import CipherSpec

DEFAULT_TOKEN_FIELD = "uploadCookie"


@dataclass(frozen=True, slots=True)
class TransferConfig:
    """Storage root, shared secret, buffer size and optional cipher.

    Built once at startup and passed explicitly to every session.
    """

    root: Path
    token: bytes
    token_field: str = DEFAULT_TOKEN_FIELD
    buffer_size: int = DEFAULT_BUFFER_SIZE
    cipher: CipherSpec | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.buffer_size < 1:
            raise ValueError(f"buffer size must be positive, not {self.buffer_size}")
