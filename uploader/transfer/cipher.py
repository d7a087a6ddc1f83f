"""Streaming AES-CTR transform wrapped around byte sources and sinks.

CTR mode turns AES into a position-dependent keystream, so the transform of a
byte sequence is the same whatever chunk sizes it is fed in. Encryption and
decryption are the same XOR, which is why one context type serves both the
read and the write decorators.

There is no authentication tag: a corrupted or tampered object decrypts to
garbage of the same length without any error.
"""

from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives.ciphers import Cipher, CipherContext, algorithms, modes

from uploader.transfer.errors import CipherConfigError, PartialWriteError

KEY_SIZES = frozenset({16, 24, 32})
IV_SIZE = 16


@dataclass(frozen=True, slots=True)
class CipherSpec:
    """Key and initial counter block for one keystream."""

    key: bytes
    iv: bytes

    def __post_init__(self) -> None:
        if len(self.key) not in KEY_SIZES:
            raise CipherConfigError(f"key must be 16, 24 or 32 bytes, not {len(self.key)}")
        if len(self.iv) != IV_SIZE:
            raise CipherConfigError(f"iv must be {IV_SIZE} bytes, not {len(self.iv)}")

    @classmethod
    def from_hex(cls, key_hex: str, iv_hex: str) -> "CipherSpec":
        try:
            key, iv = bytes.fromhex(key_hex), bytes.fromhex(iv_hex)
        except ValueError as ex:
            raise CipherConfigError(f"cipher key and iv must be hex encoded: {ex}") from ex
        return cls(key=key, iv=iv)

    def keystream(self) -> CipherContext:
        """Fresh transform context positioned at byte 0."""
        return Cipher(algorithms.AES(self.key), modes.CTR(self.iv)).encryptor()

    def __repr__(self) -> str:
        return f"CipherSpec(key=<{len(self.key)} bytes>, iv=<{len(self.iv)} bytes>)"


class DecoratedReader:
    """Byte source that transforms everything read from the wrapped source."""

    def __init__(self, source: Any, spec: CipherSpec) -> None:
        self._source = source
        self._ctx = spec.keystream()

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: memoryview | bytearray) -> int:
        view = memoryview(buffer)
        readinto = getattr(self._source, "readinto", None)
        if readinto is not None:
            count = readinto(view) or 0
        else:
            chunk = self._source.read(len(view))
            count = len(chunk)
            view[:count] = chunk
        if count:
            view[:count] = self._ctx.update(view[:count])
        return count

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            raise ValueError("DecoratedReader only supports bounded reads")
        buffer = bytearray(size)
        count = self.readinto(buffer)
        return bytes(buffer[:count])

    def close(self) -> None:
        self._source.close()


class DecoratedWriter:
    """Byte sink that transforms a scratch copy of each chunk before writing it."""

    def __init__(self, sink: Any, spec: CipherSpec) -> None:
        self._sink = sink
        self._ctx = spec.keystream()
        self._scratch = bytearray()

    def writable(self) -> bool:
        return True

    def write(self, data: bytes | memoryview) -> int:
        size = len(data)
        if len(self._scratch) < size:
            self._scratch = bytearray(size)
        scratch = memoryview(self._scratch)[:size]
        scratch[:] = data
        scratch[:] = self._ctx.update(scratch)
        written = self._sink.write(scratch)
        if written is not None and written != size:
            raise PartialWriteError(f"short write: {written} of {size} bytes")
        return size

    def flush(self) -> None:
        self._sink.flush()

    def close(self) -> None:
        self._sink.close()
