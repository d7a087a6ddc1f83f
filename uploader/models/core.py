"""Core models for request handling."""

from typing import Any

from uploader.transfer.multipart import MultipartReader


class MultipartUpload:
    """Streaming handle on a multipart/form-data request body."""

    __slots__ = ("source", "boundary")

    def __init__(self, source: Any, boundary: bytes) -> None:
        self.source = source
        self.boundary = boundary

    def __repr__(self) -> str:
        return f"MultipartUpload(boundary={self.boundary!r})"

    def parts(self, buffer_size: int) -> MultipartReader:
        """Iterate the parts of the body, reading ``buffer_size`` bytes at a time."""
        return MultipartReader(self.source, self.boundary, buffer_size=buffer_size)
