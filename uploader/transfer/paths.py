"""Resolution of client-supplied object names under the storage root."""

from pathlib import Path

from uploader.transfer.errors import PathEscapeError


def resolve_object_path(root: Path, name: str) -> Path:
    """Join ``name`` to ``root`` and reject anything that escapes it."""
    if not name or "\x00" in name:
        raise PathEscapeError(f"invalid object name: {name!r}")

    base = root.resolve()
    candidate = (base / name.lstrip("/")).resolve()
    if candidate == base or not candidate.is_relative_to(base):
        raise PathEscapeError(f"object name escapes storage root: {name!r}")
    return candidate
