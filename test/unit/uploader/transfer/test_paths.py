"""Tests for object name resolution under the storage root."""

from pathlib import Path

import pytest

from uploader.transfer.errors import PathEscapeError
from uploader.transfer.paths import resolve_object_path


class TestResolveObjectPath:
    """Tests for resolve_object_path."""

    def test_plain_name(self, storage_root: Path) -> None:
        """Verify a simple name resolves directly under the root."""
        assert resolve_object_path(storage_root, "a.txt") == storage_root.resolve() / "a.txt"

    def test_leading_slash_stays_under_root(self, storage_root: Path) -> None:
        """Verify a leading slash is treated as relative to the root."""
        assert resolve_object_path(storage_root, "/a.txt") == storage_root.resolve() / "a.txt"

    def test_inner_dot_dot_that_stays_inside(self, storage_root: Path) -> None:
        """Verify '..' segments are allowed while the result stays inside."""
        assert resolve_object_path(storage_root, "sub/../a.txt") == storage_root.resolve() / "a.txt"

    @pytest.mark.parametrize(
        "name",
        ["", "..", "../a.txt", "../../etc/passwd", "sub/../../a.txt", ".", "a\x00b"],
    )
    def test_rejects_escapes(self, storage_root: Path, name: str) -> None:
        """Verify names resolving outside (or to) the root are refused."""
        with pytest.raises(PathEscapeError):
            resolve_object_path(storage_root, name)

    def test_rejects_symlink_escape(self, storage_root: Path, tmp_path: Path) -> None:
        """Verify a symlink pointing outside the root is refused."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (storage_root / "link").symlink_to(outside)
        with pytest.raises(PathEscapeError):
            resolve_object_path(storage_root, "link/a.txt")

    def test_error_maps_to_client_error(self) -> None:
        """Verify the escape error is reported as a 400."""
        assert PathEscapeError().status_code == 400
