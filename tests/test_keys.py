"""Test object key normalization and traversal prevention."""

import os

import pytest

from blobgate.errors import InvalidKeyError
from blobgate.keys import normalize_key, resolve_key


class TestNormalizeKey:
    """Test key canonicalization."""

    def test_plain_keys_unchanged(self):
        for key in ["file.txt", "a/b/c", "derived/abc/preview.jpg", ".hidden", "файл.txt"]:
            assert normalize_key(key) == key

    def test_redundant_segments_dropped(self):
        assert normalize_key("dir//file.txt") == "dir/file.txt"
        assert normalize_key("./file.txt") == "file.txt"
        assert normalize_key("dir/./file.txt") == "dir/file.txt"
        assert normalize_key("dir/sub/") == "dir/sub"

    def test_reject_empty(self):
        for key in ["", "   ", ".", "./"]:
            with pytest.raises(InvalidKeyError):
                normalize_key(key)

    def test_reject_absolute(self):
        """Absolute keys are rejected."""
        for key in ["/etc/passwd", "\\windows\\system32", "C:\\temp\\x", "c:/temp/x"]:
            with pytest.raises(InvalidKeyError, match="absolute"):
                normalize_key(key)

    def test_reject_parent_traversal(self):
        """Parent directory segments are blocked."""
        for key in ["../etc/passwd", "../../secret.txt", "some/../../path", "foo/../bar", "a/b/.."]:
            with pytest.raises(InvalidKeyError, match="parent directory"):
                normalize_key(key)

    def test_reject_windows_traversal(self):
        for key in ["..\\..\\windows", "dir\\..\\..\\etc"]:
            with pytest.raises(InvalidKeyError, match="parent directory"):
                normalize_key(key)

    def test_dots_inside_names_allowed(self):
        assert normalize_key("file..txt") == "file..txt"
        assert normalize_key("a/...b") == "a/...b"

    def test_reject_nul(self):
        with pytest.raises(InvalidKeyError, match="NUL"):
            normalize_key("a\x00b")

    def test_is_value_error(self):
        """InvalidKeyError can be handled as a ValueError."""
        with pytest.raises(ValueError):
            normalize_key("../x")


class TestResolveKey:
    """Test mapping keys to paths under a root."""

    def test_joins_with_segment_semantics(self, tmp_path):
        assert resolve_key(tmp_path, "a/b/c") == tmp_path.resolve() / "a" / "b" / "c"

    def test_results_stay_under_root(self, tmp_path):
        for key in ["file.txt", "deep/nested/dir/file.txt", "文件.txt"]:
            result = resolve_key(tmp_path, key)
            assert result.is_absolute()
            assert tmp_path.resolve() in result.parents

    def test_reject_traversal(self, tmp_path):
        with pytest.raises(InvalidKeyError):
            resolve_key(tmp_path / "sub", "../outside")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_reject_symlink_escape(self, tmp_path):
        """A symlinked directory inside the root cannot be used to leave it."""
        root = tmp_path / "root"
        outside = tmp_path / "outside"
        root.mkdir()
        outside.mkdir()
        (outside / "secret.txt").write_text("secret")
        os.symlink(outside, root / "link")

        with pytest.raises(InvalidKeyError, match="outside storage root"):
            resolve_key(root, "link/secret.txt")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_final_symlink_maps_to_link(self, tmp_path):
        (tmp_path / "real.txt").write_text("data")
        os.symlink(tmp_path / "real.txt", tmp_path / "alias")
        assert resolve_key(tmp_path, "alias") == tmp_path.resolve() / "alias"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_reject_final_symlink_escape(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.txt").write_text("secret")
        os.symlink(tmp_path / "secret.txt", root / "alias")

        with pytest.raises(InvalidKeyError, match="outside storage root"):
            resolve_key(root, "alias")
