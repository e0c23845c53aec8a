"""Test content type detection."""

import pytest

from blobgate.sniff import detect_content_type, sniff_file

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 32
JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32


@pytest.mark.parametrize(
    "head,expected",
    [
        (PNG_HEADER, "image/png"),
        (JPEG_HEADER, "image/jpeg"),
        (b"%PDF-1.4\n%\xc7\xec\x8f\xa2\n", "application/pdf"),
        (b"GIF89a" + b"\x00" * 16, "image/gif"),
        (b"hello, world\n", "text/plain; charset=utf-8"),
        ("καλημέρα\r\n\tindent".encode(), "text/plain; charset=utf-8"),
        (b"\x00\xde\xad\xbe\xef", "application/octet-stream"),
        (b"", "application/octet-stream"),
    ],
)
def test_detect_content_type(head, expected):
    assert detect_content_type(head) == expected


def test_only_leading_bytes_considered():
    """Binary bytes past the sniff window do not change the verdict."""
    assert detect_content_type(b"a" * 512 + b"\x00\x01") == "text/plain; charset=utf-8"


def test_multibyte_cut_at_boundary():
    """A UTF-8 sequence split by the sniff window is still text."""
    head = b"a" * 511 + "é".encode()
    assert detect_content_type(head) == "text/plain; charset=utf-8"


def test_invalid_utf8_is_binary():
    assert detect_content_type(b"abc\xff\xfeabc") == "application/octet-stream"


class TestSniffFile:
    """Test sniffing from disk."""

    def test_reads_head(self, tmp_path):
        path = tmp_path / "f"
        path.write_bytes(PNG_HEADER)
        assert sniff_file(path) == "image/png"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert sniff_file(path) == "application/octet-stream"

    def test_unreadable_falls_back(self, tmp_path):
        assert sniff_file(tmp_path / "does-not-exist") == "application/octet-stream"
