"""Test the in-memory blob store and the behavior both local backends share."""

import io
import threading
import time

import pytest

from blobgate.errors import (
    DirectUploadRequiredError,
    ExpiredGrantError,
    InvalidKeyError,
    InvalidSignatureError,
    NotFoundError,
    TransferTimeoutError,
)
from blobgate.models import UploadParams
from blobgate.storage.base import BlobStore
from blobgate.storage.memory import MemoryBlobStore

from tests.conftest import PREFIX


class TestContract:
    """Behavior every BlobStore backend must share."""

    def test_is_blob_store(self, any_store):
        assert isinstance(any_store, BlobStore)

    def test_round_trip(self, any_store):
        any_store.upload("x/y.bin", io.BytesIO(b"\x00\x01\x02payload"))
        with any_store.download("x/y.bin") as f:
            assert f.read() == b"\x00\x01\x02payload"
        assert any_store.get_object_meta("x/y.bin").size == 10

    def test_overwrite(self, any_store):
        any_store.upload("k", b"first")
        any_store.upload("k", b"2nd")
        with any_store.download("k") as f:
            assert f.read() == b"2nd"

    def test_delete_finality(self, any_store):
        any_store.upload("k", b"x")
        any_store.delete("k")
        with pytest.raises(NotFoundError):
            any_store.download("k")
        with pytest.raises(NotFoundError):
            any_store.delete("k")

    def test_not_found(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.get_object_meta("missing")
        with pytest.raises(NotFoundError):
            any_store.download("missing")
        with pytest.raises(NotFoundError):
            any_store.delete("missing")

    def test_not_found_carries_key(self, any_store):
        with pytest.raises(NotFoundError) as exc_info:
            any_store.download("missing/key")
        assert exc_info.value.key == "missing/key"

    def test_invalid_keys(self, any_store):
        for key in ["", "../x", "/abs"]:
            with pytest.raises(InvalidKeyError):
                any_store.upload(key, b"x")

    def test_sniffed_types(self, any_store):
        any_store.upload("t", b"hello world")
        any_store.upload("p", b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
        assert any_store.get_object_meta("t").content_type == "text/plain; charset=utf-8"
        assert any_store.get_object_meta("p").content_type == "application/pdf"

    def test_direct_transfer_without_prefix(self, any_store):
        with pytest.raises(DirectUploadRequiredError):
            any_store.get_upload_url("k")

    def test_timeout(self, any_store):
        class Stalled:
            def read(self, n=-1):
                time.sleep(0.05)
                return b"x"

        with pytest.raises(TransferTimeoutError):
            any_store.upload("slow", Stalled(), timeout=0.01)
        with pytest.raises(NotFoundError):
            any_store.get_object_meta("slow")

    def test_timeout_with_params(self, any_store):
        """upload_with_params applies the same deadline as upload."""
        class Stalled:
            def read(self, n=-1):
                time.sleep(0.05)
                return b"x"

        params = UploadParams(object_key="slow", mime_type="text/csv")
        with pytest.raises(TransferTimeoutError):
            any_store.upload_with_params(Stalled(), params, timeout=0.01)
        with pytest.raises(NotFoundError):
            any_store.get_object_meta("slow")


class TestMemoryBlobStore:
    """Memory backend specifics."""

    def test_declared_mime_type_kept(self, memory_store):
        memory_store.upload_with_params(
            b"not really an image",
            UploadParams(object_key="img", mime_type="image/webp", metadata={"owner": "alice"}),
        )
        meta = memory_store.get_object_meta("img")
        assert meta.content_type == "image/webp"
        assert meta.metadata == {"owner": "alice", "content_type": "image/webp"}

    def test_sniffs_without_mime_type(self, memory_store):
        memory_store.upload_with_params(b"plain", UploadParams(object_key="k"))
        assert memory_store.get_object_meta("k").content_type == "text/plain; charset=utf-8"

    def test_len_and_contains(self, memory_store):
        assert len(memory_store) == 0
        memory_store.upload("a//b", b"x")
        assert len(memory_store) == 1
        assert "a/b" in memory_store
        assert "a//b" in memory_store
        memory_store.delete("a/b")
        assert "a/b" not in memory_store

    def test_download_is_independent_copy(self, memory_store):
        memory_store.upload("k", b"abc")
        first = memory_store.download("k")
        memory_store.upload("k", b"xyz")
        assert first.read() == b"abc"

    def test_no_directories(self, memory_store):
        """Prefixes are not objects in a flat key space."""
        memory_store.upload("a/b", b"x")
        with pytest.raises(NotFoundError):
            memory_store.get_object_meta("a")

    def test_concurrent_uploads(self, memory_store):
        threads = [
            threading.Thread(target=memory_store.upload, args=(f"k{i}", bytes([i]) * 100))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(memory_store) == 20

    def test_signed_urls(self, signer, clock):
        store = MemoryBlobStore(url_prefix=PREFIX, signer=signer, presign_expires=signer.default_expiration)
        assert store.is_signed_url_enabled()

        url = store.get_upload_url("k")
        query = dict(p.split("=", 1) for p in url.split("?", 1)[1].split("&"))
        store.validate_upload_signature("k", query["signature"], query["expires"])

        with pytest.raises(InvalidSignatureError):
            store.validate_upload_signature("other", query["signature"], query["expires"])

        clock.advance(6)
        with pytest.raises(ExpiredGrantError):
            store.validate_upload_signature("k", query["signature"], query["expires"])

    def test_open_mode(self, memory_store):
        assert memory_store.signer is None
        memory_store.validate_upload_signature("", "", 0)
