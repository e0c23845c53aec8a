"""Shared test fixtures and utilities."""

import pytest

from blobgate.presigned import Signer
from blobgate.storage.fs import FilesystemBlobStore
from blobgate.storage.memory import MemoryBlobStore

SECRET = "s3cr3t"
PREFIX = "http://localhost:8080/files"


class FakeClock:
    """Manually advanced Unix clock for signer tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer(clock):
    """Signer with a 5 second default TTL on a fake clock."""
    return Signer(secret_key=SECRET, default_expiration=5, clock=clock)


@pytest.fixture
def root(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def fs_store(root):
    """Filesystem store with no prefix and no signer (direct transfer, open mode)."""
    return FilesystemBlobStore(root)


@pytest.fixture
def signed_fs_store(root, signer):
    """Filesystem store with a URL prefix and a signer."""
    return FilesystemBlobStore(root, url_prefix=PREFIX, signer=signer, presign_expires=signer.default_expiration)


@pytest.fixture
def memory_store():
    return MemoryBlobStore()


@pytest.fixture(params=["fs", "memory"])
def any_store(request, tmp_path):
    """Each local backend, for contract tests."""
    if request.param == "fs":
        return FilesystemBlobStore(tmp_path / "contract")
    return MemoryBlobStore()
