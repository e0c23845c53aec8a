"""Storage backends implementing the BlobStore contract."""

from .azure import AzureBlobStore
from .base import BlobStore
from .factory import make_blob_store, make_signer
from .fs import FilesystemBlobStore
from .memory import MemoryBlobStore

__all__ = [
    "AzureBlobStore",
    "BlobStore",
    "FilesystemBlobStore",
    "MemoryBlobStore",
    "make_blob_store",
    "make_signer",
]
