"""Backend-agnostic blob storage with HMAC presigned upload/download URLs."""

from .config import BlobStoreConfig, config_from_env, load_config
from .constants import BLOBGATE_VERSION
from .errors import (
    BlobStoreError,
    ConfigError,
    ConfigurationError,
    DirectDownloadRequiredError,
    DirectPreviewRequiredError,
    DirectTransferRequiredError,
    DirectUploadRequiredError,
    ExpiredError,
    ExpiredGrantError,
    InvalidKeyError,
    InvalidSignatureError,
    NotFoundError,
    SignatureError,
    SigningNotConfiguredError,
    StorageIOError,
    TransferTimeoutError,
)
from .models import ObjectMeta, UploadParams
from .presigned import PresignedGrant, Signer
from .storage import (
    AzureBlobStore,
    BlobStore,
    FilesystemBlobStore,
    MemoryBlobStore,
    make_blob_store,
)

__version__ = BLOBGATE_VERSION

__all__ = [
    "AzureBlobStore",
    "BlobStore",
    "BlobStoreConfig",
    "BlobStoreError",
    "ConfigError",
    "ConfigurationError",
    "DirectDownloadRequiredError",
    "DirectPreviewRequiredError",
    "DirectTransferRequiredError",
    "DirectUploadRequiredError",
    "ExpiredError",
    "ExpiredGrantError",
    "FilesystemBlobStore",
    "InvalidKeyError",
    "InvalidSignatureError",
    "MemoryBlobStore",
    "NotFoundError",
    "ObjectMeta",
    "PresignedGrant",
    "SignatureError",
    "Signer",
    "SigningNotConfiguredError",
    "StorageIOError",
    "TransferTimeoutError",
    "UploadParams",
    "config_from_env",
    "load_config",
    "make_blob_store",
]
