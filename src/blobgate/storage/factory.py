"""Factory for creating blob storage instances."""

import logging
import os
from pathlib import Path
from typing import Optional

from ..config import BlobStoreConfig
from ..errors import ConfigError
from ..presigned import Signer
from .azure import AzureBlobStore
from .base import BlobStore
from .fs import FilesystemBlobStore
from .memory import MemoryBlobStore

logger = logging.getLogger(__name__)


def validate_azure_config(config: BlobStoreConfig) -> None:
    """
    Early validation of Azure configuration.

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config.container:
        raise ConfigError("storage.container required for Azure blob storage")

    if not config.connection_string:
        raise ConfigError(
            "Set AZURE_STORAGE_CONNECTION_STRING and storage.container "
            "for Azure blob storage"
        )


def make_signer(config: BlobStoreConfig) -> Optional[Signer]:
    """Build the Signer, or None when no secret key is configured (open mode)."""
    if not config.signature_secret_key:
        return None
    return Signer(
        secret_key=config.signature_secret_key,
        default_expiration=config.presign_expires,
    )


def make_blob_store(config: BlobStoreConfig) -> BlobStore:
    """
    Create blob store instance based on config.

    This is the only place secret material is read; the resulting Signer
    does not change for the backend's lifetime.

    Args:
        config: Backend configuration

    Returns:
        BlobStore instance

    Raises:
        ConfigError: If configuration is invalid or the storage root cannot
            be created
    """
    if config.provider == "fs":
        if not config.base_dir:
            raise ConfigError("storage.base_dir (directory path) required for filesystem storage")
        try:
            store = FilesystemBlobStore(
                Path(config.base_dir),
                url_prefix=config.url_prefix,
                signer=make_signer(config),
                presign_expires=config.presign_expires,
                sign_downloads=config.sign_downloads,
            )
        except OSError as e:
            raise ConfigError(f"Failed to create base directory {config.base_dir}: {e}") from e
        if not os.access(store.base_dir, os.R_OK | os.W_OK | os.X_OK):
            raise ConfigError(f"Base directory {config.base_dir} is not accessible")

    elif config.provider == "memory":
        store = MemoryBlobStore(
            url_prefix=config.url_prefix,
            signer=make_signer(config),
            presign_expires=config.presign_expires,
            sign_downloads=config.sign_downloads,
        )

    elif config.provider == "azure":
        validate_azure_config(config)
        store = AzureBlobStore(
            config.connection_string,
            config.container,
            config.prefix,
            presign_expires=config.presign_expires,
        )

    else:
        raise NotImplementedError(f"Provider {config.provider} not supported")

    logger.debug("Created %s blob store", config.provider)
    return store
