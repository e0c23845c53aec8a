"""Custom exceptions for blobgate.

This module defines typed exceptions so callers (for example an HTTP route
layer) can tell a missing object apart from a rejected grant and map each
to the right response.
"""


class BlobStoreError(RuntimeError):
    """Base class for all blobgate errors."""
    pass


# Object Errors
class NotFoundError(BlobStoreError):
    """Object key does not resolve to a stored object."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Object not found: {key}")


class InvalidKeyError(BlobStoreError, ValueError):
    """Object key is empty, absolute, or escapes the storage root."""

    def __init__(self, key: str, reason: str = "unsafe key"):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid object key {key!r}: {reason}")


# Storage Errors
class StorageIOError(BlobStoreError, OSError):
    """Underlying storage failure (permission denied, disk full, SDK error)."""

    def __init__(self, message: str, key: str = ""):
        self.key = key
        super().__init__(message)


class TransferTimeoutError(BlobStoreError, TimeoutError):
    """Transfer did not finish within the caller's timeout."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(
            f"Transfer for {key} exceeded {timeout:g}s; destination left unchanged"
        )


class DirectTransferRequiredError(BlobStoreError):
    """URL issuance attempted on a backend with no externally reachable prefix."""

    operation = "transfer"

    def __init__(self, backend: str = "backend"):
        self.backend = backend
        super().__init__(
            f"Direct {self.operation} required for {backend}: "
            f"no URL prefix configured, stream the bytes through the application instead."
        )


class DirectUploadRequiredError(DirectTransferRequiredError):
    """Upload URL requested but the caller must call upload() server-side."""

    operation = "upload"


class DirectDownloadRequiredError(DirectTransferRequiredError):
    """Download URL requested but the caller must call download() server-side."""

    operation = "download"


class DirectPreviewRequiredError(DirectTransferRequiredError):
    """Preview URL requested but no prefix is configured."""

    operation = "preview"


# Grant Errors
class SignatureError(BlobStoreError):
    """Base class for presigned grant validation failures."""
    pass


class ExpiredGrantError(SignatureError):
    """Presigned grant used after its expiration instant."""

    def __init__(self, expires_at: int, now: float):
        self.expires_at = expires_at
        self.now = now
        super().__init__(
            f"Presigned URL expired at {expires_at} (now {int(now)})"
        )


ExpiredError = ExpiredGrantError


class InvalidSignatureError(SignatureError):
    """Presented signature does not match the recomputed one, or is malformed."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


# Configuration Errors
class ConfigError(BlobStoreError):
    """Missing or invalid backend configuration."""
    pass


ConfigurationError = ConfigError


class SigningNotConfiguredError(ConfigError):
    """Signing requested but no secret key is configured."""

    def __init__(self):
        super().__init__(
            "URL signing is not configured. Set signature_secret_key "
            "(BLOBGATE_SECRET_KEY) to enable presigned URLs."
        )
