"""Externally reachable URL issuance shared by the local backends.

The filesystem and in-memory backends both own a URLIssuer. It composes
``<prefix>/upload/<key>``, ``<prefix>/download/<key>`` and
``<prefix>/preview/<key>``, and stamps them with a presigned grant when a
Signer is configured.

Upload URLs are signed whenever a signer is present. Download and preview
URLs are signed only with ``sign_downloads=True`` so deployments that share
download links freely keep working unchanged.
"""

import urllib.parse
from datetime import timedelta
from typing import Optional

from ..constants import (
    DEFAULT_PRESIGN_EXPIRES,
    DOWNLOAD_PATH_PATTERN,
    FILENAME_PARAM,
    PREVIEW_PATH_PATTERN,
    UPLOAD_PATH_PATTERN,
)
from ..errors import (
    DirectDownloadRequiredError,
    DirectPreviewRequiredError,
    DirectUploadRequiredError,
)
from ..keys import normalize_key
from ..presigned import Signer, expand_pattern


class URLIssuer:
    """
    Builds and validates upload/download/preview URLs for one backend.

    Args:
        url_prefix: Externally reachable prefix; empty disables all URL issuance
        signer: Optional Signer; None means open (unsigned) mode
        presign_expires: Grant lifetime
        sign_downloads: Also sign download and preview URLs
        backend_name: Name used in error messages
    """

    def __init__(
        self,
        url_prefix: str = "",
        signer: Optional[Signer] = None,
        presign_expires: timedelta = DEFAULT_PRESIGN_EXPIRES,
        sign_downloads: bool = False,
        backend_name: str = "backend",
    ):
        self.url_prefix = url_prefix.rstrip("/") if url_prefix else ""
        self.signer = signer if signer is not None and signer.is_enabled() else None
        self.presign_expires = presign_expires
        self.sign_downloads = sign_downloads
        self.backend_name = backend_name

    @property
    def signing_enabled(self) -> bool:
        return self.signer is not None

    def _upload_path(self, key: str) -> str:
        # A signer carries the upload route it mints grants for
        if self.signer is not None:
            return self.signer.path_for_key(normalize_key(key))
        return expand_pattern(UPLOAD_PATH_PATTERN, normalize_key(key))

    def upload_url(self, key: str) -> str:
        if not self.url_prefix:
            raise DirectUploadRequiredError(self.backend_name)

        path = self._upload_path(key)
        if self.signer is not None:
            return self.signer.sign_url_with_base(self.url_prefix, "PUT", path, self.presign_expires)

        # Unsigned URL (open mode)
        return self.url_prefix + urllib.parse.quote(path, safe="/~")

    def download_url(self, key: str, filename: str = "") -> str:
        if not self.url_prefix:
            raise DirectDownloadRequiredError(self.backend_name)

        url = self._read_url(DOWNLOAD_PATH_PATTERN, key)
        if filename:
            sep = "&" if "?" in url else "?"
            url = f"{url}{sep}{urllib.parse.urlencode({FILENAME_PARAM: filename})}"
        return url

    def preview_url(self, key: str) -> str:
        if not self.url_prefix:
            raise DirectPreviewRequiredError(self.backend_name)
        return self._read_url(PREVIEW_PATH_PATTERN, key)

    def _read_url(self, pattern: str, key: str) -> str:
        path = expand_pattern(pattern, normalize_key(key))
        if self.sign_downloads and self.signer is not None:
            return self.signer.sign_url_with_base(self.url_prefix, "GET", path, self.presign_expires)
        return self.url_prefix + urllib.parse.quote(path, safe="/~")

    def validate_upload(self, key: str, signature: str, expires_at) -> None:
        """
        Validate a ``PUT`` grant for key.

        Succeeds unconditionally when no signer is configured. Deployments
        that accept uploads from untrusted tenants must configure a secret key.
        """
        if self.signer is None:
            return
        self.signer.validate("PUT", self._upload_path(key), signature, expires_at)

    def validate_download(self, key: str, signature: str, expires_at) -> None:
        self._validate_read(DOWNLOAD_PATH_PATTERN, key, signature, expires_at)

    def validate_preview(self, key: str, signature: str, expires_at) -> None:
        self._validate_read(PREVIEW_PATH_PATTERN, key, signature, expires_at)

    def _validate_read(self, pattern: str, key: str, signature: str, expires_at) -> None:
        # Unsigned downloads are open by configuration
        if not self.sign_downloads or self.signer is None:
            return
        self.signer.validate("GET", expand_pattern(pattern, normalize_key(key)), signature, expires_at)
