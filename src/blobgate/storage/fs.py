"""Filesystem blob storage implementation.

This is the reference backend: object keys map to files beneath a root
directory, content types are sniffed on read, and directories created
implicitly by nested keys are reclaimed on delete.

Concurrency:
    No in-process lock serializes access; the operating system's per-file
    guarantees are all there is. Uploads write to a temp file and
    ``os.replace`` it into place, so readers see either the previous object
    or the complete new one. Two uploads racing on one key end with the last
    writer to finish. Metadata read while an upload is in flight reflects
    whichever file was in place at stat time.
"""

import contextlib
import logging
import os
import stat
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from ..constants import DEFAULT_PRESIGN_EXPIRES
from ..errors import BlobStoreError, NotFoundError, StorageIOError
from ..keys import normalize_key, resolve_key
from ..models import ObjectMeta, UploadParams
from ..presigned import Signer
from ..sniff import sniff_file
from ..utils import as_reader, copy_stream, utc_from_timestamp
from .urls import URLIssuer

logger = logging.getLogger(__name__)

# mkdir + mkstemp attempts when a concurrent delete reclaims the parent
_CREATE_ATTEMPTS = 5


def _fsync_dir(path: Path) -> None:
    """Best-effort fsync of a directory entry update."""
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY
        fd = os.open(str(path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # Expected on Windows or filesystems that don't support directory fsync
        logger.debug("Directory fsync not supported for %s", path)


class FilesystemBlobStore:
    """
    Local filesystem store rooted at ``base_dir``.

    ``"a/b/c"`` is stored at ``<base_dir>/a/b/c``. Keys that would resolve
    outside ``base_dir`` are rejected with InvalidKeyError.

    Args:
        base_dir: Storage root; created if missing
        url_prefix: Externally reachable prefix for upload/download/preview
            URLs. Empty forces direct (server-mediated) transfer.
        signer: Optional Signer. Without one, upload URLs are unsigned and
            validate_upload_signature accepts everything.
        presign_expires: Lifetime of presigned grants
        sign_downloads: Sign download and preview URLs too
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        url_prefix: str = "",
        signer: Optional[Signer] = None,
        presign_expires: timedelta = DEFAULT_PRESIGN_EXPIRES,
        sign_downloads: bool = False,
    ):
        base = Path(base_dir)
        base.mkdir(parents=True, exist_ok=True)
        self.base_dir = base.resolve()
        self.presign_expires = presign_expires
        self._urls = URLIssuer(
            url_prefix=url_prefix,
            signer=signer,
            presign_expires=presign_expires,
            sign_downloads=sign_downloads,
            backend_name="filesystem backend",
        )

    def __repr__(self) -> str:
        return (
            f"FilesystemBlobStore(base_dir={str(self.base_dir)!r}, "
            f"url_prefix={self._urls.url_prefix!r}, signed={self.is_signed_url_enabled()})"
        )

    @property
    def url_prefix(self) -> str:
        return self._urls.url_prefix

    @property
    def signer(self) -> Optional[Signer]:
        """The configured Signer, or None in open mode."""
        return self._urls.signer

    def is_signed_url_enabled(self) -> bool:
        return self._urls.signing_enabled

    def _path(self, key: str) -> Path:
        return resolve_key(self.base_dir, key)

    def get_object_meta(self, key: str) -> ObjectMeta:
        """
        Stat the object and sniff its content type.

        Args:
            key: Object key

        Returns:
            ObjectMeta; metadata map carries ``content_type``

        Raises:
            NotFoundError: If the key is absent or names a directory
            StorageIOError: If the file cannot be stat'ed
        """
        path = self._path(key)
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError(key)
        except OSError as e:
            raise StorageIOError(f"Failed to get file info for {key}: {e}", key) from e

        if not stat.S_ISREG(st.st_mode):
            raise NotFoundError(key)

        content_type = sniff_file(path)
        return ObjectMeta(
            key=normalize_key(key),
            size=st.st_size,
            content_type=content_type,
            updated_at=utc_from_timestamp(st.st_mtime),
            metadata={"content_type": content_type},
        )

    def get_upload_url(self, key: str) -> str:
        """
        Upload URL for ``PUT <prefix>/upload/<key>``.

        Signed with the backend's default expiration when a signer is
        configured, otherwise returned unsigned.
        """
        return self._urls.upload_url(key)

    def upload(
        self,
        key: str,
        reader: Union[BinaryIO, bytes, bytearray],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Write the full stream to the key's path, replacing existing content.

        Args:
            key: Object key; missing parent directories are created
            reader: Binary stream or bytes
            timeout: Maximum seconds for the transfer

        Raises:
            InvalidKeyError: If key is unsafe
            TransferTimeoutError: If timeout elapses; the previous object is kept
            StorageIOError: On filesystem failures
        """
        dest = self._path(key)
        reader = as_reader(reader)
        fd, tmppath = self._create_temp(key, dest)

        try:
            with os.fdopen(fd, "wb") as f:
                written = copy_stream(reader, f, key=key, timeout=timeout)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmppath, 0o644)
            os.replace(str(tmppath), str(dest))
        except BaseException as e:
            with contextlib.suppress(OSError):
                tmppath.unlink()
            if isinstance(e, OSError) and not isinstance(e, BlobStoreError):
                raise StorageIOError(f"Failed to write {key}: {e}", key) from e
            raise

        _fsync_dir(dest.parent)
        logger.debug("Uploaded %s (%d bytes)", key, written)

    def _create_temp(self, key: str, dest: Path) -> Tuple[int, Path]:
        """
        Create the parent directories and a temp file beside ``dest``.

        A concurrent delete of the last sibling may reclaim the parent between
        mkdir and mkstemp, so both steps are retried a bounded number of times.
        """
        for attempt in range(1, _CREATE_ATTEMPTS + 1):
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageIOError(f"Failed to create directory for {key}: {e}", key) from e

            # Temp file in the same directory so the rename is atomic
            try:
                fd, tmpname = tempfile.mkstemp(prefix=".upload-", dir=str(dest.parent))
            except FileNotFoundError as e:
                if attempt == _CREATE_ATTEMPTS:
                    raise StorageIOError(f"Failed to create file for {key}: {e}", key) from e
                logger.debug("Parent of %s removed concurrently, retrying (%d)", key, attempt)
                continue
            except OSError as e:
                raise StorageIOError(f"Failed to create file for {key}: {e}", key) from e
            return fd, Path(tmpname)

    def upload_with_params(
        self,
        reader: Union[BinaryIO, bytes, bytearray],
        params: UploadParams,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        """Upload to params.object_key; the mime type is not stored, it is sniffed on read."""
        self.upload(params.object_key, reader, timeout=timeout)

    def get_download_url(self, key: str, filename: str = "") -> str:
        return self._urls.download_url(key, filename)

    def get_preview_url(self, key: str) -> str:
        return self._urls.preview_url(key)

    def download(self, key: str) -> BinaryIO:
        """
        Open the object for streaming.

        The returned file handle holds a descriptor until the caller closes it.
        """
        path = self._path(key)
        try:
            return open(path, "rb")
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            raise NotFoundError(key)
        except OSError as e:
            raise StorageIOError(f"Failed to open {key}: {e}", key) from e

    def delete(self, key: str) -> None:
        """
        Remove the object, then reclaim parent directories it leaves empty.

        Directory cleanup stops at the storage root and is best-effort: a
        concurrent upload repopulating a directory is not an error.

        Raises:
            NotFoundError: If the key is absent
            StorageIOError: If the file cannot be removed
        """
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(key)

        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError(key)
        except OSError as e:
            raise StorageIOError(f"Failed to delete {key}: {e}", key) from e

        logger.debug("Deleted %s", key)
        self._cleanup_empty_directories(path.parent)

    def _cleanup_empty_directories(self, directory: Path) -> None:
        """Remove empty directories from ``directory`` up to (not including) base_dir."""
        current = directory
        while current != self.base_dir and self.base_dir in current.parents:
            try:
                # rmdir only succeeds on an empty directory
                current.rmdir()
            except OSError as e:
                logger.debug("Stopped directory cleanup at %s: %s", current, e)
                return
            logger.debug("Removed empty directory: %s", current)
            current = current.parent

    def validate_upload_signature(self, key: str, signature: str, expires_at) -> None:
        """
        Validate a presigned upload grant for ``PUT /upload/<key>``.

        Always succeeds when no signer is configured (open mode). Callers
        accepting uploads from untrusted tenants must configure a secret key.

        Raises:
            ExpiredGrantError: If the grant has expired
            InvalidSignatureError: If the signature does not match
        """
        self._urls.validate_upload(key, signature, expires_at)

    def validate_download_signature(self, key: str, signature: str, expires_at) -> None:
        """Validate a ``GET /download/<key>`` grant; open unless sign_downloads is set."""
        self._urls.validate_download(key, signature, expires_at)

    def validate_preview_signature(self, key: str, signature: str, expires_at) -> None:
        """Validate a ``GET /preview/<key>`` grant; open unless sign_downloads is set."""
        self._urls.validate_preview(key, signature, expires_at)
