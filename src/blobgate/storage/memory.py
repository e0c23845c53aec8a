"""In-memory blob storage implementation.

Useful for tests and single-process deployments. All state lives in one
dict guarded by a single lock, so operations on the same key are
serialized.
"""

import io
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import BinaryIO, Dict, Optional, Union

from ..constants import DEFAULT_PRESIGN_EXPIRES
from ..errors import NotFoundError
from ..keys import normalize_key
from ..models import ObjectMeta, UploadParams
from ..presigned import Signer
from ..sniff import detect_content_type
from ..utils import as_reader, read_all, utc_from_timestamp
from .urls import URLIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    data: bytes
    content_type: str
    updated_at: float
    attributes: Dict[str, str] = field(default_factory=dict)


class MemoryBlobStore:
    """
    Dict-backed store with the same URL and grant behavior as the
    filesystem backend.

    Unlike the filesystem backend, a declared mime type and extra
    attributes passed through upload_with_params are kept and reported
    by get_object_meta.
    """

    def __init__(
        self,
        url_prefix: str = "",
        signer: Optional[Signer] = None,
        presign_expires: timedelta = DEFAULT_PRESIGN_EXPIRES,
        sign_downloads: bool = False,
    ):
        self._objects: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self.presign_expires = presign_expires
        self._urls = URLIssuer(
            url_prefix=url_prefix,
            signer=signer,
            presign_expires=presign_expires,
            sign_downloads=sign_downloads,
            backend_name="memory backend",
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return normalize_key(key) in self._objects

    @property
    def url_prefix(self) -> str:
        return self._urls.url_prefix

    @property
    def signer(self) -> Optional[Signer]:
        return self._urls.signer

    def is_signed_url_enabled(self) -> bool:
        return self._urls.signing_enabled

    def get_object_meta(self, key: str) -> ObjectMeta:
        k = normalize_key(key)
        with self._lock:
            entry = self._objects.get(k)
        if entry is None:
            raise NotFoundError(key)

        metadata = dict(entry.attributes)
        metadata["content_type"] = entry.content_type
        return ObjectMeta(
            key=k,
            size=len(entry.data),
            content_type=entry.content_type,
            updated_at=utc_from_timestamp(entry.updated_at),
            metadata=metadata,
        )

    def get_upload_url(self, key: str) -> str:
        return self._urls.upload_url(key)

    def upload(
        self,
        key: str,
        reader: Union[BinaryIO, bytes, bytearray],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self._put(normalize_key(key), as_reader(reader), None, {}, timeout)

    def upload_with_params(
        self,
        reader: Union[BinaryIO, bytes, bytearray],
        params: UploadParams,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self._put(normalize_key(params.object_key), as_reader(reader), params.mime_type, params.metadata, timeout)

    def _put(
        self,
        key: str,
        reader: BinaryIO,
        mime_type: Optional[str],
        attributes: Dict[str, str],
        timeout: Optional[float],
    ) -> None:
        # Drain outside the lock; a failed read never touches the map
        data = read_all(reader, key=key, timeout=timeout)
        entry = _Entry(
            data=data,
            content_type=mime_type or detect_content_type(data),
            updated_at=time.time(),
            attributes={str(k): str(v) for k, v in attributes.items()},
        )
        with self._lock:
            self._objects[key] = entry
        logger.debug("Stored %s in memory (%d bytes)", key, len(data))

    def get_download_url(self, key: str, filename: str = "") -> str:
        return self._urls.download_url(key, filename)

    def get_preview_url(self, key: str) -> str:
        return self._urls.preview_url(key)

    def download(self, key: str) -> BinaryIO:
        k = normalize_key(key)
        with self._lock:
            entry = self._objects.get(k)
        if entry is None:
            raise NotFoundError(key)
        return io.BytesIO(entry.data)

    def delete(self, key: str) -> None:
        k = normalize_key(key)
        with self._lock:
            if self._objects.pop(k, None) is None:
                raise NotFoundError(key)
        logger.debug("Deleted %s from memory", key)

    def validate_upload_signature(self, key: str, signature: str, expires_at) -> None:
        self._urls.validate_upload(key, signature, expires_at)

    def validate_download_signature(self, key: str, signature: str, expires_at) -> None:
        self._urls.validate_download(key, signature, expires_at)

    def validate_preview_signature(self, key: str, signature: str, expires_at) -> None:
        self._urls.validate_preview(key, signature, expires_at)
