"""Azure blob storage implementation."""

import io
import logging
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from ..constants import DEFAULT_CONTENT_TYPE, DEFAULT_PRESIGN_EXPIRES, SNIFF_LEN
from ..errors import (
    DirectDownloadRequiredError,
    DirectPreviewRequiredError,
    DirectUploadRequiredError,
    NotFoundError,
    StorageIOError,
    TransferTimeoutError,
)
from ..keys import normalize_key
from ..models import ObjectMeta, UploadParams
from ..sniff import detect_content_type
from ..utils import as_reader, iter_chunks

logger = logging.getLogger(__name__)


class _ChunkReader(io.RawIOBase):
    """Raw stream over an iterator of byte chunks (a blob download)."""

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks: Iterator[bytes] = iter(chunks)
        self._buf = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._buf:
            try:
                self._buf = next(self._chunks)
            except StopIteration:
                return 0
        n = min(len(b), len(self._buf))
        b[:n] = self._buf[:n]
        self._buf = self._buf[n:]
        return n


class AzureBlobStore:
    """
    Azure Blob Storage implementation.

    Keys are stored as ``prefix/key`` inside one container. Upload, download
    and preview URLs are SAS URLs signed with the account key, so Azure itself
    validates the grant; there is no validate_*_signature entry point here.
    Without an account key in the connection string (e.g. a SAS-only
    connection string) URL issuance raises the matching Direct*RequiredError.
    """

    def __init__(
        self,
        connection_string: str,
        container: str,
        prefix: str = "",
        presign_expires: timedelta = DEFAULT_PRESIGN_EXPIRES,
    ):
        """
        Initialize Azure blob store.

        Args:
            connection_string: Azure Storage connection string
            container: Container name
            prefix: Optional key prefix
            presign_expires: Lifetime of SAS URLs
        """
        try:
            from azure.storage.blob import BlobServiceClient
        except ImportError:
            raise ImportError(
                "azure-storage-blob required for Azure blob storage. "
                "Install with: pip install azure-storage-blob"
            )

        self.client = BlobServiceClient.from_connection_string(connection_string)
        self.container = container
        self.prefix = prefix.strip("/") if prefix else ""
        self.presign_expires = presign_expires

        # Ensure container exists
        container_client = self.client.get_container_client(container)
        if not container_client.exists():
            container_client.create_container()

    def _blob_name(self, key: str) -> str:
        normalized = normalize_key(key)
        if self.prefix:
            return f"{self.prefix}/{normalized}"
        return normalized

    def _blob_client(self, key: str):
        return self.client.get_blob_client(container=self.container, blob=self._blob_name(key))

    def _account_key(self) -> Optional[str]:
        return getattr(self.client.credential, "account_key", None)

    def get_object_meta(self, key: str) -> ObjectMeta:
        from azure.core.exceptions import AzureError, ResourceNotFoundError

        try:
            props = self._blob_client(key).get_blob_properties()
        except ResourceNotFoundError:
            raise NotFoundError(key)
        except AzureError as e:
            raise StorageIOError(f"Failed to get blob properties for {key}: {e}", key) from e

        content_type = props.content_settings.content_type or DEFAULT_CONTENT_TYPE
        metadata = dict(props.metadata or {})
        metadata["content_type"] = content_type
        updated_at = props.last_modified or datetime.now(timezone.utc)
        return ObjectMeta(
            key=normalize_key(key),
            size=props.size,
            content_type=content_type,
            updated_at=updated_at,
            metadata=metadata,
        )

    def _sas_url(self, key: str, **permissions) -> Optional[str]:
        account_key = self._account_key()
        if not account_key:
            return None

        from azure.storage.blob import BlobSasPermissions, generate_blob_sas

        content_disposition = permissions.pop("content_disposition", None)
        blob_client = self._blob_client(key)
        sas = generate_blob_sas(
            account_name=self.client.account_name,
            container_name=self.container,
            blob_name=self._blob_name(key),
            account_key=account_key,
            permission=BlobSasPermissions(**permissions),
            expiry=datetime.now(timezone.utc) + self.presign_expires,
            content_disposition=content_disposition,
        )
        return f"{blob_client.url}?{sas}"

    def get_upload_url(self, key: str) -> str:
        url = self._sas_url(key, write=True, create=True)
        if url is None:
            raise DirectUploadRequiredError("azure backend")
        return url

    def upload(
        self,
        key: str,
        reader: Union[BinaryIO, bytes, bytearray],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self._upload(key, as_reader(reader), None, None, timeout)

    def upload_with_params(
        self,
        reader: Union[BinaryIO, bytes, bytearray],
        params: UploadParams,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self._upload(params.object_key, as_reader(reader), params.mime_type, params.metadata, timeout)

    def _upload(self, key, reader, mime_type, metadata, timeout) -> None:
        from azure.core.exceptions import (
            AzureError,
            ServiceRequestTimeoutError,
            ServiceResponseTimeoutError,
        )
        from azure.storage.blob import ContentSettings

        head = b""
        if not mime_type:
            # Sniff the head, then stitch it back onto the stream
            head = reader.read(SNIFF_LEN)
            mime_type = detect_content_type(head)
        # The deadline is enforced here while the SDK pulls chunks
        stream = io.BufferedReader(
            _ChunkReader(_prepend(head, iter_chunks(reader, key=key, timeout=timeout)))
        )

        kwargs = {
            "overwrite": True,
            "content_settings": ContentSettings(content_type=mime_type),
        }
        if metadata:
            kwargs["metadata"] = {str(k): str(v) for k, v in metadata.items()}
        if timeout is not None:
            kwargs["timeout"] = max(1, int(timeout))

        try:
            self._blob_client(key).upload_blob(stream, **kwargs)
        except AzureError as e:
            if timeout is not None and isinstance(e, (ServiceRequestTimeoutError, ServiceResponseTimeoutError)):
                raise TransferTimeoutError(key, timeout) from e
            raise StorageIOError(f"Failed to upload {key}: {e}", key) from e
        logger.debug("Uploaded %s to azure://%s/%s", key, self.container, self._blob_name(key))

    def get_download_url(self, key: str, filename: str = "") -> str:
        disposition = None
        if filename:
            from urllib.parse import quote
            disposition = f"attachment; filename*=UTF-8''{quote(filename)}"
        url = self._sas_url(key, read=True, content_disposition=disposition)
        if url is None:
            raise DirectDownloadRequiredError("azure backend")
        return url

    def get_preview_url(self, key: str) -> str:
        url = self._sas_url(key, read=True, content_disposition="inline")
        if url is None:
            raise DirectPreviewRequiredError("azure backend")
        return url

    def download(self, key: str) -> BinaryIO:
        from azure.core.exceptions import AzureError, ResourceNotFoundError

        try:
            downloader = self._blob_client(key).download_blob()
        except ResourceNotFoundError:
            raise NotFoundError(key)
        except AzureError as e:
            raise StorageIOError(f"Failed to download {key}: {e}", key) from e
        return io.BufferedReader(_ChunkReader(downloader.chunks()))

    def delete(self, key: str) -> None:
        from azure.core.exceptions import AzureError, ResourceNotFoundError

        try:
            self._blob_client(key).delete_blob()
        except ResourceNotFoundError:
            raise NotFoundError(key)
        except AzureError as e:
            raise StorageIOError(f"Failed to delete {key}: {e}", key) from e
        logger.debug("Deleted azure://%s/%s", self.container, self._blob_name(key))


def _prepend(head: bytes, chunks: Iterator[bytes]) -> Iterator[bytes]:
    if head:
        yield head
    yield from chunks
