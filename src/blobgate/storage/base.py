"""Base protocol for blob storage implementations."""

from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from ..models import ObjectMeta, UploadParams

Payload = Union[BinaryIO, bytes, bytearray]


@runtime_checkable
class BlobStore(Protocol):
    """
    Protocol for blob storage implementations.

    Filesystem, in-memory and object-store backends all provide these
    operations with the same guarantees. No backend retries internally;
    retry policy belongs to the caller.
    """

    def get_object_meta(self, key: str) -> ObjectMeta:
        """
        Look up metadata for a stored object without mutating state.

        Raises:
            NotFoundError: If key does not resolve to a stored object
        """
        ...

    def get_upload_url(self, key: str) -> str:
        """
        URL an external client can upload bytes for key to.

        If the backend signs URLs, the URL embeds a presigned grant with the
        backend's default expiration.

        Raises:
            DirectUploadRequiredError: If no externally reachable prefix is
                configured; call upload() server-side instead
        """
        ...

    def upload(self, key: str, reader: Payload, *, timeout: Optional[float] = None) -> None:
        """
        Stream all bytes from reader to key, replacing any existing object.

        Creates any intermediate structure the key implies. Re-uploading the
        same key overwrites cleanly. A failed or timed-out upload never leaves
        a partially written object visible.
        """
        ...

    def upload_with_params(
        self, reader: Payload, params: UploadParams, *, timeout: Optional[float] = None
    ) -> None:
        """
        Same as upload() with auxiliary parameters, under the same timeout rules.

        params.object_key is mandatory; a mime type or attributes the
        backend cannot store are ignored.
        """
        ...

    def get_download_url(self, key: str, filename: str = "") -> str:
        """
        Externally usable download URL; filename is passed through as the
        suggested save name.

        Raises:
            DirectDownloadRequiredError: If no prefix is configured
        """
        ...

    def get_preview_url(self, key: str) -> str:
        """
        URL for inline rendering (no forced download).

        Raises:
            DirectPreviewRequiredError: If no prefix is configured
        """
        ...

    def download(self, key: str) -> BinaryIO:
        """
        Readable binary stream of the object; the caller closes it.

        Raises:
            NotFoundError: If key is absent
        """
        ...

    def delete(self, key: str) -> None:
        """
        Remove the object.

        Raises:
            NotFoundError: If key is absent
        """
        ...
