"""Constants for blobgate."""

from datetime import timedelta

# Default lifetime of a presigned grant
DEFAULT_PRESIGN_EXPIRES = timedelta(hours=1)

# URL path patterns (relative to a backend's URL prefix)
UPLOAD_PATH_PATTERN = "/upload/{key}"
DOWNLOAD_PATH_PATTERN = "/download/{key}"
PREVIEW_PATH_PATTERN = "/preview/{key}"

# Query parameter names carried by presigned URLs
SIGNATURE_PARAM = "signature"
EXPIRES_PARAM = "expires"
FILENAME_PARAM = "filename"

# Content sniffing
SNIFF_LEN = 512
DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

# Streaming
COPY_CHUNK_SIZE = 64 * 1024

# Environment variable prefix for configuration
ENV_PREFIX = "BLOBGATE_"

# Version
BLOBGATE_VERSION = "0.1.0"
