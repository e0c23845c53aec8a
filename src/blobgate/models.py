"""Data models shared by all blob store backends.

Object metadata is derived at read time from backend state (file stat plus a
content sniff, SDK properties, ...). It is never persisted as its own record.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ObjectMeta(BaseModel):
    """Read-only view of a stored object."""
    key: str
    size: int                                              # Bytes
    content_type: str
    updated_at: datetime                                   # Last-modified, timezone-aware
    metadata: Dict[str, str] = Field(default_factory=dict)


class UploadParams(BaseModel):
    """
    Auxiliary parameters for upload_with_params.

    Only ``object_key`` is mandatory. Backends that cannot honor the
    declared mime type or the extra attributes ignore them.
    """
    object_key: str
    mime_type: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("object_key")
    @classmethod
    def validate_object_key(cls, v: str) -> str:
        """Target key is required."""
        if not v or not v.strip():
            raise ValueError("object_key is required")
        return v
