"""Backend configuration helpers."""

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .constants import DEFAULT_PRESIGN_EXPIRES, ENV_PREFIX
from .errors import ConfigError


class BlobStoreConfig(BaseModel):
    """
    Configuration record a backend is built from.

    Only the filesystem provider needs ``base_dir``. An empty
    ``signature_secret_key`` disables signing (open mode) and an empty
    ``url_prefix`` disables URL issuance (direct transfer only).
    """
    provider: Literal["fs", "memory", "azure"] = "fs"
    base_dir: str = ""
    url_prefix: str = ""
    signature_secret_key: str = ""
    presign_expires: timedelta = DEFAULT_PRESIGN_EXPIRES
    sign_downloads: bool = False

    # Azure only
    container: str = ""
    prefix: str = ""
    connection_string: str = ""

    @field_validator("presign_expires")
    @classmethod
    def validate_presign_expires(cls, v: timedelta) -> timedelta:
        """Zero means "use the default"; negative is an error."""
        if v < timedelta(0):
            raise ValueError("presign_expires cannot be negative")
        if v == timedelta(0):
            return DEFAULT_PRESIGN_EXPIRES
        return v

    @field_validator("url_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def __repr_args__(self):
        # Keep secrets out of logs and tracebacks
        for name, value in super().__repr_args__():
            if name in ("signature_secret_key", "connection_string") and value:
                value = "***"
            yield name, value


def _build(data: Mapping, source: str) -> BlobStoreConfig:
    try:
        return BlobStoreConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid storage configuration in {source}: {e}") from e


def load_config(path: Path) -> BlobStoreConfig:
    """
    Load configuration from a YAML file.

    Settings may sit at the top level or under a ``storage:`` section.

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}")

    storage = data.get("storage", data)
    return _build(storage, str(path))


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> BlobStoreConfig:
    """
    Build configuration from ``BLOBGATE_*`` environment variables.

    Azure uses AZURE_STORAGE_CONNECTION_STRING, as the Azure SDK tooling does.
    """
    env = os.environ if environ is None else environ

    def get(name: str) -> Optional[str]:
        value = env.get(ENV_PREFIX + name)
        return value.strip() if value is not None else None

    data = {}
    for field, name in (
        ("provider", "PROVIDER"),
        ("base_dir", "BASE_DIR"),
        ("url_prefix", "URL_PREFIX"),
        ("signature_secret_key", "SECRET_KEY"),
        ("presign_expires", "PRESIGN_EXPIRES"),
        ("container", "CONTAINER"),
        ("prefix", "PREFIX"),
    ):
        value = get(name)
        if value:
            if field == "presign_expires" and value.replace(".", "", 1).isdigit():
                data[field] = float(value)
                continue
            data[field] = value

    sign_downloads = get("SIGN_DOWNLOADS")
    if sign_downloads:
        data["sign_downloads"] = sign_downloads.lower() in ("true", "1", "yes")

    conn_str = env.get("AZURE_STORAGE_CONNECTION_STRING")
    if conn_str:
        data["connection_string"] = conn_str

    return _build(data, "environment")
