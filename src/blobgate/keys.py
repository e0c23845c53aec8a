"""Object key normalization and traversal guards.

Keys are caller-chosen, path-like identifiers (``derived/abc/preview.jpg``).
Every backend runs keys through :func:`normalize_key` before use, and the
filesystem backend additionally resolves them with :func:`resolve_key` so a
key can never name a path outside the storage root.
"""

import re
from pathlib import Path, PurePosixPath

from .errors import InvalidKeyError

_DRIVE = re.compile(r"^[A-Za-z]:")


def normalize_key(key: str) -> str:
    """Canonicalize an object key.

    Redundant separators and ``.`` segments are dropped, so
    ``"dir//./file.txt"`` becomes ``"dir/file.txt"``.

    Args:
        key: Caller-supplied object key

    Returns:
        Canonical POSIX-style key

    Raises:
        InvalidKeyError: If key is empty, absolute, contains NUL bytes, or
            has a parent-directory segment
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidKeyError(str(key), "empty key")

    if "\x00" in key:
        raise InvalidKeyError(key, "NUL byte in key")

    # Forbid absolute keys, including Windows drive and UNC forms
    if key.startswith(("/", "\\")) or _DRIVE.match(key):
        raise InvalidKeyError(key, "absolute key")

    # Check both separators; a backslash is a separator on Windows hosts
    segments = re.split(r"[\\/]", key)
    if ".." in segments:
        raise InvalidKeyError(key, "parent directory segment")

    parts = [p for p in PurePosixPath(key).parts if p not in ("", ".")]
    if not parts:
        raise InvalidKeyError(key, "key names the storage root")

    return "/".join(parts)


def resolve_key(root: Path, key: str) -> Path:
    """Map an object key to a filesystem path strictly beneath root.

    Only the parent directory is resolved, so a key naming a symlink maps to
    the link itself and deleting it removes the link, not its target. A
    final-component link must still point inside root.

    Args:
        root: Storage root directory
        key: Object key

    Returns:
        Absolute path for the key

    Raises:
        InvalidKeyError: If the key is unsafe or resolves outside root
            (for example through a symlinked directory)
    """
    normalized = normalize_key(key)
    root_resolved = Path(root).resolve()
    unresolved = root_resolved / normalized
    parent = unresolved.parent.resolve()

    try:
        parent.relative_to(root_resolved)
    except ValueError:
        raise InvalidKeyError(key, "resolves outside storage root")

    target = parent / unresolved.name
    if target.is_symlink():
        linked = target.resolve()
        if linked == root_resolved or root_resolved not in linked.parents:
            raise InvalidKeyError(key, "resolves outside storage root")

    return target
