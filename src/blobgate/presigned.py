"""HMAC presigned URL signing and validation.

A grant binds (method, path, expiration) together under a secret key:

    signature = hex(HMAC-SHA256(secret, "<METHOD>\\n<path>\\n<unix-expires>"))

Grants are never stored. Any process holding the same secret can recompute
the signature from the URL alone, so validation needs no shared state between
horizontally scaled instances. Binding the method and path means a grant
minted for ``PUT /upload/k`` cannot be replayed as a ``GET`` or for another key.
"""

import hashlib
import hmac
import logging
import time
import urllib.parse
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from pydantic import BaseModel

from .constants import (
    DEFAULT_PRESIGN_EXPIRES,
    EXPIRES_PARAM,
    SIGNATURE_PARAM,
    UPLOAD_PATH_PATTERN,
)
from .errors import ExpiredGrantError, InvalidSignatureError, SigningNotConfiguredError

logger = logging.getLogger(__name__)

Duration = Union[timedelta, int, float]
Instant = Union[datetime, int, float]


def _to_seconds(value: Duration) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _to_unix(value: Instant) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(value)


def expand_pattern(pattern: str, key: str) -> str:
    """Substitute an object key into a path pattern such as "/upload/{key}"."""
    return pattern.replace("{key}", key)


def canonical_string(method: str, path: str, expires_at: int) -> str:
    """Build the string that gets signed for a grant."""
    return f"{method.upper()}\n{path}\n{expires_at}"


class PresignedGrant(BaseModel):
    """A (method, path, expiration, signature) tuple carried by a presigned URL."""
    method: str
    path: str
    expires_at: int
    signature: str

    @classmethod
    def from_url(cls, method: str, url: str, prefix: str = "") -> "PresignedGrant":
        """
        Reconstruct a grant from a presigned URL.

        Args:
            method: HTTP method of the incoming request
            url: Full URL or path with query string
            prefix: URL prefix the grant was minted under; its path part is
                stripped so only the signed path remains

        Returns:
            PresignedGrant with the unquoted URL path

        Raises:
            InvalidSignatureError: If signature or expires is missing or malformed
        """
        parsed = urllib.parse.urlparse(url)
        query = urllib.parse.parse_qs(parsed.query)

        signature = query.get(SIGNATURE_PARAM, [""])[0]
        expires = query.get(EXPIRES_PARAM, [""])[0]
        if not signature or not expires:
            raise InvalidSignatureError("Presigned URL is missing signature or expires")
        try:
            expires_at = int(expires)
        except ValueError:
            raise InvalidSignatureError(f"Malformed expires value: {expires!r}")

        path = urllib.parse.unquote(parsed.path)
        base_path = urllib.parse.urlparse(prefix).path.rstrip("/") if prefix else ""
        if base_path and path.startswith(base_path + "/"):
            path = path[len(base_path):]

        return cls(
            method=method.upper(),
            path=path,
            expires_at=expires_at,
            signature=signature,
        )


class Signer:
    """
    Mints and verifies presigned grants for one secret key.

    The secret is read once at construction and never changes, so a single
    instance is safe to share between threads.

    Args:
        secret_key: HMAC key; an empty key disables signing
        default_expiration: TTL used when sign_url* is called without one
        url_pattern: Path template used by path_for_key, e.g. "/upload/{key}"
        clock: Returns current Unix time; defaults to time.time
        clock_skew: Grace period accepted past a grant's expiration
    """

    def __init__(
        self,
        secret_key: str = "",
        default_expiration: Duration = DEFAULT_PRESIGN_EXPIRES,
        url_pattern: str = UPLOAD_PATH_PATTERN,
        clock: Optional[Callable[[], float]] = None,
        clock_skew: Duration = timedelta(0),
    ):
        self._secret = secret_key.encode("utf-8") if secret_key else b""
        self.default_expiration = timedelta(seconds=_to_seconds(default_expiration))
        self.url_pattern = url_pattern
        self._clock = clock
        self.clock_skew = _to_seconds(clock_skew)
        if self.clock_skew < 0:
            raise ValueError("clock_skew cannot be negative")

    def __repr__(self) -> str:
        # Never show the secret
        return (
            f"Signer(enabled={self.is_enabled()}, "
            f"default_expiration={self.default_expiration}, url_pattern={self.url_pattern!r})"
        )

    def now(self) -> float:
        return self._clock() if self._clock is not None else time.time()

    def is_enabled(self) -> bool:
        """True iff a non-empty secret key is configured."""
        return bool(self._secret)

    def path_for_key(self, key: str) -> str:
        """Expand url_pattern for an object key."""
        return expand_pattern(self.url_pattern, key)

    def sign(self, method: str, path: str, expires_at: Instant) -> str:
        """
        Compute the signature for a grant.

        Deterministic: the same inputs and secret always give the same output.

        Args:
            method: HTTP method (case-insensitive)
            path: URL path, unquoted
            expires_at: Expiration as datetime or Unix seconds

        Returns:
            Lowercase hex HMAC-SHA256 digest
        """
        if not self.is_enabled():
            raise SigningNotConfiguredError()
        message = canonical_string(method, path, _to_unix(expires_at))
        return hmac.new(self._secret, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign_url(self, method: str, path: str, ttl: Optional[Duration] = None) -> str:
        """Presigned URL relative to the host (no base)."""
        return self.sign_url_with_base("", method, path, ttl)

    def sign_url_with_base(
        self,
        base: str,
        method: str,
        path: str,
        ttl: Optional[Duration] = None,
    ) -> str:
        """
        Compose ``base + path + ?signature=...&expires=...``.

        Args:
            base: URL prefix, e.g. "https://files.example.com"
            method: HTTP method the grant authorizes
            path: URL path, unquoted; it is percent-encoded in the result
            ttl: Grant lifetime; defaults to default_expiration

        Returns:
            Presigned URL

        Raises:
            SigningNotConfiguredError: If no secret key is set
            ValueError: If ttl is not positive
        """
        if not self.is_enabled():
            raise SigningNotConfiguredError()

        ttl_seconds = _to_seconds(self.default_expiration if ttl is None else ttl)
        if ttl_seconds <= 0:
            raise ValueError(f"Presign TTL must be positive, got {ttl_seconds:g}s")

        expires_at = int(self.now() + ttl_seconds)
        signature = self.sign(method, path, expires_at)
        query = urllib.parse.urlencode({SIGNATURE_PARAM: signature, EXPIRES_PARAM: expires_at})
        return f"{base.rstrip('/')}{urllib.parse.quote(path, safe='/~')}?{query}"

    def validate(self, method: str, path: str, signature: str, expires_at: Union[int, str]) -> None:
        """
        Verify a presented grant.

        Args:
            method: HTTP method of the request
            path: URL path the request targets, unquoted
            signature: Signature presented by the client
            expires_at: Expiration presented by the client (Unix seconds)

        Raises:
            ExpiredGrantError: If now is past expires_at (plus clock_skew)
            InvalidSignatureError: If the signature does not match
            SigningNotConfiguredError: If no secret key is set
        """
        if not self.is_enabled():
            raise SigningNotConfiguredError()

        try:
            expires_at = int(expires_at)
        except (TypeError, ValueError):
            raise InvalidSignatureError(f"Malformed expires value: {expires_at!r}")

        now = self.now()
        if now - self.clock_skew > expires_at:
            logger.warning("Rejected expired grant for %s %s", method.upper(), path)
            raise ExpiredGrantError(expires_at, now)

        expected = self.sign(method, path, expires_at)
        if not hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8")):
            logger.warning("Rejected invalid signature for %s %s", method.upper(), path)
            raise InvalidSignatureError()

    def validate_url(self, method: str, url: str, prefix: str = "") -> PresignedGrant:
        """
        Validate a full presigned URL as received by a route.

        Returns:
            The validated grant
        """
        grant = PresignedGrant.from_url(method, url, prefix)
        self.validate(grant.method, grant.path, grant.signature, grant.expires_at)
        return grant
