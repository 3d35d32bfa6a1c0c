"""HMAC-SHA256 signing for locally served transfer URLs.

Canonical string: "{path}:{expiry}:{content_type}", expiry in unix seconds.
Signature: lowercase hex digest of HMAC-SHA256(secret, canonical_string).

Tokens are self-contained; verifying one needs only the secret.
Never log the secret or a full signed URL.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass
from datetime import datetime

from blobkeep.errors import ConfigurationError

DEFAULT_EXPIRY_SECONDS = 3600


@dataclass(frozen=True)
class SignedToken:
    path: str
    expiry: int
    content_type: str
    signature: str

    def as_query(self) -> dict[str, str]:
        return {
            "filename": self.path,
            "expiry": str(self.expiry),
            "signature": self.signature,
            "contentType": self.content_type,
        }


def _require_key(secret_key: str) -> bytes:
    if not secret_key:
        raise ConfigurationError("Signing secret key is not set")
    return secret_key.encode("utf-8")


def canonical_payload(path: str, expiry: int | str, content_type: str) -> str:
    return f"{path}:{expiry}:{content_type}"


def sign(payload: str, secret_key: str) -> str:
    """Return the hex HMAC-SHA256 of ``payload`` keyed by ``secret_key``."""
    return hmac.new(
        key=_require_key(secret_key),
        msg=payload.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify(payload: str, secret_key: str, candidate: str) -> bool:
    """Check ``candidate`` against the signature of ``payload`` in constant time."""
    expected = sign(payload, secret_key)
    return hmac.compare_digest(expected.encode("ascii"), candidate.encode("utf-8"))


def to_epoch_seconds(value: datetime | int | float) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value)


def issue_token(
    path: str,
    content_type: str,
    secret_key: str,
    expires_at: datetime | int | None = None,
    now: float | None = None,
) -> SignedToken:
    """Sign ``path`` for one transfer of ``content_type`` until ``expires_at``.

    Without ``expires_at`` the token is valid for one hour from ``now``.
    """
    if expires_at is None:
        current = time.time() if now is None else now
        expiry = int(current) + DEFAULT_EXPIRY_SECONDS
    else:
        expiry = to_epoch_seconds(expires_at)
    signature = sign(canonical_payload(path, expiry, content_type), secret_key)
    return SignedToken(path=path, expiry=expiry, content_type=content_type, signature=signature)


def check_token(
    path: str,
    expiry: str | int,
    content_type: str,
    signature: str,
    secret_key: str,
    now: float | None = None,
) -> bool:
    """Return True when the signature matches and the expiry has not passed.

    ``expiry`` is taken exactly as received so the signed string is rebuilt
    byte-for-byte; a non-integer expiry fails the check.
    """
    try:
        expiry_seconds = int(expiry)
    except (TypeError, ValueError):
        return False

    valid = verify(canonical_payload(path, expiry, content_type), secret_key, signature)
    current = int(time.time() if now is None else now)
    return valid and current <= expiry_seconds
