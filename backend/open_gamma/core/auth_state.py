"""Signed, expiring auth-state tokens for the account-linking handshake.

The token binds a freshly generated identity to one linking attempt. It
is held by the browser in an httpOnly cookie between "start link" and
"complete link", so no server-side storage is needed to recover it.

Wire format::

    base64url(JSON({"userId": <id>, "exp": <epoch millis>})) + "." + base64url(HMAC-SHA256(secret, payload))

Both halves are unpadded base64url. Every verification failure collapses
to ``None``: callers cannot tell a bad signature from an expired or
malformed token.
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

# Default TTL for auth-state tokens (10 minutes)
DEFAULT_STATE_TTL_SECONDS = 600

# Bounds on the identity carried in a token
MIN_USER_ID_LENGTH = 1
MAX_USER_ID_LENGTH = 64

# Identity format: "user-" + 10 URL-safe characters
USER_ID_PREFIX = "user-"
_USER_ID_RANDOM_LENGTH = 10
_URL_SAFE_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
)


def generate_user_id() -> str:
    """Generate a new opaque identity, e.g. ``user-V1StGXR8_Z``.

    Returns:
        Identity string drawn from a CSPRNG.
    """
    suffix = "".join(
        secrets.choice(_URL_SAFE_ALPHABET) for _ in range(_USER_ID_RANDOM_LENGTH)
    )
    return f"{USER_ID_PREFIX}{suffix}"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


@dataclass(frozen=True)
class AuthState:
    """A verified linking attempt.

    Attributes:
        user_id: Identity generated at "start link".
        expires_at: Absolute expiry (UTC).
    """

    user_id: str
    expires_at: datetime


class AuthStateCodec:
    """Issues and verifies auth-state tokens with a shared HMAC secret.

    Neither method raises for bad input. The secret is fixed for the
    lifetime of the instance.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the codec.

        Args:
            secret: HMAC signing secret.
            ttl_seconds: Lifetime of issued tokens.
            clock: Returns the current time as epoch seconds.
        """
        if not secret:
            raise ValueError("Auth-state secret must not be empty")
        self._key = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(digest)

    def issue(self, user_id: str) -> str:
        """Create a signed token for ``user_id`` that expires after the TTL.

        Args:
            user_id: Identity to bind into the token.

        Returns:
            Token string ``payload.signature``.
        """
        expires_ms = int((self._clock() + self.ttl_seconds) * 1000)
        body = json.dumps(
            {"userId": user_id, "exp": expires_ms},
            separators=(",", ":"),
        )
        payload = _b64url_encode(body.encode("utf-8"))
        return f"{payload}.{self._sign(payload)}"

    def verify(self, token: str) -> AuthState | None:
        """Verify a token and recover its state.

        Checks, in order: shape, signature (constant time), payload
        decoding, expiry, identity bounds.

        Args:
            token: Token string as returned by ``issue``.

        Returns:
            AuthState if every check passes, None otherwise.
        """
        parts = token.split(".")
        if len(parts) != 2:
            return None
        payload, signature = parts

        try:
            expected = self._sign(payload)
        except UnicodeEncodeError:
            return None
        if not hmac.compare_digest(
            signature.encode("utf-8"), expected.encode("ascii")
        ):
            return None

        try:
            state = json.loads(_b64url_decode(payload).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None
        if not isinstance(state, dict):
            return None

        user_id = state.get("userId")
        expires_ms = state.get("exp")
        if not isinstance(user_id, str):
            return None
        if isinstance(expires_ms, bool) or not isinstance(expires_ms, int | float):
            return None
        if isinstance(expires_ms, float) and not math.isfinite(expires_ms):
            return None

        if expires_ms <= self._clock() * 1000:
            return None
        if not MIN_USER_ID_LENGTH <= len(user_id) <= MAX_USER_ID_LENGTH:
            return None

        try:
            expires_at = datetime.fromtimestamp(expires_ms / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
        return AuthState(user_id=user_id, expires_at=expires_at)


def token_signature(token: str) -> str:
    """Return the signature half of a token (empty string if malformed)."""
    _, _, signature = token.partition(".")
    return signature


class ConsumedStateRegistry:
    """Remembers which auth-state tokens were already used.

    Makes each token single-use within its TTL. Entries are keyed by the
    token signature and kept only until the token would have expired
    anyway; expired entries are dropped on every call.

    In-memory and process-local. A multi-instance deployment needs a
    shared store with the same interface.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._consumed: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def consume(self, token: str, expires_at: datetime) -> bool:
        """Mark a verified token as used.

        Args:
            token: The verified token.
            expires_at: Expiry recovered from the token.

        Returns:
            True on first use, False if the token was already consumed.
        """
        signature = token_signature(token)
        with self._lock:
            self._sweep_locked()
            if signature in self._consumed:
                return False
            self._consumed[signature] = expires_at.timestamp()
            return True

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [sig for sig, exp in self._consumed.items() if exp <= now]
        for sig in expired:
            del self._consumed[sig]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._consumed)

    def clear(self) -> None:
        """Forget all consumed tokens (for testing)."""
        with self._lock:
            self._consumed.clear()
