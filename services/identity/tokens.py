"""HMAC-signed bearer tokens."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from collections.abc import Callable

from packages.snap_shared.http import VerifiedIdentity
from services.identity.domain import Account, InvalidTokenError, IssuedToken


class TokenSigner:
    """Issue and verify ``<payload>.<signature>`` tokens.

    The payload is base64url JSON with ``sub``, ``roles`` and ``exp``; the
    signature is HMAC-SHA256 over the encoded payload.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._key = secret.encode("utf-8")
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, account: Account) -> IssuedToken:
        """Create a token for one account."""
        claims = {
            "sub": account.user_name,
            "roles": list(account.roles),
            "exp": int(self._clock()) + self._ttl_seconds,
        }
        payload = _b64url_encode(
            json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8")
        )
        return IssuedToken(
            access_token=f"{payload}.{self._sign(payload)}",
            expires_in=self._ttl_seconds,
        )

    def verify(self, token: str) -> VerifiedIdentity:
        """Return the identity carried by a valid token.

        Raises:
            InvalidTokenError: When the token is malformed, forged, or expired.
        """
        payload, separator, signature = token.partition(".")
        if not separator or not payload or not signature:
            raise InvalidTokenError("malformed token")
        if not hmac.compare_digest(self._sign(payload), signature):
            raise InvalidTokenError("invalid token signature")
        try:
            claims = json.loads(_b64url_decode(payload))
            user_name = str(claims["sub"])
            roles = tuple(str(role) for role in claims.get("roles", ()))
            expires_at = int(claims["exp"])
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidTokenError("malformed token payload") from exc
        if expires_at <= int(self._clock()):
            raise InvalidTokenError("token expired")
        return VerifiedIdentity(user_name=user_name, roles=roles)

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(digest)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - len(data) % 4) % 4)
    return base64.urlsafe_b64decode(data + padding)
