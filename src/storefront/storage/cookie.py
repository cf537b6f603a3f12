"""
Encrypted cookie token storage for serverless deployments.

Each record is signed as a JWT carrying an expiry claim and the JWT is then
encrypted as a compact JWE, so the browser can neither read nor forge it. A
store instance lives for one request: writes are kept pending, visible to
later reads in the same request, and copied onto the response by ``flush``.
"""

import hashlib
import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Mapping, Optional

from jose import jwe, jwt
from jose.exceptions import JOSEError

from storefront.core.settings import StorageBackend
from storefront.storage.base import STATE_TTL_SECONDS, TOKENS_TTL_SECONDS, TokenStore

logger = logging.getLogger("storage")

TOKENS_COOKIE = "etsy_oauth_tokens"
STATE_COOKIE = "etsy_oauth_state"
JWT_ALGORITHM = "HS256"


class CookieTokenStore(TokenStore):
    """
    Keep tokens and state in HTTP-only, same-site cookies.

    Args:
        cookies (Mapping[str, str]): Cookies sent with the current request.
        secret (str): Signing and encryption secret.
        secure (bool): Set the Secure flag (production).
    """

    backend = StorageBackend.COOKIE

    def __init__(
        self,
        cookies: Mapping[str, str],
        secret: str,
        secure: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._cookies = dict(cookies)
        self._pending: dict[str, tuple[Optional[str], int]] = {}
        self._secret = secret
        self._encryption_key = hashlib.sha256(secret.encode("utf-8")).digest()
        self.secure = secure

    def encrypt(self, data: dict[str, Any], ttl_seconds: int) -> str:
        """Sign ``data`` with an expiry claim and encrypt the result."""
        now = datetime.now(UTC)
        claims = {"data": data, "iat": now, "exp": now + timedelta(seconds=ttl_seconds)}
        signed = jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM)
        token = jwe.encrypt(signed, self._encryption_key, algorithm="dir", encryption="A256GCM")
        return token.decode("ascii") if isinstance(token, bytes) else token

    def decrypt(self, token: str) -> Optional[dict[str, Any]]:
        """Decrypt and verify a cookie value; None on tampering, wrong key or expiry."""
        try:
            signed = jwe.decrypt(token, self._encryption_key)
            claims = jwt.decode(signed.decode("utf-8"), self._secret, algorithms=[JWT_ALGORITHM])
        except (JOSEError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Failed to decrypt cookie: %s", e)
            return None
        data = claims.get("data")
        return data if isinstance(data, dict) else None

    def _read(self, name: str) -> Optional[dict[str, Any]]:
        value = self._cookies.get(name)
        if not value:
            return None
        return self.decrypt(value)

    def _write(self, name: str, data: dict[str, Any], ttl_seconds: int) -> None:
        value = self.encrypt(data, ttl_seconds)
        self._cookies[name] = value
        self._pending[name] = (value, ttl_seconds)

    def _delete(self, name: str) -> None:
        self._cookies.pop(name, None)
        self._pending[name] = (None, 0)

    def _read_tokens(self) -> Optional[dict[str, Any]]:
        return self._read(TOKENS_COOKIE)

    def _write_tokens(self, data: dict[str, Any]) -> None:
        self._write(TOKENS_COOKIE, data, TOKENS_TTL_SECONDS)

    def _delete_tokens(self) -> None:
        self._delete(TOKENS_COOKIE)

    def _read_state(self) -> Optional[dict[str, Any]]:
        return self._read(STATE_COOKIE)

    def _write_state(self, data: dict[str, Any]) -> None:
        self._write(STATE_COOKIE, data, STATE_TTL_SECONDS)

    def _delete_state(self) -> None:
        self._delete(STATE_COOKIE)

    def flush(self, response: Any) -> None:
        """Copy pending cookie writes and deletions onto the response."""
        for name, (value, max_age) in self._pending.items():
            if value is None:
                response.delete_cookie(
                    name, path="/", secure=self.secure, httponly=True, samesite="lax"
                )
            else:
                response.set_cookie(
                    name,
                    value,
                    max_age=max_age,
                    path="/",
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )
        self._pending.clear()
