"""PKCE and state generation for the Etsy OAuth flow."""

import base64
import hashlib
import secrets
from typing import NamedTuple

CODE_CHALLENGE_METHOD = "S256"
STATE_BYTES = 32
VERIFIER_BYTES = 32


class PKCEPair(NamedTuple):
    verifier: str
    challenge: str


def _urlsafe(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_state() -> str:
    """Generate the OAuth state parameter (CSRF protection)."""
    return _urlsafe(secrets.token_bytes(STATE_BYTES))


def generate_code_challenge(verifier: str) -> str:
    """
    Derive the S256 code challenge for a verifier.

    Args:
        verifier (str): PKCE code verifier.

    Returns:
        str: base64url(SHA256(verifier)) without padding.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _urlsafe(digest)


def generate_pkce() -> PKCEPair:
    """Generate a PKCE verifier (43 characters) and its challenge."""
    verifier = _urlsafe(secrets.token_bytes(VERIFIER_BYTES))
    return PKCEPair(verifier=verifier, challenge=generate_code_challenge(verifier))
