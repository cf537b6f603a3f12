"""Test PKCE and state generation."""

import base64
import hashlib
import re

from storefront.core.pkce import (
    CODE_CHALLENGE_METHOD,
    generate_code_challenge,
    generate_pkce,
    generate_state,
)

URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_challenge_is_sha256_of_verifier() -> None:
    """Test that the challenge is base64url(SHA256(verifier)) without padding."""
    for _ in range(20):
        pair = generate_pkce()
        digest = hashlib.sha256(pair.verifier.encode()).digest()
        expected = base64.urlsafe_b64encode(digest).decode().rstrip("=")
        assert pair.challenge == expected


def test_verifier_length_and_alphabet() -> None:
    pair = generate_pkce()
    assert 43 <= len(pair.verifier) <= 128
    assert URLSAFE.match(pair.verifier)
    assert URLSAFE.match(pair.challenge)


def test_known_challenge() -> None:
    """Test vector from RFC 7636 appendix B."""
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert generate_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_state_is_random_and_urlsafe() -> None:
    states = {generate_state() for _ in range(50)}
    assert len(states) == 50
    assert all(URLSAFE.match(s) and len(s) >= 43 for s in states)


def test_method_is_s256() -> None:
    assert CODE_CHALLENGE_METHOD == "S256"
