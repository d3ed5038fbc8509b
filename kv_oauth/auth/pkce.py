"""PKCE and random identifier helpers.

RFC 7636 - Proof Key for Code Exchange. Uses the S256 challenge method
(base64url SHA-256 of the code verifier, unpadded).
"""

from __future__ import annotations

import hashlib
import secrets

from base64 import urlsafe_b64encode
from dataclasses import dataclass


def random_token(nbytes: int = 32) -> str:
    """Return a URL-safe random string with ``nbytes`` bytes of entropy."""
    return secrets.token_urlsafe(nbytes)


def code_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    Parameters
    ----------
    verifier : str
        The PKCE code verifier.

    Returns
    -------
    str
        Base64url-encoded SHA-256 digest without padding.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE code verifier and challenge pair.

    Attributes
    ----------
    verifier : str
        The code verifier (high-entropy random string).
    challenge : str
        The code challenge derived from the verifier.
    method : str
        The challenge method, always "S256".
    """

    verifier: str
    challenge: str
    method: str = "S256"

    @classmethod
    def generate(cls, length: int = 48) -> PKCEChallenge:
        """Generate a new verifier and its challenge.

        Parameters
        ----------
        length : int
            Number of random bytes in the verifier. 48 bytes encode to
            64 characters, inside the 43-128 range RFC 7636 allows.
        """
        return cls.from_verifier(random_token(length))

    @classmethod
    def from_verifier(cls, verifier: str) -> PKCEChallenge:
        """Rebuild the pair from a stored verifier."""
        return cls(verifier=verifier, challenge=code_challenge(verifier))
