"""PKCE helpers (:rfc:`7636`, ``S256`` method).

Random values are raw bytes from :func:`secrets.token_bytes` encoded as
base64url without padding, so 24 bytes become 32 characters and 96 bytes
become 128 characters.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import secrets

SESSION_STATE_BYTES = 24
CODE_VERIFIER_BYTES = 96
MIN_CODE_VERIFIER_BYTES = 32
MAX_CODE_VERIFIER_BYTES = 96


def base64url(data: bytes) -> str:
    """Encode *data* as URL-safe base64 without ``=`` padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_token(nbytes: int) -> str:
    """Return *nbytes* cryptographically random bytes, base64url encoded."""
    return base64url(secrets.token_bytes(nbytes))


def challenge_for(code_verifier: str) -> str:
    """Compute ``BASE64URL(SHA256(code_verifier))`` without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64url(digest)


async def compute_challenge(code_verifier: str) -> str:
    """Like :func:`challenge_for`, but hashes in a worker thread."""
    return await asyncio.to_thread(challenge_for, code_verifier)
