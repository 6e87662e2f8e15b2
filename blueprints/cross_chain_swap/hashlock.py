"""
Hashlock commitments.

A hashlock is the SHA-256 digest of a secret. SHA-256 is also what Bitcoin-style
HTLC scripts and the EVM escrows check, so the same secret opens both sides
of a swap.
"""

import hashlib

HASHLOCK_SIZE = 32


def commit(secret: bytes) -> bytes:
    """Return the 32-byte hashlock for `secret`."""
    return hashlib.sha256(secret).digest()


def validate(secret: bytes, expected: bytes) -> bool:
    # A wrong secret is not an error here; callers decide how to fail.
    return commit(secret) == expected
