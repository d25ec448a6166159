"""
auth/passwords.py -- Password hashing (bcrypt, direct usage, no passlib wrapper).

bcrypt is slow on purpose and its cost factor is tunable, which makes offline
guessing against a leaked users table expensive. The salt and cost are embedded
in the hash output, so verification needs only the stored hash and the
attempted plaintext.

bcrypt accepts at most 72 bytes of input and current releases raise ValueError
beyond that. Every password is therefore reduced to a fixed 44-byte key
(base64 of its SHA-256 digest) before it reaches bcrypt, in both hash_password
and verify_password. Passwords of any length hash, and no two passwords that
differ past byte 72 collide.
"""

from __future__ import annotations

import base64
import hashlib

import bcrypt

DEFAULT_ROUNDS = 12


def _prehash(plain: str) -> bytes:
    # base64 keeps NUL bytes out of the bcrypt input.
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> bytes:
    """Return a salted bcrypt hash of the plaintext password.

    Raises only if the OS randomness source fails; callers surface that as an
    internal error.
    """
    return bcrypt.hashpw(_prehash(plain), bcrypt.gensalt(rounds=rounds))


def verify_password(hashed: bytes, plain: str) -> bool:
    """Return True if the plaintext matches the hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash counts
    as a mismatch rather than an exception.
    """
    try:
        return bcrypt.checkpw(_prehash(plain), hashed)
    except ValueError:
        return False
