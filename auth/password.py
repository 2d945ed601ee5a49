"""
bcrypt helpers for stored user credentials.

Only digests ever reach a credential store.  The work factor is taken from
``Settings.bcrypt_rounds`` at wiring time; tests pass a low value to stay fast.
A digest records its own cost, so raising the rounds later leaves existing
users able to log in.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """True when ``password`` matches ``password_hash``; a malformed digest never matches."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except (ValueError, TypeError):
        return False
