"""
One-time codes - Numeric verification codes and their stored digests.

Only sha256(code) is persisted. The code itself exists in memory long
enough to be handed to the email sender.
"""

import hashlib
import secrets

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Draw a 6-digit code uniformly from CODE_MIN..CODE_MAX inclusive."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def digest_code(code: str) -> str:
    """Hex sha256 digest of a code."""
    return hashlib.sha256(code.encode()).hexdigest()


def code_matches(code: str, code_hash: str) -> bool:
    """Compare a submitted code against a stored digest in constant time."""
    return secrets.compare_digest(digest_code(code).encode(), code_hash.encode())
