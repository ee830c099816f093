"""
Credential codec - Password digests with transparent legacy migration.

Stored credentials come in two formats:

- Hashed: a bcrypt digest ``$2b$<cost>$<22-char salt><31-char key>``. The
  cost and salt travel inside the digest, so verification needs nothing else.
- Legacy: an unhashed password written before hashing was introduced.

A stored value starting with ``$2`` is always read as a digest. If it does not
parse, verification fails; it is never reinterpreted as plaintext. Any other
value is legacy plaintext, compared directly. Callers upgrade a legacy value
with hash_password() right after it verifies, so the legacy branch runs at
most once per credential.
"""

import re
import secrets
from dataclasses import dataclass

import bcrypt

DEFAULT_COST = 10

_DIGEST_MARKER = "$2"
_DIGEST_PATTERN = re.compile(r"^\$(2[aby])\$(\d{2})\$([./A-Za-z0-9]{22})([./A-Za-z0-9]{31})$")


@dataclass(frozen=True)
class LegacyCredential:
    plaintext: str


@dataclass(frozen=True)
class HashedCredential:
    variant: str
    cost: int
    salt: str
    key: str

    def encode(self) -> str:
        return f"${self.variant}${self.cost:02d}${self.salt}{self.key}"


@dataclass(frozen=True)
class MalformedCredential:
    raw: str


Credential = LegacyCredential | HashedCredential | MalformedCredential


def parse_credential(stored: str | None) -> Credential:
    """Classify a stored credential value."""
    if not stored:
        return MalformedCredential(stored or "")
    if not stored.startswith(_DIGEST_MARKER):
        return LegacyCredential(stored)
    match = _DIGEST_PATTERN.match(stored)
    if match is None:
        return MalformedCredential(stored)
    variant, cost, salt, key = match.groups()
    return HashedCredential(variant=variant, cost=int(cost), salt=salt, key=key)


def hash_password(plaintext: str, rounds: int = DEFAULT_COST) -> str:
    """
    Hash a password with bcrypt.

    A fresh salt is generated on every call, so hashing the same password
    twice yields two different digests.

    Raises:
        ValueError: plaintext is None
    """
    if plaintext is None:
        raise ValueError("Password cannot be None")
    return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(plaintext: str | None, stored: str | None) -> bool:
    """
    Check a password against a stored credential of either format.

    Never raises: malformed digests and unusable input verify as False.
    """
    if plaintext is None:
        return False
    credential = parse_credential(stored)
    if isinstance(credential, HashedCredential):
        try:
            return bcrypt.checkpw(plaintext.encode(), credential.encode().encode())
        except ValueError:
            # bcrypt rejects inputs it cannot process (e.g. over 72 bytes)
            return False
    if isinstance(credential, LegacyCredential):
        return secrets.compare_digest(plaintext.encode(), credential.plaintext.encode())
    return False


def is_legacy(stored: str | None) -> bool:
    return isinstance(parse_credential(stored), LegacyCredential)


def check_and_upgrade(plaintext: str, stored: str, rounds: int = DEFAULT_COST) -> tuple[bool, str | None]:
    """
    Verify a login password and compute its upgrade if the stored value is legacy.

    Returns:
        (verified, replacement) where replacement is a fresh digest to persist
        over the legacy value, or None when nothing needs to change.
    """
    credential = parse_credential(stored)
    verified = verify_password(plaintext, stored)
    if verified and isinstance(credential, LegacyCredential):
        return True, hash_password(plaintext, rounds=rounds)
    return verified, None
