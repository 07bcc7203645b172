"""Identifier fingerprinting.

The SHA-256 digest of an identifier is split into two parts:

- bounded key: digest bytes 0-3 read as a big-endian uint32, masked to the
  low 16 bits. Deliberately collision prone so the shared map never holds
  more than 65536 entries.
- signature: digest bytes 23-30. Used to tell apart identifiers that land on
  the same bounded key.
"""

import hashlib

from loguru import logger

from feeder.errors import HashingUnavailableError, InvalidInputError
from feeder.schemas import KEY_SPACE, SIGNATURE_SIZE, Fingerprint

HASH_ALGORITHM = "sha256"
SIGNATURE_OFFSET = 23


def _new_digest():
    try:
        return hashlib.new(HASH_ALGORITHM)
    except ValueError as e:
        raise HashingUnavailableError(f"{HASH_ALGORITHM} algorithm not available") from e


def ensure_hashing_available() -> None:
    """Fail fast at startup if the hash primitive is missing."""
    _new_digest()


def fingerprint(identifier: str) -> Fingerprint:
    """Compute the fingerprint of an identifier.

    Raises:
        InvalidInputError: identifier is not a string, or is empty or whitespace only.
        HashingUnavailableError: SHA-256 cannot be constructed.
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise InvalidInputError("Identifier cannot be null or empty")

    digest = _new_digest()
    digest.update(identifier.encode("utf-8"))
    raw = digest.digest()

    bounded_key = int.from_bytes(raw[0:4], "big") & (KEY_SPACE - 1)
    signature = raw[SIGNATURE_OFFSET:SIGNATURE_OFFSET + SIGNATURE_SIZE]

    logger.trace(f"Fingerprint calculated for {identifier} (key: {bounded_key})")
    return Fingerprint(bounded_key=bounded_key, signature=signature)
