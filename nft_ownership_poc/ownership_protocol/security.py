"""
⚠️ DRAFT — requires crypto review before production use

Security utilities for cryptographic operations.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.
"""

import os
import secrets
import hashlib
import hmac
from typing import Iterable

from .config import CURVE_NAME, GROUP_ORDER, HASH_FUNCTION


# ============================================================================
# GROUP ORDER VALIDATION (Run at module import)
# ============================================================================


def _validate_group_order():
    """
    Validate GROUP_ORDER matches the expected value for secp256k1.

    Raises:
        ValueError: If GROUP_ORDER is invalid
    """
    if GROUP_ORDER < 2**128:
        raise ValueError(f"GROUP_ORDER too small (< 2^128): {GROUP_ORDER}")

    secp256k1_order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
    if CURVE_NAME == "secp256k1" and GROUP_ORDER != secp256k1_order:
        raise ValueError(
            f"GROUP_ORDER mismatch for secp256k1: "
            f"expected {hex(secp256k1_order)}, got {hex(GROUP_ORDER)}"
        )


_validate_group_order()


# ============================================================================
# RANDOMNESS SOURCE (Fork-Safe)
# ============================================================================


class RandomnessSource:
    """
    Cryptographically secure randomness with fork detection.

    Example:
        >>> rng = RandomnessSource()
        >>> scalar = rng.get_random_nonzero_scalar()
    """

    def __init__(self):
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def get_random_scalar(self, max_value: int) -> int:
        """Get random scalar in [0, max_value)."""
        if os.getpid() != self._pid:
            self.__init__()
        return self._rng.randrange(0, max_value)

    def get_random_index(self, size: int) -> int:
        """Get random index in [0, size)."""
        return self.get_random_scalar(size)

    def get_random_nonzero_scalar(self) -> int:
        """
        Get random scalar in [1, GROUP_ORDER).

        A zero nonce in the ring closure would leak the signer's key.
        """
        scalar = self.get_random_scalar(GROUP_ORDER)
        while scalar == 0:
            scalar = self.get_random_scalar(GROUP_ORDER)
        return scalar


# ============================================================================
# HASHING
# ============================================================================


def new_hash():
    """Return a fresh hash object for the configured challenge hash."""
    if HASH_FUNCTION == "SHA3-256":
        return hashlib.sha3_256()
    return hashlib.sha256()


def encode_length_prefixed(parts: Iterable[bytes]) -> bytes:
    """
    Concatenate parts as ``len(part) || part`` with 4-byte big-endian lengths.

    Without length prefixes ``b"AB" || b"CD"`` and ``b"ABC" || b"D"``
    would hash identically.

    Raises:
        TypeError: If any part is not bytes
    """
    out = bytearray()
    for part in parts:
        if not isinstance(part, bytes):
            raise TypeError("length-prefixed parts must be bytes")
        out.extend(len(part).to_bytes(4, "big"))
        out.extend(part)
    return bytes(out)


# ============================================================================
# CONSTANT-TIME OPERATIONS
# ============================================================================


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """Constant-time comparison to prevent timing attacks."""
    return hmac.compare_digest(a, b)


def scalar_to_bytes(value: int) -> bytes:
    """Encode a scalar in [0, GROUP_ORDER) as 32 big-endian bytes."""
    return (value % GROUP_ORDER).to_bytes(32, "big")
