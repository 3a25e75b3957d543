"""
Optional policies layered on top of the verification flows.

Neither is installed by default: verification is stateless and a replayed
call commits again, and root freshness is delegated to the registry.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Callable, Sequence, Set

from .config import DOMAIN_SEPARATORS
from .exceptions import ReplayError
from .security import encode_length_prefixed
from .types import RootRecord

FreshnessPolicy = Callable[[str, RootRecord], bool]


def min_height_policy(min_height: int) -> FreshnessPolicy:
    """Accept roots recorded at ``min_height`` or later."""

    def policy(subject: str, record: RootRecord) -> bool:
        return record.height >= min_height

    return policy


def signature_digest(
    message: bytes,
    seed_index: int,
    challenges: Sequence[int],
    responses: Sequence[int],
    public_keys_x: Sequence[int],
    public_keys_y: Sequence[int],
) -> bytes:
    parts = [DOMAIN_SEPARATORS["replay_digest"], message, seed_index.to_bytes(4, "big")]
    for group in (challenges, responses, public_keys_x, public_keys_y):
        parts.append(b"".join(v.to_bytes(32, "big") for v in group))
    return hashlib.sha256(encode_length_prefixed(parts)).digest()


class ReplayGuard:
    """
    Seen-signature table shared by any number of orchestrators.

    A digest is reserved atomically right before the side effect and
    released again if the side effect fails, so a signature is spent
    exactly when its call took effect.
    """

    def __init__(self) -> None:
        self._seen: Set[bytes] = set()
        self._lock = threading.Lock()

    def check(self, digest: bytes) -> None:
        with self._lock:
            if digest in self._seen:
                raise ReplayError("signature already used")

    def reserve(self, digest: bytes) -> None:
        """
        Check and mark ``digest`` under one lock.

        Raises:
            ReplayError: If the digest is already reserved
        """
        with self._lock:
            if digest in self._seen:
                raise ReplayError("signature already used")
            self._seen.add(digest)

    def release(self, digest: bytes) -> None:
        with self._lock:
            self._seen.discard(digest)

    def __contains__(self, digest: bytes) -> bool:
        with self._lock:
            return digest in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
