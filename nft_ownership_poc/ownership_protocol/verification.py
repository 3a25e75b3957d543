"""
Shared verification pipeline for the feedback and mint flows.

Stages run strictly in order and the first failure aborts the call:

    inputs checked -> signature checked -> root fetched -> proofs checked

Nothing here mutates state apart from the optional replay guard: the
orchestrators reserve the signature right before their side effect and
release it if that side effect fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .collaborators import RootRegistry
from .config import DEFAULT_SMT_DEPTH, EMPTY_VALUE
from .curve import CurveParameters
from .exceptions import (
    CollaboratorFailureError,
    InvalidProofError,
    InvalidSignatureError,
    MalformedInputError,
    StaleRootError,
)
from .feature_flags import allow_exclusion_proofs
from .policies import FreshnessPolicy, ReplayGuard, signature_digest
from .ring import message_bytes, validate_signature_shape, verify_ring_signature
from .smt import validate_batch, verify_proofs
from .types import RootRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedClaim:
    subject: str
    message: bytes
    root: RootRecord
    digest: bytes


def require_identifier(value, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedInputError(f"{name} must be a non-empty string")
    return value


class OwnershipVerifier:
    """
    Ring signature + registry root + SMT batch, composed once per call.

    Args:
        root_registry: Source of the latest root per subject
        depth: Expected SMT depth for every proof
        freshness_policy: Optional ``(subject, record) -> bool`` gate
        replay_guard: Optional seen-signature table
        allow_exclusion: Accept ``EMPTY_VALUE`` entries; resolved from the
            feature flag when None
        params: Curve parameters (cached parameters if None)
    """

    def __init__(
        self,
        root_registry: RootRegistry,
        depth: int = DEFAULT_SMT_DEPTH,
        freshness_policy: Optional[FreshnessPolicy] = None,
        replay_guard: Optional[ReplayGuard] = None,
        allow_exclusion: Optional[bool] = None,
        params: Optional[CurveParameters] = None,
    ) -> None:
        self.root_registry = root_registry
        self.depth = depth
        self.freshness_policy = freshness_policy
        self.replay_guard = replay_guard
        self._allow_exclusion = allow_exclusion
        self._params = params

    @property
    def allow_exclusion(self) -> bool:
        return allow_exclusion_proofs(self._allow_exclusion)

    def fetch_root(self, subject: str) -> RootRecord:
        """
        Read the latest root for ``subject``; never cached.

        Raises:
            CollaboratorFailureError: If the registry fails or answers garbage
            StaleRootError: If the freshness policy rejects the record
        """
        try:
            record = self.root_registry.get_last_data(subject)
        except CollaboratorFailureError:
            raise
        except Exception as e:
            raise CollaboratorFailureError(
                f"root registry failed for {subject}: {e}"
            ) from e

        if not isinstance(record, RootRecord):
            raise CollaboratorFailureError(
                f"root registry returned {type(record).__name__} for {subject}"
            )

        if self.freshness_policy is not None and not self.freshness_policy(
            subject, record
        ):
            raise StaleRootError(
                f"root for {subject} at height {record.height} rejected as stale"
            )
        return record

    def verify(
        self,
        message,
        subject: str,
        seed_index: int,
        challenges: Sequence[int],
        responses: Sequence[int],
        public_keys_x: Sequence[int],
        public_keys_y: Sequence[int],
        keys: Sequence[bytes],
        values: Sequence[bytes],
        proofs: Sequence[Sequence[bytes]],
    ) -> VerifiedClaim:
        """
        Run every stage; return the claim or raise the first failure.

        Raises:
            MalformedInputError, ReplayError, InvalidSignatureError,
            CollaboratorFailureError, InvalidProofError
        """
        message = message_bytes(message)
        require_identifier(subject, "subject")
        validate_signature_shape(
            seed_index, challenges, responses, public_keys_x, public_keys_y
        )
        validate_batch(keys, values, proofs, self.depth)

        if not verify_ring_signature(
            message,
            seed_index,
            challenges,
            responses,
            public_keys_x,
            public_keys_y,
            self._params,
        ):
            raise InvalidSignatureError("ring signature does not close")

        # Scalars and coordinates are in range once the signature closed
        digest = signature_digest(
            message, seed_index, challenges, responses, public_keys_x, public_keys_y
        )
        if self.replay_guard is not None:
            self.replay_guard.check(digest)

        record = self.fetch_root(subject)

        if not self.allow_exclusion:
            for index, value in enumerate(values):
                if value == EMPTY_VALUE:
                    raise InvalidProofError(
                        f"proof {index} is a non-membership proof", index=index
                    )

        verify_proofs(record.root, keys, values, proofs, self.depth)

        logger.debug(
            "ownership verified for %s at height %d (%d proofs)",
            subject,
            record.height,
            len(keys),
        )
        return VerifiedClaim(
            subject=subject, message=message, root=record, digest=digest
        )

    def reserve(self, claim: VerifiedClaim) -> None:
        """
        Spend the claim's signature before its side effect, if a guard is
        installed. Pair with ``release`` when the side effect fails.

        Raises:
            ReplayError: If another call already spent the signature
        """
        if self.replay_guard is not None:
            self.replay_guard.reserve(claim.digest)

    def release(self, claim: VerifiedClaim) -> None:
        if self.replay_guard is not None:
            self.replay_guard.release(claim.digest)
