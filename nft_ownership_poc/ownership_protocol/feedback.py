"""
Anonymous course feedback backed by NFT ownership proofs.

A caller proves, through a ring signature over the feedback pointer and SMT
proofs against the course's latest root, that some ring member holds the
course NFT. Only then is the pointer appended to the course's log.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence, Tuple

from .collaborators import RootRegistry
from .config import DEFAULT_SMT_DEPTH
from .curve import CurveParameters
from .events import EventEmitter, FeedbackAdded
from .policies import FreshnessPolicy, ReplayGuard
from .store import FeedbackStore
from .types import FeedbackEntry
from .verification import OwnershipVerifier, require_identifier

logger = logging.getLogger(__name__)


class FeedbackRegistry:
    """
    Feedback flow orchestrator plus its query surface.

    Calls are serialized: each ``add_feedback`` runs to completion or
    aborts before the next one starts, and only a fully verified call
    reaches the store.

    Example:
        >>> registry = FeedbackRegistry(root_registry)
        >>> registry.add_feedback(course, "Qm...", sig.seed_index,
        ...     sig.challenges, sig.responses, xs, ys, keys, values, proofs)
        >>> registry.get_feedbacks(course, 0, 10)
        ['Qm...']
    """

    def __init__(
        self,
        root_registry: RootRegistry,
        store: Optional[FeedbackStore] = None,
        events: Optional[EventEmitter] = None,
        depth: int = DEFAULT_SMT_DEPTH,
        freshness_policy: Optional[FreshnessPolicy] = None,
        replay_guard: Optional[ReplayGuard] = None,
        allow_exclusion: Optional[bool] = None,
        params: Optional[CurveParameters] = None,
    ) -> None:
        self.store = store if store is not None else FeedbackStore()
        self.events = events if events is not None else EventEmitter()
        self.verifier = OwnershipVerifier(
            root_registry,
            depth=depth,
            freshness_policy=freshness_policy,
            replay_guard=replay_guard,
            allow_exclusion=allow_exclusion,
            params=params,
        )
        self._call_lock = threading.RLock()

    def add_feedback(
        self,
        course: str,
        ipfs_hash: str,
        seed_index: int,
        challenges: Sequence[int],
        responses: Sequence[int],
        public_keys_x: Sequence[int],
        public_keys_y: Sequence[int],
        keys: Sequence[bytes],
        values: Sequence[bytes],
        proofs: Sequence[Sequence[bytes]],
    ) -> FeedbackEntry:
        """
        Verify ownership and store ``ipfs_hash`` for ``course``.

        The ring signature is over ``ipfs_hash``; the root comes from the
        registry for ``course``.

        Returns:
            The committed FeedbackEntry

        Raises:
            MalformedInputError: Shape problems, before any crypto
            InvalidSignatureError: Ring does not close
            CollaboratorFailureError: Registry failed (StaleRootError if a
                freshness policy rejected the root)
            InvalidProofError: Any SMT proof failed
            ReplayError: Signature already used (guarded registries only)
        """
        require_identifier(course, "course")
        require_identifier(ipfs_hash, "ipfs_hash")

        with self._call_lock:
            claim = self.verifier.verify(
                ipfs_hash,
                course,
                seed_index,
                challenges,
                responses,
                public_keys_x,
                public_keys_y,
                keys,
                values,
                proofs,
            )
            self.verifier.reserve(claim)
            try:
                entry = self.store.commit(course, ipfs_hash)
            except Exception:
                self.verifier.release(claim)
                raise

            logger.info(
                "feedback committed for %s at root height %d",
                course,
                claim.root.height,
            )
            self.events.emit(FeedbackAdded(course=course, ipfs_hash=ipfs_hash))
        return entry

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_feedbacks(self, course: str, offset: int, limit: int) -> List[str]:
        return self.store.get_feedbacks(course, offset, limit)

    def get_courses(self, offset: int, limit: int) -> List[str]:
        return self.store.get_courses(offset, limit)

    def get_all_feedbacks(self) -> Tuple[List[str], List[List[str]]]:
        """Every known course and, in the same order, its feedback pointers."""
        return self.store.get_all()

    def feedback_count(self, course: str) -> int:
        return self.store.feedback_count(course)

    def course_count(self) -> int:
        return self.store.course_count()

    def is_known_course(self, course: str) -> bool:
        return self.store.is_known_course(course)
