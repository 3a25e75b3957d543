"""
Sparse Merkle tree proofs for NFT ownership.

Uses SHA-256 with domain separation for leaf/node hashing. Empty subtrees
hash to ``EMPTY_NODE`` at every level, so a proof of the ``EMPTY_VALUE``
sentinel at a key's position is a non-membership proof.

Bit order: in a tree of depth ``d`` a leaf sits at the position given by the
``d`` most significant bits of its key. ``siblings[0]`` is the sibling at
the deepest level and is paired with key bit ``d - 1`` (counting from the
most significant end); ``siblings[d - 1]`` is a child of the root.
"""

import hashlib
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    DEFAULT_SMT_DEPTH,
    DOMAIN_SEPARATORS,
    EMPTY_NODE,
    EMPTY_VALUE,
    MAX_PROOF_BATCH_SIZE,
    SMT_HASH_SIZE_BYTES,
    SMT_KEY_BITS,
)
from .exceptions import InvalidProofError, MalformedInputError
from .security import constant_time_compare
from .types import SMTProof

logger = logging.getLogger(__name__)


def hash_leaf(key: bytes, value: bytes) -> bytes:
    """
    Hash a terminal (key, value) pair.

    The empty sentinel maps to ``EMPTY_NODE`` regardless of key so absent
    slots agree with the implicit empty subtree.
    """
    if value == EMPTY_VALUE:
        return EMPTY_NODE
    return hashlib.sha256(DOMAIN_SEPARATORS["smt_leaf"] + key + value).digest()


def hash_node(left: bytes, right: bytes) -> bytes:
    """
    Hash two child hashes with fixed left||right ordering.
    """
    if left == EMPTY_NODE and right == EMPTY_NODE:
        return EMPTY_NODE
    return hashlib.sha256(DOMAIN_SEPARATORS["smt_node"] + left + right).digest()


def _is_hash(value) -> bool:
    return isinstance(value, bytes) and len(value) == SMT_HASH_SIZE_BYTES


def _key_bit(key_int: int, level_from_root: int) -> int:
    return (key_int >> (SMT_KEY_BITS - 1 - level_from_root)) & 1


def _check_depth(depth: int) -> None:
    if not isinstance(depth, int) or not 1 <= depth <= SMT_KEY_BITS:
        raise ValueError(f"depth must be in [1, {SMT_KEY_BITS}], got {depth}")


def verify_proof(
    root: bytes,
    key: bytes,
    value: bytes,
    siblings: Sequence[bytes],
    depth: int = DEFAULT_SMT_DEPTH,
) -> bool:
    """
    Verify a sparse Merkle tree proof.

    Args:
        root: Expected root (32 bytes)
        key: Leaf key (32 bytes)
        value: Leaf value, or ``EMPTY_VALUE`` for a non-membership proof
        siblings: Sibling hashes, deepest level first
        depth: Expected tree depth; ``len(siblings)`` must match it

    Returns:
        True only if the recomputed root equals ``root`` exactly

    Example:
        if verify_proof(root, key, value, proof.siblings):
            print("Key holds value")
    """
    _check_depth(depth)

    if not (_is_hash(root) and _is_hash(key) and _is_hash(value)):
        return False

    if len(siblings) != depth:
        return False

    if not all(_is_hash(s) for s in siblings):
        return False

    key_int = int.from_bytes(key, "big")
    current = hash_leaf(key, value)

    for i, sibling in enumerate(siblings):
        if _key_bit(key_int, depth - 1 - i):
            # Current is the right child
            current = hash_node(sibling, current)
        else:
            current = hash_node(current, sibling)

    return constant_time_compare(current, root)


def verify_smt_proof(proof: SMTProof, depth: Optional[int] = None) -> bool:
    """Verify an ``SMTProof`` against its own root."""
    return verify_proof(
        proof.root,
        proof.key,
        proof.value,
        proof.siblings,
        DEFAULT_SMT_DEPTH if depth is None else depth,
    )


# ============================================================================
# BATCH VERIFICATION
# ============================================================================


def validate_batch(
    keys: Sequence[bytes],
    values: Sequence[bytes],
    proofs: Sequence[Sequence[bytes]],
    depth: int = DEFAULT_SMT_DEPTH,
) -> None:
    """
    Shape checks for a proof batch, run before any hashing.

    Raises:
        MalformedInputError: On count mismatch, empty or oversized batch,
            wrongly sized elements, or sibling lists of the wrong length
    """
    _check_depth(depth)

    if not (len(keys) == len(values) == len(proofs)):
        raise MalformedInputError(
            f"proof batch length mismatch: {len(keys)} keys, "
            f"{len(values)} values, {len(proofs)} proofs"
        )

    if not keys:
        raise MalformedInputError("proof batch is empty")

    if len(keys) > MAX_PROOF_BATCH_SIZE:
        raise MalformedInputError(
            f"proof batch too large: {len(keys)} > {MAX_PROOF_BATCH_SIZE}"
        )

    for index, (key, value, siblings) in enumerate(zip(keys, values, proofs)):
        if not _is_hash(key):
            raise MalformedInputError(f"key {index} must be {SMT_HASH_SIZE_BYTES} bytes")
        if not _is_hash(value):
            raise MalformedInputError(
                f"value {index} must be {SMT_HASH_SIZE_BYTES} bytes"
            )
        if isinstance(siblings, (bytes, str)) or len(siblings) != depth:
            raise MalformedInputError(
                f"proof {index} must hold {depth} sibling hashes"
            )
        if not all(_is_hash(s) for s in siblings):
            raise MalformedInputError(
                f"proof {index} has a sibling that is not {SMT_HASH_SIZE_BYTES} bytes"
            )


def verify_proofs(
    root: bytes,
    keys: Sequence[bytes],
    values: Sequence[bytes],
    proofs: Sequence[Sequence[bytes]],
    depth: int = DEFAULT_SMT_DEPTH,
) -> None:
    """
    Verify every proof in a batch against one root.

    The batch is all-or-nothing: the first failing entry aborts.

    Raises:
        MalformedInputError: If the batch shape is invalid
        InvalidProofError: If any proof fails (``index`` names it)
    """
    if not _is_hash(root):
        raise MalformedInputError(f"root must be {SMT_HASH_SIZE_BYTES} bytes")

    validate_batch(keys, values, proofs, depth)

    for index, (key, value, siblings) in enumerate(zip(keys, values, proofs)):
        if not verify_proof(root, key, value, siblings, depth):
            logger.debug("SMT proof %d failed against root %s", index, root.hex())
            raise InvalidProofError(f"proof {index} does not match root", index=index)


# ============================================================================
# TREE BUILDER (proof producer side)
# ============================================================================


class SparseMerkleTree:
    """
    In-memory sparse Merkle tree producing proofs ``verify_proof`` accepts.

    Example:
        tree = SparseMerkleTree()
        tree.insert(key, value)
        proof = tree.prove(key)
        assert verify_smt_proof(proof)
    """

    def __init__(self, depth: int = DEFAULT_SMT_DEPTH):
        _check_depth(depth)
        self.depth = depth
        # slot (top ``depth`` key bits) -> (key, value)
        self._leaves: Dict[int, Tuple[bytes, bytes]] = {}

    def __len__(self) -> int:
        return len(self._leaves)

    def _slot(self, key: bytes) -> int:
        if not _is_hash(key):
            raise ValueError(f"key must be {SMT_HASH_SIZE_BYTES} bytes")
        return int.from_bytes(key, "big") >> (SMT_KEY_BITS - self.depth)

    def insert(self, key: bytes, value: bytes) -> None:
        """
        Set ``key`` to ``value``; ``EMPTY_VALUE`` removes the key.

        Raises:
            ValueError: On bad sizes, or if another key owns the same slot
        """
        slot = self._slot(key)
        if not _is_hash(value):
            raise ValueError(f"value must be {SMT_HASH_SIZE_BYTES} bytes")

        existing = self._leaves.get(slot)
        if existing is not None and existing[0] != key:
            raise ValueError("slot already holds a different key")

        if value == EMPTY_VALUE:
            self._leaves.pop(slot, None)
        else:
            self._leaves[slot] = (key, value)

    def get(self, key: bytes) -> bytes:
        """Stored value for ``key``, or ``EMPTY_VALUE``."""
        existing = self._leaves.get(self._slot(key))
        if existing is None or existing[0] != key:
            return EMPTY_VALUE
        return existing[1]

    def _subtree_hash(self, level: int, slots: List[int]) -> bytes:
        if not slots:
            return EMPTY_NODE
        if level == self.depth:
            key, value = self._leaves[slots[0]]
            return hash_leaf(key, value)
        shift = self.depth - 1 - level
        left = [s for s in slots if not (s >> shift) & 1]
        right = [s for s in slots if (s >> shift) & 1]
        return hash_node(
            self._subtree_hash(level + 1, left),
            self._subtree_hash(level + 1, right),
        )

    @property
    def root(self) -> bytes:
        return self._subtree_hash(0, sorted(self._leaves))

    def prove(self, key: bytes) -> SMTProof:
        """
        Inclusion proof if ``key`` is present, non-membership proof otherwise.

        Raises:
            ValueError: If another key owns the slot (no exclusion proof exists)
        """
        slot = self._slot(key)
        existing = self._leaves.get(slot)
        if existing is not None and existing[0] != key:
            raise ValueError("slot already holds a different key")

        top_down: List[bytes] = []
        slots = sorted(self._leaves)
        for level in range(self.depth):
            shift = self.depth - 1 - level
            bit = (slot >> shift) & 1
            same = [s for s in slots if ((s >> shift) & 1) == bit]
            other = [s for s in slots if ((s >> shift) & 1) != bit]
            top_down.append(self._subtree_hash(level + 1, other))
            slots = same

        return SMTProof(
            root=self.root,
            key=key,
            value=self.get(key),
            siblings=tuple(reversed(top_down)),
        )
