"""Public API for ownership_protocol.

Modules that need petlib or pyyaml (curve arithmetic, ring signatures, the
flows built on them and the collaborators) are imported lazily so the
pure-hash parts stay usable without them.
"""
from __future__ import annotations

from importlib import import_module

from .exceptions import (
    CollaboratorFailureError,
    InvalidProofError,
    InvalidSignatureError,
    MalformedInputError,
    OwnershipProtocolError,
    ReplayError,
    StaleRootError,
    UnauthorizedError,
)
from .feature_flags import allow_exclusion_proofs, set_allow_exclusion_proofs
from .smt import SparseMerkleTree, verify_proof, verify_proofs
from .types import FeedbackEntry, PublicKey, RingSignature, RootRecord, SMTProof

__all__ = [
    "CollaboratorFailureError",
    "InvalidProofError",
    "InvalidSignatureError",
    "MalformedInputError",
    "OwnershipProtocolError",
    "ReplayError",
    "StaleRootError",
    "UnauthorizedError",
    "allow_exclusion_proofs",
    "set_allow_exclusion_proofs",
    "SparseMerkleTree",
    "verify_proof",
    "verify_proofs",
    "FeedbackEntry",
    "PublicKey",
    "RingSignature",
    "RootRecord",
    "SMTProof",
    "verify_ring_signature",
    "sign_ring",
    "generate_keypair",
    "FeedbackRegistry",
    "TokenFactory",
    "InMemoryRootRegistry",
    "InMemoryTokenMinter",
]

_LAZY_EXPORTS = {
    "verify_ring_signature": "ring",
    "sign_ring": "ring",
    "generate_keypair": "ring",
    "FeedbackRegistry": "feedback",
    "TokenFactory": "bridge",
    "InMemoryRootRegistry": "collaborators",
    "InMemoryTokenMinter": "collaborators",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module = import_module(f"{__name__}.{_LAZY_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
