"""
⚠️ DRAFT — requires crypto review before production use

Common types for NFT ownership proofs.

This module provides:
1. PublicKey - affine ring member key
2. RingSignature - (seed index, challenges, responses)
3. SMTProof - sparse Merkle tree proof
4. RootRecord - registry snapshot for a subject
5. FeedbackEntry - committed feedback pointer

All of them are immutable and CBOR-serializable with a version field.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

try:
    import cbor2
except ImportError:
    raise ImportError(
        "cbor2 is required for proof serialization. "
        "Install with: pip install cbor2"
    )

from .config import SERIALIZATION_VERSION, SMT_HASH_SIZE_BYTES
from .exceptions import MalformedInputError


# ============================================================================
# CBOR HELPERS
# ============================================================================


def _dumps(kind: str, body: Dict[str, Any]) -> bytes:
    data = {"v": SERIALIZATION_VERSION, "k": kind}
    data.update(body)
    return cbor2.dumps(data)


def _loads(kind: str, data: bytes) -> Dict[str, Any]:
    if not isinstance(data, (bytes, bytearray)):
        raise MalformedInputError(f"{kind} blob must be bytes")
    try:
        obj = cbor2.loads(bytes(data))
    except Exception as e:
        raise MalformedInputError(f"Failed to decode {kind}: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedInputError(f"Invalid {kind} format: expected a map")

    version = obj.get("v")
    if version != SERIALIZATION_VERSION:
        raise MalformedInputError(
            f"Unsupported {kind} version: {version} "
            f"(expected {SERIALIZATION_VERSION})"
        )
    if obj.get("k") != kind:
        raise MalformedInputError(f"Expected {kind}, got {obj.get('k')!r}")
    return obj


def _require(obj: Dict[str, Any], key: str, kind: str) -> Any:
    if key not in obj:
        raise MalformedInputError(f"Invalid {kind} format: missing {key!r}")
    return obj[key]


def _int_tuple(values: Any, name: str) -> Tuple[int, ...]:
    if not isinstance(values, (list, tuple)):
        raise MalformedInputError(f"{name} must be a sequence")
    for v in values:
        if not isinstance(v, int) or isinstance(v, bool):
            raise MalformedInputError(f"{name} must contain integers")
    return tuple(values)


# ============================================================================
# PUBLIC KEY
# ============================================================================


@dataclass(frozen=True)
class PublicKey:
    """
    Ring member public key as affine coordinates on secp256k1.

    Curve membership is checked by the verifier, not here.
    """

    x: int
    y: int

    def to_dict(self) -> dict:
        return {"x": hex(self.x), "y": hex(self.y)}


def split_ring(ring: Sequence[PublicKey]) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """Split a ring into parallel X and Y coordinate tuples."""
    return tuple(pk.x for pk in ring), tuple(pk.y for pk in ring)


def join_ring(xs: Sequence[int], ys: Sequence[int]) -> Tuple[PublicKey, ...]:
    if len(xs) != len(ys):
        raise MalformedInputError(
            f"public key coordinate count mismatch: {len(xs)} x, {len(ys)} y"
        )
    return tuple(PublicKey(x, y) for x, y in zip(xs, ys))


# ============================================================================
# RING SIGNATURE
# ============================================================================


@dataclass(frozen=True)
class RingSignature:
    """
    Schnorr-style ring signature.

    Attributes:
        seed_index: Index where the verification walk starts. It says
            nothing about which member signed.
        challenges: One challenge scalar per ring member
        responses: One response scalar per ring member
    """

    seed_index: int
    challenges: Tuple[int, ...]
    responses: Tuple[int, ...]

    @property
    def ring_size(self) -> int:
        return len(self.challenges)

    def to_bytes(self) -> bytes:
        return _dumps(
            "ring_signature",
            {
                "i": self.seed_index,
                "c": list(self.challenges),
                "r": list(self.responses),
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "RingSignature":
        obj = _loads("ring_signature", data)
        seed_index = _require(obj, "i", "ring_signature")
        if not isinstance(seed_index, int) or isinstance(seed_index, bool):
            raise MalformedInputError("seed index must be an integer")
        return cls(
            seed_index=seed_index,
            challenges=_int_tuple(_require(obj, "c", "ring_signature"), "challenges"),
            responses=_int_tuple(_require(obj, "r", "ring_signature"), "responses"),
        )


# ============================================================================
# SPARSE MERKLE TREE PROOF
# ============================================================================


@dataclass(frozen=True)
class SMTProof:
    """
    Sparse Merkle tree proof for one (key, value) pair.

    ``siblings[0]`` is the sibling at the deepest level.
    """

    root: bytes
    key: bytes
    value: bytes
    siblings: Tuple[bytes, ...] = field(default_factory=tuple)

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_bytes(self) -> bytes:
        return _dumps(
            "smt_proof",
            {
                "root": self.root,
                "key": self.key,
                "value": self.value,
                "siblings": list(self.siblings),
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SMTProof":
        obj = _loads("smt_proof", data)
        fields = {}
        for name in ("root", "key", "value"):
            value = _require(obj, name, "smt_proof")
            if not isinstance(value, bytes):
                raise MalformedInputError(f"{name} must be bytes")
            fields[name] = value
        siblings = _require(obj, "siblings", "smt_proof")
        if not isinstance(siblings, list) or not all(
            isinstance(s, bytes) for s in siblings
        ):
            raise MalformedInputError("siblings must be a list of bytes")
        return cls(siblings=tuple(siblings), **fields)

    def to_dict(self) -> dict:
        return {
            "root": self.root.hex(),
            "key": self.key.hex(),
            "value": self.value.hex(),
            "siblings": [s.hex() for s in self.siblings],
        }


# ============================================================================
# REGISTRY AND FEEDBACK RECORDS
# ============================================================================


@dataclass(frozen=True)
class RootRecord:
    """Latest root for a subject, as reported by the registry collaborator."""

    root: bytes
    height: int

    def __post_init__(self):
        if not isinstance(self.root, bytes) or len(self.root) != SMT_HASH_SIZE_BYTES:
            raise MalformedInputError(
                f"root must be {SMT_HASH_SIZE_BYTES} bytes"
            )
        if not isinstance(self.height, int) or self.height < 0:
            raise MalformedInputError("height must be a non-negative integer")


@dataclass(frozen=True)
class FeedbackEntry:
    course: str
    ipfs_hash: str


# ============================================================================
# SIGNATURE BUNDLE (CLI / file exchange)
# ============================================================================


@dataclass(frozen=True)
class SignatureBundle:
    """Message, declared ring and signature, shipped together."""

    message: bytes
    ring: Tuple[PublicKey, ...]
    signature: RingSignature

    def to_bytes(self) -> bytes:
        return _dumps(
            "signature_bundle",
            {
                "message": self.message,
                "ring": [[pk.x, pk.y] for pk in self.ring],
                "signature": self.signature.to_bytes(),
            },
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SignatureBundle":
        obj = _loads("signature_bundle", data)
        message = _require(obj, "message", "signature_bundle")
        if isinstance(message, str):
            message = message.encode("utf-8")
        if not isinstance(message, bytes):
            raise MalformedInputError("message must be bytes or text")
        ring = _require(obj, "ring", "signature_bundle")
        if not isinstance(ring, list) or not all(
            isinstance(member, list) and len(member) == 2 for member in ring
        ):
            raise MalformedInputError("ring must be a list of [x, y] pairs")
        xs = _int_tuple([member[0] for member in ring], "ring x")
        ys = _int_tuple([member[1] for member in ring], "ring y")
        signature = _require(obj, "signature", "signature_bundle")
        return cls(
            message=message,
            ring=join_ring(xs, ys),
            signature=RingSignature.from_bytes(signature),
        )
