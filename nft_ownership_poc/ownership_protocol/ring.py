"""
⚠️ DRAFT — requires crypto review before production use

Schnorr-style ring signatures over secp256k1.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Ring signature (cyclic challenge chain):
    Ring R = (P_0, ..., P_{n-1}), signer s knows x with P_s = x*G.

    Per member k:
        L_k = r_k*G + c_k*P_k
        c_{k+1} = H(domain, R, m, L_k) mod q        (indices mod n)

    Signing:
        1. alpha <- Z_q, c_{s+1} = H(domain, R, m, alpha*G)
        2. For k = s+1, ..., s-1 (cyclically): r_k <- Z_q, derive c_{k+1}
        3. Close the ring: r_s = (alpha - c_s*x) mod q
        4. Signature = (seed index i, c_0..c_{n-1}, r_0..r_{n-1})

    Verification starts at the seed index and carries the challenge around
    the ring. Every carried challenge must equal the supplied one at that
    index, and after n steps the chain must land back on c_i.

Security Properties:
    - Anonymity: every member's equation looks the same to the verifier;
      the seed index is chosen independently of the signer
    - Unforgeability: closing the ring requires some member's secret key
    - Binding: the ring and the message enter every challenge

Security Requirements:
    1. Public keys MUST be checked to be on the curve before use
    2. Scalars MUST be in [0, GROUP_ORDER)
    3. Challenge hashing MUST be length-prefixed
"""

import logging
from typing import Optional, Sequence, Union

from .config import (
    COORDINATE_SIZE_BYTES,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    MAX_MESSAGE_BYTES,
    MAX_RING_SIZE,
)
from .curve import (
    CurveParameters,
    get_cached_curve_params,
    point_from_coordinates,
    point_to_coordinates,
    to_bn,
)
from .exceptions import CryptographicError, MalformedInputError
from .security import (
    RandomnessSource,
    constant_time_compare,
    encode_length_prefixed,
    new_hash,
    scalar_to_bytes,
)
from .types import PublicKey, RingSignature, split_ring

logger = logging.getLogger(__name__)

Message = Union[bytes, str]


# ============================================================================
# CHALLENGE COMPUTATION
# ============================================================================


def message_bytes(message: Message) -> bytes:
    if isinstance(message, str):
        message = message.encode("utf-8")
    if not isinstance(message, bytes):
        raise MalformedInputError(f"message must be bytes or str, got {type(message)}")
    if len(message) > MAX_MESSAGE_BYTES:
        raise MalformedInputError(
            f"message too large: {len(message)} > {MAX_MESSAGE_BYTES} bytes"
        )
    return message


def _encode_ring(xs: Sequence[int], ys: Sequence[int]) -> bytes:
    out = bytearray()
    for x, y in zip(xs, ys):
        out.extend(x.to_bytes(COORDINATE_SIZE_BYTES, "big"))
        out.extend(y.to_bytes(COORDINATE_SIZE_BYTES, "big"))
    return bytes(out)


def _compute_challenge(ring_bytes: bytes, message: bytes, point) -> int:
    """
    c = H(len||domain || len||ring || len||m || len||compressed(L)) mod q
    """
    h = new_hash()
    h.update(
        encode_length_prefixed(
            [
                DOMAIN_SEPARATORS["ring_challenge"],
                ring_bytes,
                message,
                point.export(),
            ]
        )
    )
    return int.from_bytes(h.digest(), "big") % GROUP_ORDER


def _is_scalar(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and (
        0 <= value < GROUP_ORDER
    )


def validate_signature_shape(
    seed_index: int,
    challenges: Sequence[int],
    responses: Sequence[int],
    public_keys_x: Sequence[int],
    public_keys_y: Sequence[int],
) -> int:
    ring_size = len(challenges)
    if not (
        ring_size == len(responses) == len(public_keys_x) == len(public_keys_y)
    ):
        raise MalformedInputError(
            f"ring signature length mismatch: {len(challenges)} challenges, "
            f"{len(responses)} responses, {len(public_keys_x)} x, "
            f"{len(public_keys_y)} y"
        )
    if ring_size == 0:
        raise MalformedInputError("ring is empty")
    if ring_size > MAX_RING_SIZE:
        raise MalformedInputError(f"ring too large: {ring_size} > {MAX_RING_SIZE}")
    if (
        not isinstance(seed_index, int)
        or isinstance(seed_index, bool)
        or not 0 <= seed_index < ring_size
    ):
        raise MalformedInputError(
            f"seed index {seed_index!r} outside ring of size {ring_size}"
        )
    return ring_size


# ============================================================================
# VERIFICATION
# ============================================================================


def verify_ring_signature(
    message: Message,
    seed_index: int,
    challenges: Sequence[int],
    responses: Sequence[int],
    public_keys_x: Sequence[int],
    public_keys_y: Sequence[int],
    params: Optional[CurveParameters] = None,
) -> bool:
    """
    Verify a ring signature over ``message`` for the declared ring.

    ⚠️ SECURITY CRITICAL

    Args:
        message: Signed message (str is UTF-8 encoded)
        seed_index: Where the verification walk starts
        challenges: One challenge per ring member
        responses: One response per ring member
        public_keys_x: Ring member X coordinates
        public_keys_y: Ring member Y coordinates
        params: Curve parameters (cached parameters if None)

    Returns:
        True if the challenge chain closes, False otherwise (including
        off-curve keys and out-of-range scalars)

    Raises:
        MalformedInputError: If parallel arrays disagree in length, the ring
            is empty or too large, or the seed index is out of range
    """
    message = message_bytes(message)
    ring_size = validate_signature_shape(
        seed_index, challenges, responses, public_keys_x, public_keys_y
    )

    if not all(_is_scalar(c) for c in challenges) or not all(
        _is_scalar(r) for r in responses
    ):
        logger.debug("ring signature rejected: scalar out of range")
        return False

    if params is None:
        params = get_cached_curve_params()

    try:
        points = [
            point_from_coordinates(x, y, params)
            for x, y in zip(public_keys_x, public_keys_y)
        ]
    except CryptographicError:
        logger.debug("ring signature rejected: public key not on curve")
        return False

    ring_bytes = _encode_ring(public_keys_x, public_keys_y)

    try:
        carried = challenges[seed_index]
        for step in range(ring_size):
            k = (seed_index + step) % ring_size
            if not constant_time_compare(
                scalar_to_bytes(carried), scalar_to_bytes(challenges[k])
            ):
                logger.debug("ring signature rejected: chain breaks at %d", k)
                return False
            L_k = to_bn(responses[k]) * params.G + to_bn(carried) * points[k]
            carried = _compute_challenge(ring_bytes, message, L_k)

        closed = constant_time_compare(
            scalar_to_bytes(carried), scalar_to_bytes(challenges[seed_index])
        )
    except Exception:
        # Any cryptographic error means the signature is invalid
        return False

    if not closed:
        logger.debug("ring signature rejected: chain does not close")
    return closed


def verify(
    message: Message,
    ring: Sequence[PublicKey],
    signature: RingSignature,
    params: Optional[CurveParameters] = None,
) -> bool:
    """Verify a ``RingSignature`` against a ring of ``PublicKey``."""
    xs, ys = split_ring(ring)
    return verify_ring_signature(
        message,
        signature.seed_index,
        signature.challenges,
        signature.responses,
        xs,
        ys,
        params,
    )


# ============================================================================
# KEYS AND SIGNING
# ============================================================================


def generate_keypair(
    params: Optional[CurveParameters] = None,
    randomness_source: Optional[RandomnessSource] = None,
):
    """
    Generate ``(secret_scalar, PublicKey)``.

    Key management is the caller's concern; this exists for signers and
    tests.
    """
    if params is None:
        params = get_cached_curve_params()
    if randomness_source is None:
        randomness_source = RandomnessSource()

    secret = randomness_source.get_random_nonzero_scalar()
    x, y = point_to_coordinates(to_bn(secret) * params.G)
    return secret, PublicKey(x, y)


def public_key_from_secret(
    secret_key: int, params: Optional[CurveParameters] = None
) -> PublicKey:
    if params is None:
        params = get_cached_curve_params()
    if not _is_scalar(secret_key) or secret_key == 0:
        raise ValueError("secret key must be in [1, GROUP_ORDER)")
    x, y = point_to_coordinates(to_bn(secret_key) * params.G)
    return PublicKey(x, y)


def sign_ring(
    message: Message,
    ring: Sequence[PublicKey],
    signer_index: int,
    secret_key: int,
    seed_index: Optional[int] = None,
    params: Optional[CurveParameters] = None,
    randomness_source: Optional[RandomnessSource] = None,
) -> RingSignature:
    """
    Produce a ring signature as member ``signer_index``.

    ⚠️ SECURITY CRITICAL

    Args:
        message: Message to sign (str is UTF-8 encoded)
        ring: Declared ring of public keys
        signer_index: Position of the signer's key in ``ring``
        secret_key: Signer's secret scalar
        seed_index: Where verification starts (random if None)
        params: Curve parameters (cached parameters if None)
        randomness_source: Nonce source (created if None)

    Returns:
        RingSignature

    Raises:
        ValueError: If the ring, indices or key are inconsistent
        CryptographicError: If signing fails
    """
    message = message_bytes(message)
    ring = tuple(ring)
    ring_size = len(ring)

    if ring_size == 0 or ring_size > MAX_RING_SIZE:
        raise ValueError(f"ring size must be in [1, {MAX_RING_SIZE}], got {ring_size}")
    if not 0 <= signer_index < ring_size:
        raise ValueError(f"signer index {signer_index} outside ring of size {ring_size}")

    if params is None:
        params = get_cached_curve_params()
    if randomness_source is None:
        randomness_source = RandomnessSource()

    if seed_index is None:
        seed_index = randomness_source.get_random_index(ring_size)
    elif not 0 <= seed_index < ring_size:
        raise ValueError(f"seed index {seed_index} outside ring of size {ring_size}")

    if public_key_from_secret(secret_key, params) != ring[signer_index]:
        raise ValueError("secret key does not match the ring member at signer_index")

    xs, ys = split_ring(ring)
    try:
        points = [point_from_coordinates(x, y, params) for x, y in zip(xs, ys)]
    except CryptographicError as e:
        raise ValueError(f"ring contains an invalid public key: {e}") from e

    ring_bytes = _encode_ring(xs, ys)
    challenges = [0] * ring_size
    responses = [0] * ring_size

    try:
        alpha = randomness_source.get_random_nonzero_scalar()
        challenges[(signer_index + 1) % ring_size] = _compute_challenge(
            ring_bytes, message, to_bn(alpha) * params.G
        )

        for step in range(1, ring_size):
            k = (signer_index + step) % ring_size
            responses[k] = randomness_source.get_random_nonzero_scalar()
            L_k = to_bn(responses[k]) * params.G + to_bn(challenges[k]) * points[k]
            challenges[(k + 1) % ring_size] = _compute_challenge(
                ring_bytes, message, L_k
            )

        responses[signer_index] = (
            alpha - challenges[signer_index] * secret_key
        ) % GROUP_ORDER
    except Exception as e:
        raise CryptographicError(
            f"ring signature generation failed: {type(e).__name__}"
        ) from e

    return RingSignature(
        seed_index=seed_index,
        challenges=tuple(challenges),
        responses=tuple(responses),
    )
