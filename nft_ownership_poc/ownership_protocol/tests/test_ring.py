"""
Ring signature tests: closure, binding, anonymity of the seed index and
input validation.
"""

import pytest

from nft_ownership_poc.ownership_protocol import ring as ring_mod
from nft_ownership_poc.ownership_protocol.config import (
    FIELD_PRIME,
    GROUP_ORDER,
    MAX_RING_SIZE,
)
from nft_ownership_poc.ownership_protocol.exceptions import MalformedInputError
from nft_ownership_poc.ownership_protocol.curve import is_on_curve
from nft_ownership_poc.ownership_protocol.types import (
    PublicKey,
    RingSignature,
    SignatureBundle,
    split_ring,
)


MESSAGE = "QmFeedbackPointer"


def _verify(message, sig, xs, ys):
    return ring_mod.verify_ring_signature(
        message, sig.seed_index, sig.challenges, sig.responses, xs, ys
    )


# ============================================================================
# BASIC FUNCTIONALITY
# ============================================================================


def test_generated_keys_are_on_curve(ring):
    for pk in ring:
        assert is_on_curve(pk.x, pk.y)


def test_valid_signature_verifies(signer, ring_xy):
    sig = signer(MESSAGE)
    xs, ys = ring_xy
    assert sig.ring_size == 3
    assert _verify(MESSAGE, sig, xs, ys) is True


def test_verify_with_ring_objects(signer, ring):
    sig = signer(MESSAGE)
    assert ring_mod.verify(MESSAGE, ring, sig) is True


def test_bytes_and_str_messages_agree(signer, ring_xy):
    sig = signer(MESSAGE)
    assert _verify(MESSAGE.encode("utf-8"), sig, *ring_xy) is True


def test_every_signer_and_seed_index_verifies(keypairs, ring, ring_xy):
    for signer_index, (secret, _) in enumerate(keypairs):
        for seed_index in range(len(ring)):
            sig = ring_mod.sign_ring(
                MESSAGE, ring, signer_index, secret, seed_index=seed_index
            )
            assert sig.seed_index == seed_index
            assert _verify(MESSAGE, sig, *ring_xy) is True


def test_random_seed_index_in_range(signer):
    for _ in range(10):
        assert 0 <= signer(MESSAGE).seed_index < 3


def test_ring_of_one_is_ordinary_signature():
    secret, pk = ring_mod.generate_keypair()
    sig = ring_mod.sign_ring(MESSAGE, [pk], 0, secret)
    assert sig.seed_index == 0
    assert _verify(MESSAGE, sig, [pk.x], [pk.y]) is True
    assert _verify("other", sig, [pk.x], [pk.y]) is False


def test_larger_ring():
    keypairs = [ring_mod.generate_keypair() for _ in range(8)]
    members = [pk for _, pk in keypairs]
    sig = ring_mod.sign_ring(MESSAGE, members, 5, keypairs[5][0], seed_index=2)
    assert _verify(MESSAGE, sig, *split_ring(members)) is True


# ============================================================================
# SOUNDNESS: ANY SINGLE MUTATION FAILS
# ============================================================================


@pytest.mark.parametrize("index", [0, 1, 2])
def test_mutated_challenge_fails(signer, ring_xy, index):
    sig = signer(MESSAGE, seed_index=1)
    challenges = list(sig.challenges)
    challenges[index] = (challenges[index] + 1) % GROUP_ORDER
    mutated = RingSignature(sig.seed_index, tuple(challenges), sig.responses)
    assert _verify(MESSAGE, mutated, *ring_xy) is False


@pytest.mark.parametrize("index", [0, 1, 2])
def test_mutated_response_fails(signer, ring_xy, index):
    sig = signer(MESSAGE, seed_index=1)
    responses = list(sig.responses)
    responses[index] = (responses[index] + 1) % GROUP_ORDER
    mutated = RingSignature(sig.seed_index, sig.challenges, tuple(responses))
    assert _verify(MESSAGE, mutated, *ring_xy) is False


@pytest.mark.parametrize("index", [0, 1, 2])
def test_mutated_public_key_coordinate_fails(signer, ring_xy, index):
    sig = signer(MESSAGE)
    xs, ys = list(ring_xy[0]), list(ring_xy[1])
    xs[index] = (xs[index] + 1) % FIELD_PRIME
    assert _verify(MESSAGE, sig, xs, ys) is False

    xs, ys = list(ring_xy[0]), list(ring_xy[1])
    ys[index] = (ys[index] + 1) % FIELD_PRIME
    assert _verify(MESSAGE, sig, xs, ys) is False


def test_negated_public_key_still_on_curve_fails(signer, ring_xy):
    sig = signer(MESSAGE)
    xs, ys = list(ring_xy[0]), list(ring_xy[1])
    ys[0] = FIELD_PRIME - ys[0]
    assert is_on_curve(xs[0], ys[0])
    assert _verify(MESSAGE, sig, xs, ys) is False


def test_seed_index_moves_start_not_chain(signer, ring_xy):
    sig = signer(MESSAGE, seed_index=0)
    # The chain closes from any start; rotating the challenges breaks it
    moved = RingSignature(2, sig.challenges, sig.responses)
    assert _verify(MESSAGE, moved, *ring_xy) is True
    rotated = RingSignature(
        0, sig.challenges[1:] + sig.challenges[:1], sig.responses
    )
    assert _verify(MESSAGE, rotated, *ring_xy) is False


# ============================================================================
# BINDING
# ============================================================================


def test_other_message_fails(signer, ring_xy):
    sig = signer(MESSAGE)
    assert _verify(MESSAGE + "x", sig, *ring_xy) is False
    assert _verify("", sig, *ring_xy) is False


@pytest.mark.parametrize("index", [0, 1, 2])
def test_swapped_ring_member_fails(signer, ring, index):
    sig = signer(MESSAGE)
    _, stranger = ring_mod.generate_keypair()
    swapped = list(ring)
    swapped[index] = stranger
    assert ring_mod.verify(MESSAGE, swapped, sig) is False


def test_reordered_ring_fails(signer, ring):
    sig = signer(MESSAGE)
    assert ring_mod.verify(MESSAGE, list(reversed(ring)), sig) is False


def test_signature_with_outsider_key_cannot_be_made(ring):
    outsider_secret, _ = ring_mod.generate_keypair()
    with pytest.raises(ValueError, match="does not match"):
        ring_mod.sign_ring(MESSAGE, ring, 0, outsider_secret)


# ============================================================================
# INPUT VALIDATION
# ============================================================================


def test_length_mismatch_is_malformed(signer, ring_xy):
    sig = signer(MESSAGE)
    xs, ys = ring_xy
    with pytest.raises(MalformedInputError, match="length mismatch"):
        ring_mod.verify_ring_signature(
            MESSAGE, sig.seed_index, sig.challenges[:2], sig.responses, xs, ys
        )
    with pytest.raises(MalformedInputError, match="length mismatch"):
        ring_mod.verify_ring_signature(
            MESSAGE, sig.seed_index, sig.challenges, sig.responses, xs, ys[:2]
        )


def test_seed_index_out_of_range_is_malformed(signer, ring_xy):
    sig = signer(MESSAGE)
    for seed in (-1, 3, True):
        with pytest.raises(MalformedInputError, match="seed index"):
            ring_mod.verify_ring_signature(
                MESSAGE, seed, sig.challenges, sig.responses, *ring_xy
            )


def test_empty_and_oversized_rings_are_malformed():
    with pytest.raises(MalformedInputError, match="empty"):
        ring_mod.verify_ring_signature(MESSAGE, 0, [], [], [], [])
    n = MAX_RING_SIZE + 1
    with pytest.raises(MalformedInputError, match="too large"):
        ring_mod.verify_ring_signature(MESSAGE, 0, [1] * n, [1] * n, [1] * n, [1] * n)


def test_out_of_range_scalars_fail(signer, ring_xy):
    sig = signer(MESSAGE)
    responses = list(sig.responses)
    responses[0] += GROUP_ORDER
    bad = RingSignature(sig.seed_index, sig.challenges, tuple(responses))
    assert _verify(MESSAGE, bad, *ring_xy) is False

    challenges = list(sig.challenges)
    challenges[1] = -1
    bad = RingSignature(sig.seed_index, tuple(challenges), sig.responses)
    assert _verify(MESSAGE, bad, *ring_xy) is False


def test_coordinates_outside_field_fail(signer, ring_xy):
    sig = signer(MESSAGE)
    xs, ys = list(ring_xy[0]), list(ring_xy[1])
    xs[2] = xs[2] + FIELD_PRIME
    assert _verify(MESSAGE, sig, xs, ys) is False


def test_non_text_message_is_malformed(signer, ring_xy):
    sig = signer(MESSAGE)
    with pytest.raises(MalformedInputError, match="message"):
        _verify(12345, sig, *ring_xy)


def test_sign_rejects_off_curve_ring(keypairs, ring):
    broken = list(ring)
    broken[0] = PublicKey(ring[0].x, (ring[0].y + 1) % FIELD_PRIME)
    with pytest.raises(ValueError, match="invalid public key"):
        ring_mod.sign_ring(MESSAGE, broken, 1, keypairs[1][0])


def test_sign_rejects_bad_indices(keypairs, ring):
    with pytest.raises(ValueError, match="signer index"):
        ring_mod.sign_ring(MESSAGE, ring, 3, keypairs[0][0])
    with pytest.raises(ValueError, match="seed index"):
        ring_mod.sign_ring(MESSAGE, ring, 0, keypairs[0][0], seed_index=5)


# ============================================================================
# SERIALIZATION
# ============================================================================


def test_signature_bundle_round_trip(signer, ring):
    sig = signer(MESSAGE)
    bundle = SignatureBundle(MESSAGE.encode("utf-8"), tuple(ring), sig)
    restored = SignatureBundle.from_bytes(bundle.to_bytes())
    assert restored == bundle
    assert ring_mod.verify(restored.message, restored.ring, restored.signature)


def test_signature_decode_rejects_garbage():
    with pytest.raises(MalformedInputError, match="expected a map"):
        RingSignature.from_bytes(b"\x01")
    with pytest.raises(MalformedInputError, match="must be bytes"):
        RingSignature.from_bytes("not bytes")
    with pytest.raises(MalformedInputError, match="Expected signature_bundle"):
        SignatureBundle.from_bytes(
            RingSignature(0, (1,), (1,)).to_bytes()
        )
