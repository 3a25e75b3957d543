import hashlib

import pytest

from nft_ownership_poc.ownership_protocol.collaborators import InMemoryRootRegistry
from nft_ownership_poc.ownership_protocol.curve import get_cached_curve_params
from nft_ownership_poc.ownership_protocol.feature_flags import (
    set_allow_exclusion_proofs,
)
from nft_ownership_poc.ownership_protocol.ring import generate_keypair, sign_ring
from nft_ownership_poc.ownership_protocol.smt import SparseMerkleTree
from nft_ownership_poc.ownership_protocol.types import split_ring


COURSE = "0xCourseA"
CONTRACT = "0xSourceNFT"


def _h(label: str) -> bytes:
    return hashlib.sha256(label.encode("utf-8")).digest()


@pytest.fixture
def params():
    return get_cached_curve_params()


@pytest.fixture
def keypairs():
    return [generate_keypair() for _ in range(3)]


@pytest.fixture
def ring(keypairs):
    return [pk for _, pk in keypairs]


@pytest.fixture
def ring_xy(ring):
    return split_ring(ring)


@pytest.fixture
def owned_tree():
    tree = SparseMerkleTree()
    for label in ("token-1", "token-2", "token-3"):
        tree.insert(_h(label), _h("owner-of-" + label))
    return tree


@pytest.fixture
def batch(owned_tree):
    proofs = [owned_tree.prove(_h(label)) for label in ("token-1", "token-2")]
    return (
        [p.key for p in proofs],
        [p.value for p in proofs],
        [list(p.siblings) for p in proofs],
    )


@pytest.fixture
def root_registry(owned_tree):
    registry = InMemoryRootRegistry()
    registry.update(COURSE, owned_tree.root, 5)
    registry.update(CONTRACT, owned_tree.root, 7)
    return registry


@pytest.fixture
def signer(keypairs, ring):
    """Sign as ring member 1."""

    def _sign(message, seed_index=None):
        return sign_ring(message, ring, 1, keypairs[1][0], seed_index=seed_index)

    return _sign


@pytest.fixture(autouse=True)
def _reset_exclusion_flag(monkeypatch):
    monkeypatch.delenv("OWNERSHIP_PROTOCOL_ALLOW_EXCLUSION", raising=False)
    set_allow_exclusion_proofs(None)
    yield
    set_allow_exclusion_proofs(None)


class RacingRegistry:
    """Root feed that runs ``on_read`` once, just before serving a root."""

    def __init__(self, inner):
        self.inner = inner
        self.on_read = None

    def get_last_data(self, subject):
        hook, self.on_read = self.on_read, None
        if hook is not None:
            hook()
        return self.inner.get_last_data(subject)


@pytest.fixture
def racing_registry(root_registry):
    return RacingRegistry(root_registry)
