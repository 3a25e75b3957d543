"""
Mint flow: one verified call, one minter call.
"""

import pytest

from nft_ownership_poc.ownership_protocol.bridge import TokenFactory
from nft_ownership_poc.ownership_protocol.collaborators import InMemoryTokenMinter
from nft_ownership_poc.ownership_protocol.events import (
    BaseTokenContractsURIUpdated,
    TokenMinted,
)
from nft_ownership_poc.ownership_protocol.exceptions import (
    CollaboratorFailureError,
    InvalidProofError,
    InvalidSignatureError,
    MalformedInputError,
    ReplayError,
    UnauthorizedError,
)
from nft_ownership_poc.ownership_protocol.policies import ReplayGuard


CONTRACT = "0xSourceNFT"
OWNER = "0xOwner"
RECIPIENT = "0xRecipient"
TOKEN_URI = "ipfs://QmTargetMetadata"


class NoneMinter(InMemoryTokenMinter):
    def mint_token(self, recipient, token_uri):
        self.calls += 1
        return None


@pytest.fixture
def minter():
    return InMemoryTokenMinter(start_id=42)


@pytest.fixture
def factory(root_registry, minter):
    return TokenFactory(OWNER, root_registry, minter)


@pytest.fixture
def mint_args(signer, ring_xy, batch):
    """Arguments for mint_token after (recipient, token_uri)."""

    def _args(message=TOKEN_URI, contract=CONTRACT):
        sig = signer(message)
        keys, values, proofs = batch
        xs, ys = ring_xy
        return (
            sig.seed_index,
            list(sig.challenges),
            list(sig.responses),
            list(xs),
            list(ys),
            contract,
            keys,
            values,
            proofs,
        )

    return _args


# ============================================================================
# MINTING
# ============================================================================


def test_mint_returns_token_id_and_emits(factory, minter, mint_args):
    token_id = factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args())

    assert token_id == 42
    assert minter.calls == 1
    assert minter.owner_of(42) == RECIPIENT
    assert minter.token_uri(42) == TOKEN_URI
    assert factory.events.history == [TokenMinted(RECIPIENT, 42, TOKEN_URI)]


def test_signature_must_cover_token_uri(factory, minter, mint_args):
    with pytest.raises(InvalidSignatureError):
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args(message="ipfs://other"))
    assert minter.calls == 0
    assert factory.events.history == []


def test_unknown_contract_never_mints(factory, minter, mint_args):
    with pytest.raises(CollaboratorFailureError):
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args(contract="0xUnknown"))
    assert minter.calls == 0


def test_bad_proof_never_mints(factory, minter, mint_args):
    call = list(mint_args())
    call[8] = [list(p) for p in call[8]]
    call[8][0][5] = b"\x01" * 32
    with pytest.raises(InvalidProofError) as excinfo:
        factory.mint_token(RECIPIENT, TOKEN_URI, *call)
    assert excinfo.value.index == 0
    assert minter.calls == 0


@pytest.mark.parametrize("recipient, uri", [("", TOKEN_URI), (RECIPIENT, "")])
def test_missing_identifiers_rejected(factory, minter, mint_args, recipient, uri):
    with pytest.raises(MalformedInputError):
        factory.mint_token(recipient, uri, *mint_args())
    assert minter.calls == 0


def test_empty_contract_rejected(factory, minter, mint_args):
    with pytest.raises(MalformedInputError, match="subject"):
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args(contract=""))


def test_proofs_checked_against_contract_root(root_registry, minter, mint_args):
    root_registry.update(CONTRACT, b"\x07" * 32, 8)
    factory = TokenFactory(OWNER, root_registry, minter)
    with pytest.raises(InvalidProofError):
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args())
    assert minter.calls == 0


# ============================================================================
# MINTER FAILURES
# ============================================================================


def test_minter_exception_fails_call(factory, minter, mint_args):
    minter.fail_next = RuntimeError("ledger unavailable")
    with pytest.raises(CollaboratorFailureError, match="token mint failed") as excinfo:
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args())

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert minter.calls == 1
    assert len(minter) == 0
    assert factory.events.history == []


def test_minter_without_token_id_fails_call(root_registry, mint_args):
    minter = NoneMinter()
    factory = TokenFactory(OWNER, root_registry, minter)
    with pytest.raises(CollaboratorFailureError, match="instead of a token id"):
        factory.mint_token(RECIPIENT, TOKEN_URI, *mint_args())
    assert minter.calls == 1
    assert factory.events.history == []


def test_failed_mint_does_not_consume_signature(root_registry, minter, mint_args):
    guard = ReplayGuard()
    factory = TokenFactory(OWNER, root_registry, minter, replay_guard=guard)
    call = mint_args()

    minter.fail_next = RuntimeError("ledger unavailable")
    with pytest.raises(CollaboratorFailureError):
        factory.mint_token(RECIPIENT, TOKEN_URI, *call)
    assert len(guard) == 0

    assert factory.mint_token(RECIPIENT, TOKEN_URI, *call) == 42
    with pytest.raises(ReplayError):
        factory.mint_token(RECIPIENT, TOKEN_URI, *call)
    assert minter.calls == 2


# ============================================================================
# ADMINISTRATION
# ============================================================================


def test_owner_sets_base_uri(factory):
    factory.set_base_token_contracts_uri(OWNER, "ipfs://base/")
    assert factory.base_token_contracts_uri == "ipfs://base/"
    assert factory.events.history == [BaseTokenContractsURIUpdated("ipfs://base/")]


def test_owner_sets_implementation(factory):
    factory.set_token_contract_implementation(OWNER, "0xImpl")
    assert factory.token_contract_implementation == "0xImpl"


def test_non_owner_rejected(factory):
    with pytest.raises(UnauthorizedError) as excinfo:
        factory.set_base_token_contracts_uri("0xMallory", "ipfs://evil/")
    assert excinfo.value.code == "UNAUTHORIZED"
    with pytest.raises(UnauthorizedError):
        factory.set_token_contract_implementation("0xMallory", "0xEvil")
    assert factory.base_token_contracts_uri == ""
    assert factory.token_contract_implementation is None
    assert factory.events.history == []


def test_factory_requires_owner(root_registry, minter):
    with pytest.raises(MalformedInputError):
        TokenFactory("", root_registry, minter)


def test_shared_guard_mints_once(root_registry, racing_registry, minter, mint_args):
    guard = ReplayGuard()
    first = TokenFactory(OWNER, racing_registry, minter, replay_guard=guard)
    second = TokenFactory(OWNER, root_registry, minter, replay_guard=guard)
    call = mint_args()
    minted = []
    racing_registry.on_read = lambda: minted.append(
        second.mint_token(RECIPIENT, TOKEN_URI, *call)
    )

    with pytest.raises(ReplayError):
        first.mint_token(RECIPIENT, TOKEN_URI, *call)

    assert minted == [42]
    assert minter.calls == 1
    assert len(minter) == 1
    assert first.events.history == []
