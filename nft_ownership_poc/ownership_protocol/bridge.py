"""
Cross-ledger minting backed by NFT ownership proofs.

The ring signature covers the target token URI and the SMT proofs are
checked against the source contract's latest root. A verified call asks the
minter for exactly one token; a minter failure fails the whole call and is
never retried here.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from .collaborators import RootRegistry, TokenMinter
from .config import DEFAULT_SMT_DEPTH
from .curve import CurveParameters
from .events import BaseTokenContractsURIUpdated, EventEmitter, TokenMinted
from .exceptions import CollaboratorFailureError, UnauthorizedError
from .policies import FreshnessPolicy, ReplayGuard
from .verification import OwnershipVerifier, require_identifier

logger = logging.getLogger(__name__)


class TokenFactory:
    """
    Mint flow orchestrator with its owner-gated settings.

    Args:
        owner: Identity allowed to change settings
        root_registry: Latest roots per source contract
        minter: Token issuer on the target ledger
    """

    def __init__(
        self,
        owner: str,
        root_registry: RootRegistry,
        minter: TokenMinter,
        events: Optional[EventEmitter] = None,
        depth: int = DEFAULT_SMT_DEPTH,
        freshness_policy: Optional[FreshnessPolicy] = None,
        replay_guard: Optional[ReplayGuard] = None,
        allow_exclusion: Optional[bool] = None,
        params: Optional[CurveParameters] = None,
    ) -> None:
        self.owner = require_identifier(owner, "owner")
        self.minter = minter
        self.events = events if events is not None else EventEmitter()
        self.verifier = OwnershipVerifier(
            root_registry,
            depth=depth,
            freshness_policy=freshness_policy,
            replay_guard=replay_guard,
            allow_exclusion=allow_exclusion,
            params=params,
        )
        self.base_token_contracts_uri = ""
        self.token_contract_implementation: Optional[str] = None
        self._call_lock = threading.RLock()

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise UnauthorizedError(f"{caller!r} is not the factory owner")

    def set_base_token_contracts_uri(self, caller: str, base_uri: str) -> None:
        self._only_owner(caller)
        if not isinstance(base_uri, str):
            raise TypeError("base_uri must be a string")
        self.base_token_contracts_uri = base_uri
        logger.info("base token contracts URI set to %r", base_uri)
        self.events.emit(BaseTokenContractsURIUpdated(base_uri=base_uri))

    def set_token_contract_implementation(self, caller: str, implementation: str) -> None:
        self._only_owner(caller)
        self.token_contract_implementation = require_identifier(
            implementation, "implementation"
        )

    # ========================================================================
    # MINT FLOW
    # ========================================================================

    def mint_token(
        self,
        recipient: str,
        token_uri: str,
        seed_index: int,
        challenges: Sequence[int],
        responses: Sequence[int],
        public_keys_x: Sequence[int],
        public_keys_y: Sequence[int],
        contract: str,
        keys: Sequence[bytes],
        values: Sequence[bytes],
        proofs: Sequence[Sequence[bytes]],
    ) -> int:
        """
        Verify ownership on the source ledger and mint one token.

        Returns:
            Token id reported by the minter

        Raises:
            MalformedInputError, InvalidSignatureError, InvalidProofError,
            ReplayError: As for the feedback flow
            CollaboratorFailureError: Registry failure, or the minter raised
                or reported something other than a token id
        """
        require_identifier(recipient, "recipient")
        require_identifier(token_uri, "token_uri")

        with self._call_lock:
            claim = self.verifier.verify(
                token_uri,
                contract,
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
                token_id = self._mint(recipient, token_uri)
            except CollaboratorFailureError:
                self.verifier.release(claim)
                raise

            logger.info(
                "minted token %d for %s from %s", token_id, recipient, contract
            )
            self.events.emit(
                TokenMinted(recipient=recipient, token_id=token_id, token_uri=token_uri)
            )
        return token_id

    def _mint(self, recipient: str, token_uri: str) -> int:
        try:
            token_id = self.minter.mint_token(recipient, token_uri)
        except Exception as e:
            logger.warning("mint failed for %s: %s", recipient, e)
            raise CollaboratorFailureError(f"token mint failed: {e}") from e

        if not isinstance(token_id, int) or isinstance(token_id, bool) or token_id < 0:
            raise CollaboratorFailureError(
                f"minter reported {token_id!r} instead of a token id"
            )
        return token_id
