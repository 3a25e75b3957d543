"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for NFT ownership proofs.

Verification failures carry a stable ``code`` so callers can tell the
kinds apart without parsing messages.
"""


class OwnershipProtocolError(Exception):
    """Base exception for ownership protocol errors."""

    code = "OWNERSHIP_PROTOCOL_ERROR"


class MalformedInputError(OwnershipProtocolError):
    """Parallel inputs disagree in length or have the wrong shape."""

    code = "MALFORMED_INPUT"


class InvalidSignatureError(OwnershipProtocolError):
    """Ring signature closure check failed."""

    code = "INVALID_SIGNATURE"


class InvalidProofError(OwnershipProtocolError):
    """A sparse Merkle tree proof in the batch failed."""

    code = "INVALID_PROOF"

    def __init__(self, message: str, index=None):
        super().__init__(message)
        self.index = index


class CollaboratorFailureError(OwnershipProtocolError):
    """The root registry or the token minter did not succeed."""

    code = "COLLABORATOR_FAILURE"


class StaleRootError(CollaboratorFailureError):
    """Root record rejected by the configured freshness policy."""

    code = "STALE_ROOT"


class ReplayError(OwnershipProtocolError):
    """Signature was already consumed by a guarded flow."""

    code = "REPLAY"


class UnauthorizedError(OwnershipProtocolError):
    """Administrative call from a non-owner."""

    code = "UNAUTHORIZED"


class ConfigurationError(OwnershipProtocolError):
    """Configuration error."""

    code = "CONFIGURATION"


class CryptographicError(OwnershipProtocolError):
    """Cryptographic operation error."""

    code = "CRYPTOGRAPHIC"
