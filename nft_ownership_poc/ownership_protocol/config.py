"""
⚠️ DRAFT — requires crypto review before production use

Cryptographic configuration for NFT ownership proofs.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

Ring signatures run over secp256k1 via petlib; sparse Merkle tree
proofs use SHA-256 with separate leaf/node domains.
"""

# ============================================================================
# CURVE SELECTION
# ============================================================================

# IMPLEMENTATION: secp256k1 via petlib
# - Prime order group (cofactor = 1)
# - Public keys are supplied as affine (X, Y) coordinates

CURVE_NAME = "secp256k1"
CURVE_LIBRARY = "petlib"

# ============================================================================
# GROUP PARAMETERS
# ============================================================================

if CURVE_NAME == "secp256k1":
    GROUP_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
    FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    GROUP_ORDER_BITS = 256
    COFACTOR = 1
    CURVE_NID = 714  # OpenSSL NID for secp256k1
    COORDINATE_SIZE_BYTES = 32
    POINT_SIZE_BYTES = 33  # Compressed point format
    UNCOMPRESSED_POINT_SIZE_BYTES = 65

# ============================================================================
# HASH FUNCTIONS
# ============================================================================

# Ring signature challenges
HASH_FUNCTION = "SHA3-256"
HASH_OUTPUT_BITS = 256

# Sparse Merkle tree hashing is fixed to SHA-256 (matches proof producers)
SMT_HASH_FUNCTION = "SHA256"
SMT_HASH_SIZE_BYTES = 32

DOMAIN_SEPARATOR_PREFIX = b"NFT_OWNERSHIP_V1_"

DOMAIN_SEPARATORS = {
    "ring_challenge": DOMAIN_SEPARATOR_PREFIX + b"RING_CHALLENGE",
    "smt_leaf": DOMAIN_SEPARATOR_PREFIX + b"SMT_LEAF",
    "smt_node": DOMAIN_SEPARATOR_PREFIX + b"SMT_NODE",
    "replay_digest": DOMAIN_SEPARATOR_PREFIX + b"REPLAY",
}

# ============================================================================
# SPARSE MERKLE TREE
# ============================================================================

SMT_KEY_BITS = 256
DEFAULT_SMT_DEPTH = 256

# Empty subtree hash at every level; also the "absent" value sentinel
EMPTY_NODE = b"\x00" * SMT_HASH_SIZE_BYTES
EMPTY_VALUE = b"\x00" * SMT_HASH_SIZE_BYTES

# ============================================================================
# LIMITS
# ============================================================================

MAX_RING_SIZE = 64
MAX_PROOF_BATCH_SIZE = 100
MAX_MESSAGE_BYTES = 4096

# ============================================================================
# SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
SERIALIZATION_VERSION = 1

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert CURVE_NAME == "secp256k1", "Invalid curve"
    assert CURVE_LIBRARY == "petlib", "secp256k1 requires petlib library"
    assert COFACTOR == 1, "secp256k1 must have cofactor 1"
    assert CURVE_NID == 714, "secp256k1 NID must be 714"
    assert HASH_FUNCTION in ["SHA3-256", "SHA256"], "Invalid hash function"
    assert SMT_HASH_FUNCTION == "SHA256", "SMT hashing must be SHA-256"
    assert 1 <= DEFAULT_SMT_DEPTH <= SMT_KEY_BITS, "SMT depth out of range"
    assert len(EMPTY_NODE) == SMT_HASH_SIZE_BYTES, "Empty node size mismatch"
    assert len(set(DOMAIN_SEPARATORS.values())) == len(DOMAIN_SEPARATORS), (
        "Domain separators must be distinct"
    )
    assert MAX_RING_SIZE >= 1, "Ring size limit must allow one member"
    assert MAX_PROOF_BATCH_SIZE >= 1, "Batch size limit must allow one proof"

    return True


# Auto-validate on import
validate_config()
