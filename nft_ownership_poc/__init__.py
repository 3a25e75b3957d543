"""
NFT ownership proofs: anonymous feedback and cross-ledger minting.

⚠️ PROOF OF CONCEPT - requires crypto review before production use.
"""

__version__ = "0.1.0"


def print_disclaimer():
    print("⚠️  NFT ownership proofs - PROOF OF CONCEPT")
    print("    Ring signatures hide the signer within the ring only;")
    print("    the proven SMT key/value pairs are public.")
