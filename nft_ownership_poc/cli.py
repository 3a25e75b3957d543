"""
Command-Line Interface for NFT ownership proofs.

Verifies ring signatures and sparse Merkle tree proofs from CBOR files,
inspects root snapshots, and runs an in-memory end-to-end demo.

Exit codes: 0 valid, 1 invalid, 2 malformed input.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from nft_ownership_poc import __version__, print_disclaimer
from nft_ownership_poc.ownership_protocol.config import DEFAULT_SMT_DEPTH
from nft_ownership_poc.ownership_protocol.exceptions import (
    MalformedInputError,
    OwnershipProtocolError,
)
from nft_ownership_poc.ownership_protocol.types import SignatureBundle, SMTProof

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_MALFORMED = 2

console = Console()


def _report(valid: bool, what: str) -> None:
    if valid:
        click.echo(click.style(f"✓ {what} is valid", fg="green"))
        sys.exit(EXIT_VALID)
    click.echo(click.style(f"✗ {what} is invalid", fg="red"))
    sys.exit(EXIT_INVALID)


def _malformed(exc: Exception) -> None:
    click.echo(click.style(f"✗ malformed input: {exc}", fg="red"), err=True)
    sys.exit(EXIT_MALFORMED)


@click.group()
@click.version_option(version=__version__)
def main():
    """
    NFT ownership proofs - Proof of Concept

    Anonymous proof of NFT ownership with ring signatures and sparse
    Merkle tree proofs.
    """
    pass


@main.command()
def version():
    """Show version and disclaimer information."""
    click.echo(f"NFT ownership proofs v{__version__}")
    print_disclaimer()


@main.command("verify-signature")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False))
def verify_signature(bundle):
    """Verify a CBOR signature bundle (message, ring, signature)."""
    from nft_ownership_poc.ownership_protocol.ring import verify

    try:
        parsed = SignatureBundle.from_bytes(Path(bundle).read_bytes())
        valid = verify(parsed.message, parsed.ring, parsed.signature)
    except MalformedInputError as e:
        _malformed(e)
    _report(valid, f"ring signature over {len(parsed.ring)} keys")


@main.command("verify-proof")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--depth",
    type=click.IntRange(1, 256),
    default=DEFAULT_SMT_DEPTH,
    help=f"Expected tree depth (default: {DEFAULT_SMT_DEPTH})",
)
def verify_proof_cmd(bundle, depth):
    """Verify a CBOR-encoded sparse Merkle tree proof."""
    from nft_ownership_poc.ownership_protocol.smt import verify_smt_proof

    try:
        proof = SMTProof.from_bytes(Path(bundle).read_bytes())
    except MalformedInputError as e:
        _malformed(e)
    _report(verify_smt_proof(proof, depth), f"SMT proof for key {proof.key.hex()[:16]}…")


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
def roots(snapshot):
    """Load a YAML root snapshot and list it."""
    from nft_ownership_poc.ownership_protocol.collaborators import (
        InMemoryRootRegistry,
    )

    try:
        registry = InMemoryRootRegistry.from_yaml(snapshot)
    except MalformedInputError as e:
        _malformed(e)

    table = Table(title="Latest roots")
    table.add_column("Subject", no_wrap=True)
    table.add_column("Height", justify="right", no_wrap=True)
    table.add_column("Root", overflow="fold")
    for subject in registry.subjects():
        record = registry.get_last_data(subject)
        table.add_row(subject, str(record.height), record.root.hex())
    console.print(table)


@main.command()
@click.option("--ring-size", type=click.IntRange(1, 16), default=3, help="Ring size")
@click.option("--verbose", "-v", is_flag=True, help="Show proof details")
def demo(ring_size, verbose):
    """Run the feedback and mint flows end to end in memory."""
    from nft_ownership_poc.ownership_protocol.bridge import TokenFactory
    from nft_ownership_poc.ownership_protocol.collaborators import (
        InMemoryRootRegistry,
        InMemoryTokenMinter,
    )
    from nft_ownership_poc.ownership_protocol.feedback import FeedbackRegistry
    from nft_ownership_poc.ownership_protocol.ring import generate_keypair, sign_ring
    from nft_ownership_poc.ownership_protocol.smt import SparseMerkleTree
    from nft_ownership_poc.ownership_protocol.types import split_ring
    import hashlib

    click.echo("\n" + "=" * 70)
    click.echo(click.style("NFT ownership proofs - demo", fg="cyan", bold=True))
    click.echo("=" * 70)

    keypairs = [generate_keypair() for _ in range(ring_size)]
    ring = [pk for _, pk in keypairs]
    xs, ys = split_ring(ring)
    signer = ring_size // 2
    click.echo(f"Ring of {ring_size} keys created")

    tree = SparseMerkleTree()
    keys = [hashlib.sha256(f"token-{i}".encode()).digest() for i in (1, 2)]
    for key in keys:
        tree.insert(key, hashlib.sha256(b"owner:" + key).digest())
    proofs = [tree.prove(key) for key in keys]

    course = "0xC0urse"
    contract = "0xS0urceContract"
    registry = InMemoryRootRegistry()
    registry.update(course, tree.root, 1)
    registry.update(contract, tree.root, 1)
    click.echo(f"Root {tree.root.hex()[:16]}… published for course and contract")

    feedbacks = FeedbackRegistry(registry)
    pointer = "QmDemoFeedbackPointer"
    sig = sign_ring(pointer, ring, signer, keypairs[signer][0], seed_index=1 % ring_size)
    if verbose:
        click.echo(f"  seed index: {sig.seed_index}")
        for i, (c, r) in enumerate(zip(sig.challenges, sig.responses)):
            click.echo(f"  member {i}: c={hex(c)[:18]}… r={hex(r)[:18]}…")

    try:
        feedbacks.add_feedback(
            course,
            pointer,
            sig.seed_index,
            sig.challenges,
            sig.responses,
            xs,
            ys,
            [p.key for p in proofs],
            [p.value for p in proofs],
            [p.siblings for p in proofs],
        )

        factory = TokenFactory("0xOwner", registry, InMemoryTokenMinter())
        token_uri = "ipfs://QmBridgedToken"
        mint_sig = sign_ring(token_uri, ring, signer, keypairs[signer][0])
        token_id = factory.mint_token(
            "0xRecipient",
            token_uri,
            mint_sig.seed_index,
            mint_sig.challenges,
            mint_sig.responses,
            xs,
            ys,
            contract,
            [p.key for p in proofs],
            [p.value for p in proofs],
            [p.siblings for p in proofs],
        )
    except OwnershipProtocolError as e:
        click.echo(click.style(f"✗ {e.code}: {e}", fg="red"), err=True)
        sys.exit(EXIT_INVALID)

    table = Table(title=f"Feedback for {course}")
    table.add_column("#", justify="right")
    table.add_column("Pointer")
    for i, stored in enumerate(feedbacks.get_feedbacks(course, 0, 10)):
        table.add_row(str(i), stored)
    console.print(table)
    click.echo(click.style(f"✓ Minted token {token_id} for {token_uri}", fg="green"))


if __name__ == "__main__":
    main()
