"""Backfill of proofs created before revisions existed.

Such proofs have no ProofVersion and keep their annotations in the legacy
per-proof page files. Backfilling creates revision 1 and copies those pages
into it; it is a no-op once revision 1 exists.
"""
import logging

from proof_server import ledger, storage
from proof_server.errors import ProofNotFoundError

logger = logging.getLogger(__name__)


def backfill_proof(proof: dict) -> str:
    """Make sure *proof* has revision 1 and return its id."""
    version = ledger.create_initial_version(proof)
    return version["id"]


def backfill_proof_id(proof_id: str) -> str:
    proof = storage.load_proof(proof_id)
    if proof is None:
        raise ProofNotFoundError(proof_id)
    return backfill_proof(proof)


def backfill_all() -> int:
    """Backfill every stored proof. Errors propagate to the caller.

    Returns the number of proofs visited.
    """
    proof_ids = storage.list_proof_ids()
    logger.info("Backfill — checking %d proof(s)", len(proof_ids))
    for proof_id in proof_ids:
        backfill_proof_id(proof_id)
    logger.info("Backfill — done")
    return len(proof_ids)
