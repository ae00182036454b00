"""Proof lifecycle: creation, metadata, approval."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from proof_server import ledger, migration, storage
from proof_server.errors import ProofNotFoundError, ProofValidationError
from proof_server.settings import settings

logger = logging.getLogger(__name__)


def build_client_url(proof_id: str) -> str:
    return f"{settings.public_base_url}/?mode=client&id={proof_id}"


def load_proof_or_raise(proof_id: str) -> dict:
    proof = storage.load_proof(proof_id)
    if proof is None:
        raise ProofNotFoundError(proof_id)
    return proof


def create_proof(file_ref: Optional[str], meta: Optional[Dict[str, Any]] = None) -> Tuple[dict, dict]:
    """Create a proof together with its revision 1."""
    if not file_ref:
        raise ProofValidationError("fileRef is required")
    proof = {
        "id": uuid.uuid4().hex[:10],
        "fileRef": file_ref,
        "meta": dict(meta or {}),
        "locked": False,
        "approvedAt": None,
    }
    storage.save_proof(proof)
    version = ledger.create_initial_version(proof)
    return proof, version


def ensure_versioned(proof_id: str) -> Tuple[dict, str]:
    """Load a proof, backfilling revision 1 if it predates revisions.

    Returns the proof and the id of its latest revision.
    """
    proof = load_proof_or_raise(proof_id)
    version_id = ledger.resolve_latest_version_id(proof_id)
    if version_id is None:
        logger.info("Proof %s has no revision yet — backfilling", proof_id)
        migration.backfill_proof(proof)
        version_id = ledger.resolve_latest_version_id(proof_id)
    return proof, version_id


def update_meta(proof_id: str, meta: Dict[str, Any]) -> dict:
    proof = load_proof_or_raise(proof_id)
    proof["meta"] = dict(meta)
    storage.save_proof(proof)
    return proof


def approve(proof_id: str) -> dict:
    proof = load_proof_or_raise(proof_id)
    proof["locked"] = True
    proof["approvedAt"] = datetime.now(timezone.utc).isoformat()
    storage.save_proof(proof)
    return proof


def unlock(proof_id: str) -> dict:
    proof = load_proof_or_raise(proof_id)
    proof["locked"] = False
    proof["approvedAt"] = None
    storage.save_proof(proof)
    return proof
