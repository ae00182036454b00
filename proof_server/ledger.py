"""Revision ledger: sequences immutable ProofVersion records per proof.

Version records are stored as one list per proof. Creating a version is a
short read-modify-write sequence without a surrounding transaction; a crash
between saving the version list and saving the proof leaves the proof's
current file pointer one revision behind the ledger.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from proof_server import annotation_repository, storage
from proof_server.errors import ProofNotFoundError, ProofValidationError

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def list_versions(proof_id: str) -> List[dict]:
    return sorted(storage.load_versions(proof_id), key=lambda v: v["sequenceNumber"])


def latest_version(proof_id: str) -> Optional[dict]:
    versions = storage.load_versions(proof_id)
    if not versions:
        return None
    return max(versions, key=lambda v: v["sequenceNumber"])


def resolve_latest_version_id(proof_id: str) -> Optional[str]:
    """Id of the highest-numbered revision, or None before the first one exists."""
    latest = latest_version(proof_id)
    return latest["id"] if latest else None


def find_version(proof_id: str, sequence_number: int) -> Optional[dict]:
    for version in storage.load_versions(proof_id):
        if version["sequenceNumber"] == sequence_number:
            return version
    return None


def create_initial_version(proof: dict) -> dict:
    """Create revision 1 of *proof* unless it already exists.

    Any pre-versioning annotation pages of the proof are copied into the new
    revision. The version record is written last, so an interrupted run is
    simply repeated on the next call.
    """
    proof_id = proof["id"]
    versions = storage.load_versions(proof_id)
    for version in versions:
        if version["sequenceNumber"] == 1:
            return version

    metadata = dict(proof.get("meta") or {})
    metadata.setdefault("version", 1)
    version = {
        "id": _new_id(),
        "proofId": proof_id,
        "sequenceNumber": 1,
        "fileRef": proof["fileRef"],
        "metadata": metadata,
        "createdAt": _now_iso(),
    }

    legacy_pages = storage.load_legacy_pages(proof_id)
    for page, annotations in legacy_pages.items():
        annotation_repository.put_page(version["id"], page, annotations)

    storage.save_versions(proof_id, versions + [version])
    logger.info(
        "Created revision 1 (%s) for proof %s, migrated %d legacy page(s)",
        version["id"], proof_id, len(legacy_pages),
    )
    return version


def create_new_version(
    proof_id: str,
    file_ref: Optional[str],
    metadata_patch: Optional[Dict[str, Any]] = None,
) -> dict:
    """Append revision ``max + 1`` and point the proof at *file_ref*.

    The previous revision's annotation pages are left untouched and are no
    longer written to. Approval is reset on the proof.
    """
    if not file_ref:
        raise ProofValidationError("fileRef is required to create a new version")
    proof = storage.load_proof(proof_id)
    if proof is None:
        raise ProofNotFoundError(proof_id)

    create_initial_version(proof)
    versions = storage.load_versions(proof_id)
    latest = max(versions, key=lambda v: v["sequenceNumber"])
    sequence_number = latest["sequenceNumber"] + 1

    patch = dict(metadata_patch or {})
    metadata = {**(proof.get("meta") or latest["metadata"]), **patch}
    if "version" not in patch:
        metadata["version"] = sequence_number

    version = {
        "id": _new_id(),
        "proofId": proof_id,
        "sequenceNumber": sequence_number,
        "fileRef": file_ref,
        "metadata": metadata,
        "createdAt": _now_iso(),
    }
    storage.save_versions(proof_id, versions + [version])

    proof["fileRef"] = file_ref
    proof["meta"] = dict(metadata)
    proof["locked"] = False
    proof["approvedAt"] = None
    storage.save_proof(proof)
    logger.info("Created revision %d (%s) for proof %s", sequence_number, version["id"], proof_id)
    return version
