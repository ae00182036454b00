from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from proof_server import ledger, proofs
from proof_server.errors import ProofNotFoundError, ProofValidationError
from proof_server.models import ApprovalState, ProofCreate, ProofCreated, ProofState, VersionRef
from proof_server.notifications import PROOF_APPROVED, VERSION_CREATED, NotificationSink, get_sink
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/proofs", response_model=ProofCreated)
def post_proof(
    body: ProofCreate,
    background_tasks: BackgroundTasks,
    sink: NotificationSink = Depends(get_sink),
):
    logger.info("POST /proofs — fileRef: %s", body.file_ref)
    try:
        proof, version = proofs.create_proof(body.file_ref, body.meta)
    except ProofValidationError as e:
        logger.warning("POST /proofs — rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    background_tasks.add_task(sink.send, VERSION_CREATED, {
        "proofId": proof["id"],
        "versionId": version["id"],
        "version": version,
    })
    logger.info("POST /proofs — created proof %s (revision %s)", proof["id"], version["id"])
    return ProofCreated(id=proof["id"], version_id=version["id"], client_url=proofs.build_client_url(proof["id"]))


@router.get("/proofs/{proof_id}", response_model=ProofState, response_model_exclude_none=True)
def get_proof(proof_id: str):
    logger.info("GET /proofs/%s — loading proof", proof_id)
    try:
        proof, _ = proofs.ensure_versioned(proof_id)
    except ProofNotFoundError as e:
        logger.warning("GET /proofs/%s — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    latest = ledger.latest_version(proof_id)
    state = ProofState(**proof)
    state.current_version = VersionRef(id=latest["id"], sequence_number=latest["sequenceNumber"])
    logger.info("GET /proofs/%s — revision %d, locked: %s", proof_id, latest["sequenceNumber"], state.locked)
    return state


@router.put("/proofs/{proof_id}/meta")
def put_meta(proof_id: str, meta: Dict[str, Any]):
    logger.info("PUT /proofs/%s/meta — %d key(s)", proof_id, len(meta))
    try:
        proofs.update_meta(proof_id, meta)
    except ProofNotFoundError as e:
        logger.warning("PUT /proofs/%s/meta — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.post("/proofs/{proof_id}/approve", response_model=ApprovalState)
def post_approve(
    proof_id: str,
    background_tasks: BackgroundTasks,
    sink: NotificationSink = Depends(get_sink),
):
    logger.info("POST /proofs/%s/approve — approving", proof_id)
    try:
        proofs.ensure_versioned(proof_id)
        proof = proofs.approve(proof_id)
    except ProofNotFoundError as e:
        logger.warning("POST /proofs/%s/approve — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    background_tasks.add_task(sink.send, PROOF_APPROVED, {
        "proofId": proof_id,
        "versionId": ledger.resolve_latest_version_id(proof_id),
        "approvedAt": proof["approvedAt"],
    })
    logger.info("POST /proofs/%s/approve — approved at %s", proof_id, proof["approvedAt"])
    return ApprovalState(locked=True, approved_at=proof["approvedAt"])


@router.post("/proofs/{proof_id}/unlock", response_model=ApprovalState)
def post_unlock(proof_id: str):
    logger.info("POST /proofs/%s/unlock — unlocking", proof_id)
    try:
        proofs.unlock(proof_id)
    except ProofNotFoundError as e:
        logger.warning("POST /proofs/%s/unlock — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    return ApprovalState(locked=False)
