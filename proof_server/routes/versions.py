from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from proof_server import ledger, proofs
from proof_server.errors import ProofNotFoundError, ProofValidationError
from proof_server.models import ProofVersion, VersionCreate
from proof_server.notifications import VERSION_CREATED, NotificationSink, get_sink
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/proofs/{proof_id}/versions", response_model=List[ProofVersion])
def get_versions(proof_id: str):
    logger.info("GET /proofs/%s/versions — listing revisions", proof_id)
    try:
        proofs.ensure_versioned(proof_id)
    except ProofNotFoundError as e:
        logger.warning("GET /proofs/%s/versions — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    versions = ledger.list_versions(proof_id)
    logger.info("GET /proofs/%s/versions — returned %d revision(s)", proof_id, len(versions))
    return versions


@router.post("/proofs/{proof_id}/versions", response_model=ProofVersion)
def post_version(
    proof_id: str,
    body: VersionCreate,
    background_tasks: BackgroundTasks,
    sink: NotificationSink = Depends(get_sink),
):
    logger.info("POST /proofs/%s/versions — fileRef: %s", proof_id, body.file_ref)
    try:
        version = ledger.create_new_version(proof_id, body.file_ref, body.meta)
    except ProofValidationError as e:
        logger.warning("POST /proofs/%s/versions — rejected: %s", proof_id, e)
        raise HTTPException(status_code=400, detail=str(e))
    except ProofNotFoundError as e:
        logger.warning("POST /proofs/%s/versions — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    background_tasks.add_task(sink.send, VERSION_CREATED, {
        "proofId": proof_id,
        "versionId": version["id"],
        "version": version,
    })
    logger.info("POST /proofs/%s/versions — revision %d created", proof_id, version["sequenceNumber"])
    return version
