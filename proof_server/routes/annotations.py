from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Path, Query
from proof_server import annotation_repository, ledger, proofs
from proof_server.errors import ProofNotFoundError
from proof_server.models import AnnotationPage, AnnotationPageWrite
from proof_server.notifications import ANNOTATIONS_CHANGED, NotificationSink, get_sink
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def resolve_version_id(proof_id: str, version: Optional[int]) -> Optional[str]:
    """Latest revision id, or the id of revision *version* (None if unknown)."""
    try:
        _, latest_id = proofs.ensure_versioned(proof_id)
    except ProofNotFoundError as e:
        logger.warning("proof %s — %s", proof_id, e)
        raise HTTPException(status_code=404, detail=str(e))
    if version is None:
        return latest_id
    record = ledger.find_version(proof_id, version)
    return record["id"] if record else None


@router.get(
    "/proofs/{proof_id}/annotations/{page}",
    response_model=AnnotationPage,
    response_model_exclude_none=True,
)
def get_annotations(
    proof_id: str,
    page: int = Path(ge=1),
    version: Optional[int] = Query(default=None, ge=1),
):
    logger.info("GET /proofs/%s/annotations/%d — loading (version=%s)", proof_id, page, version)
    version_id = resolve_version_id(proof_id, version)
    if version_id is None:
        logger.info("GET /proofs/%s/annotations/%d — unknown revision %s", proof_id, page, version)
        return AnnotationPage(page=page)
    annotations = annotation_repository.get_page(version_id, page)
    logger.info("GET /proofs/%s/annotations/%d — returned %d annotations", proof_id, page, len(annotations))
    return AnnotationPage(page=page, version_id=version_id, annotations=annotations)


@router.put("/proofs/{proof_id}/annotations/{page}")
def put_annotations(
    proof_id: str,
    body: AnnotationPageWrite,
    background_tasks: BackgroundTasks,
    page: int = Path(ge=1),
    sink: NotificationSink = Depends(get_sink),
):
    logger.info("PUT /proofs/%s/annotations/%d — saving %d annotations", proof_id, page, len(body.annotations))
    version_id = resolve_version_id(proof_id, None)
    records = [a.to_record() for a in body.annotations]
    annotation_repository.put_page(version_id, page, records)
    background_tasks.add_task(sink.send, ANNOTATIONS_CHANGED, {
        "proofId": proof_id,
        "versionId": version_id,
        "page": page,
        "annotations": records,
    })
    logger.info("PUT /proofs/%s/annotations/%d — saved to revision %s", proof_id, page, version_id)
    return {"ok": True, "versionId": version_id}
