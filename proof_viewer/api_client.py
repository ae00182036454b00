"""HTTP client for the proof server."""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ProofApiClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self._client.request(method, path, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def create_proof(self, file_ref: str, meta: Optional[Dict[str, Any]] = None) -> dict:
        return self._request("POST", "/api/proofs", json={"fileRef": file_ref, "meta": meta or {}})

    def get_proof(self, proof_id: str) -> dict:
        return self._request("GET", f"/api/proofs/{proof_id}")

    def approve(self, proof_id: str) -> dict:
        return self._request("POST", f"/api/proofs/{proof_id}/approve")

    def unlock(self, proof_id: str) -> dict:
        return self._request("POST", f"/api/proofs/{proof_id}/unlock")

    def create_version(self, proof_id: str, file_ref: str, meta: Optional[Dict[str, Any]] = None) -> dict:
        return self._request("POST", f"/api/proofs/{proof_id}/versions", json={"fileRef": file_ref, "meta": meta or {}})

    def get_page(self, proof_id: str, page: int) -> List[dict]:
        return self._request("GET", f"/api/proofs/{proof_id}/annotations/{page}")["annotations"]

    def put_page(self, proof_id: str, page: int, annotations: List[dict]) -> None:
        logger.debug("PUT page %d of %s — %d annotations", page, proof_id, len(annotations))
        self._request("PUT", f"/api/proofs/{proof_id}/annotations/{page}", json={"annotations": annotations})

    def page_persister(self, proof_id: str):
        """Return a ``persister(page, records)`` callable bound to *proof_id*."""
        def _persist(page: int, annotations: List[dict]) -> None:
            self.put_page(proof_id, page, annotations)
        return _persist
