"""Annotation page sets keyed by (version id, page number).

Writes replace the whole list for one page. There is no cross-page or
cross-version transaction and no conflict detection: the last write to a
page wins.
"""
import logging
from typing import Dict, List

from proof_server import storage

logger = logging.getLogger(__name__)


def get_page(version_id: str, page: int) -> List[dict]:
    annotations = storage.load_page(version_id, page)
    if annotations is None:
        return []
    return annotations


def put_page(version_id: str, page: int, annotations: List[dict]) -> None:
    storage.save_page(version_id, page, list(annotations))
    logger.debug("put_page %s/%d — %d annotations", version_id, page, len(annotations))


def get_all_pages(version_id: str) -> Dict[int, List[dict]]:
    """Return every stored page set of a revision, ordered by page number."""
    return {page: get_page(version_id, page) for page in storage.list_pages(version_id)}
