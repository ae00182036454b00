"""Client-side annotation cache for the revision being reviewed.

The in-memory lists are the source of truth while the viewer runs. Every
mutation updates them synchronously, writes a local snapshot, then hands a
whole-page replace to the persister on a worker thread without waiting for
it. Saves are neither queued nor coalesced, so two quick edits of one page
may reach the server out of order. A failed save is logged and dropped.
"""
import dataclasses
import functools
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from proof_viewer.kv_store import KeyValueStore
from proof_viewer.models import Annotation, CreateAnnotation, RemoveAnnotation, UpdateAnnotation

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = {"x", "y", "w", "h", "text"}

Persister = Callable[[int, List[dict]], Any]


class SnapshotMismatchError(ValueError):
    pass


def snapshot_key(file_id: str) -> str:
    return f"bat-annotations::{file_id}"


def active_file_id(proof: Optional[dict], pdf_path: Optional[str] = None) -> Optional[str]:
    """Identity of the annotation set being reviewed.

    For a server proof this is the id of its current revision, so a new
    revision starts from an empty local cache instead of the previous one.
    """
    if proof is None:
        return pdf_path
    version = proof.get("currentVersion") or {}
    return version.get("id") or proof["id"]


class AnnotationStore:
    def __init__(
        self,
        file_id: str,
        persister: Optional[Persister] = None,
        kv_store: Optional[KeyValueStore] = None,
        executor: Optional[Executor] = None,
    ):
        self.file_id = file_id
        self._persister = persister
        self._kv = kv_store
        self._own_executor = executor is None and persister is not None
        self._executor = executor
        if self._own_executor:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="annotation-save")
        self._pages: Dict[int, List[Annotation]] = {}
        self._listeners: List[Callable[[int], None]] = []
        self._restore()

    # ── Reads ─────────────────────────────────────────────────────────────────

    @property
    def pages(self) -> Dict[int, List[Annotation]]:
        return {p: list(anns) for p, anns in self._pages.items()}

    def page(self, page: int) -> List[Annotation]:
        return list(self._pages.get(page, []))

    def find(self, page: int, annotation_id: str) -> Optional[Annotation]:
        for ann in self._pages.get(page, []):
            if ann.id == annotation_id:
                return ann
        return None

    def subscribe(self, listener: Callable[[int], None]) -> None:
        """Call *listener(page)* after every local change of *page*."""
        self._listeners.append(listener)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def add(self, page: int, annotation: Annotation) -> None:
        self._pages[page] = self._pages.get(page, []) + [annotation]
        self._changed(page)

    def update(self, page: int, annotation_id: str, changes: Dict[str, Any]) -> None:
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Cannot change {', '.join(sorted(illegal))} of an annotation")
        self._pages[page] = [
            dataclasses.replace(a, **changes) if a.id == annotation_id else a
            for a in self._pages.get(page, [])
        ]
        self._changed(page)

    def remove(self, page: int, annotation_id: str) -> None:
        self._pages[page] = [a for a in self._pages.get(page, []) if a.id != annotation_id]
        self._changed(page)

    def clear(self) -> None:
        touched = [p for p, anns in self._pages.items() if anns]
        self._pages = {}
        self._save_snapshot()
        for page in touched:
            self._notify(page)
            self._persist(page)

    def apply(self, intent) -> None:
        """Apply a mutation intent produced by the interaction state machine."""
        if isinstance(intent, CreateAnnotation):
            self.add(intent.page, intent.annotation)
        elif isinstance(intent, UpdateAnnotation):
            self.update(intent.page, intent.annotation_id, intent.changes)
        elif isinstance(intent, RemoveAnnotation):
            self.remove(intent.page, intent.annotation_id)
        else:
            raise TypeError(f"Unknown intent: {intent!r}")

    def hydrate(self, page: int, records: List[dict]) -> bool:
        """Fill an empty local page with server data; nothing is sent back.

        Returns True when the page was filled.
        """
        if self._pages.get(page) or not records:
            return False
        self._pages[page] = [Annotation.from_record(r) for r in records]
        self._save_snapshot()
        self._notify(page)
        return True

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def export_snapshot(self) -> dict:
        return {
            "fileId": self.file_id,
            "pages": {
                str(p): [a.to_record() for a in anns]
                for p, anns in sorted(self._pages.items())
            },
        }

    def import_snapshot(self, snapshot: dict) -> None:
        if not isinstance(snapshot, dict) or snapshot.get("fileId") != self.file_id:
            raise SnapshotMismatchError(
                f"Snapshot belongs to another file (expected {self.file_id!r})"
            )
        pages = {
            int(p): [Annotation.from_record(r) for r in records]
            for p, records in (snapshot.get("pages") or {}).items()
        }
        touched = set(pages) | {p for p, anns in self._pages.items() if anns}
        self._pages = pages
        self._save_snapshot()
        for page in sorted(touched):
            self._notify(page)
            self._persist(page)

    def close(self) -> None:
        if self._own_executor:
            self._executor.shutdown(wait=True)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _changed(self, page: int) -> None:
        self._save_snapshot()
        self._notify(page)
        self._persist(page)

    def _notify(self, page: int) -> None:
        for listener in self._listeners:
            listener(page)

    def _save_snapshot(self) -> None:
        if self._kv is not None:
            self._kv.set(snapshot_key(self.file_id), self.export_snapshot())

    def _restore(self) -> None:
        if self._kv is None:
            return
        try:
            data = self._kv.get(snapshot_key(self.file_id))
            if data is None:
                return
            if data.get("fileId") != self.file_id:
                raise ValueError("fileId mismatch")
            self._pages = {
                int(p): [Annotation.from_record(r) for r in records]
                for p, records in data.get("pages", {}).items()
            }
        except (AttributeError, KeyError, OSError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable local snapshot for %s: %s", self.file_id, e)
            self._pages = {}

    def _persist(self, page: int) -> None:
        if self._persister is None:
            return
        records = [a.to_record() for a in self._pages.get(page, [])]
        future = self._executor.submit(self._persister, page, records)
        future.add_done_callback(functools.partial(self._on_persisted, page))

    def _on_persisted(self, page: int, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Saving page %d of %s failed: %s", page, self.file_id, exc)
