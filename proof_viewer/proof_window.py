"""Main window: every page of the proof stacked in one scroll area."""
import json
import logging
import os
import tempfile
from typing import List, Optional

import fitz  # pymupdf
import httpx
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QActionGroup, QImage, QPixmap
from PySide6.QtWidgets import (
    QFileDialog, QLabel, QMainWindow, QMessageBox, QScrollArea, QToolBar, QVBoxLayout, QWidget,
)

from proof_viewer.annotation_store import AnnotationStore, SnapshotMismatchError, active_file_id
from proof_viewer.api_client import ProofApiClient
from proof_viewer.kv_store import JsonFileKeyValueStore
from proof_viewer.models import TOOL_PIN, TOOL_RECT, TOOL_SELECT, ViewerSettings
from proof_viewer.page_surface import (
    AnnotationSurface, DialogConfirmation, DialogTextEntry, QtScheduler, ScrollAreaScroller,
)

logger = logging.getLogger(__name__)

_ZOOM = 1.2


def _render_page_pixmap(doc: fitz.Document, page_idx: int, dpr: float) -> QPixmap:
    """Rasterise a single page and return a QPixmap with the given DPR."""
    page = doc[page_idx]
    mat = fitz.Matrix(_ZOOM * dpr, _ZOOM * dpr)
    pix = page.get_pixmap(matrix=mat, alpha=False)
    img = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format.Format_RGB888)
    raw = QPixmap.fromImage(img)
    raw.setDevicePixelRatio(dpr)
    return raw


def _fetch_pdf(file_ref: str) -> str:
    """Return a local path for *file_ref*, downloading it when it is a URL."""
    if not file_ref.startswith(("http://", "https://")):
        return file_ref
    resp = httpx.get(file_ref, timeout=30.0, follow_redirects=True)
    resp.raise_for_status()
    fd, path = tempfile.mkstemp(suffix=".pdf")
    with os.fdopen(fd, "wb") as f:
        f.write(resp.content)
    return path


class ProofWindow(QMainWindow):
    def __init__(self, settings: ViewerSettings, api: Optional[ProofApiClient] = None):
        super().__init__()
        self._settings = settings
        self._api = api
        self._proof: Optional[dict] = None
        self._surfaces: List[AnnotationSurface] = []
        self._tool = TOOL_SELECT
        self._store: Optional[AnnotationStore] = None
        self.setWindowTitle("BAT Viewer")
        self.resize(1000, 900)

        self._scroll = QScrollArea()
        self._scroll.setWidgetResizable(True)
        self._pages_widget = QWidget()
        self._pages_layout = QVBoxLayout(self._pages_widget)
        self._pages_layout.setAlignment(Qt.AlignmentFlag.AlignHCenter)
        self._pages_layout.setSpacing(16)
        self._scroll.setWidget(self._pages_widget)
        self.setCentralWidget(self._scroll)

        self._scheduler = QtScheduler(self)
        self._scroller = ScrollAreaScroller(self._scroll)
        self._text_entry = DialogTextEntry(self)
        self._confirmation = DialogConfirmation(self)

        self._status = QLabel()
        self.statusBar().addPermanentWidget(self._status)
        self._build_toolbar()

    # ── Toolbar ───────────────────────────────────────────────────────────────

    def _build_toolbar(self):
        tb = QToolBar("Annotations")
        self.addToolBar(tb)
        group = QActionGroup(self)
        group.setExclusive(True)
        for tool_id, label in [(TOOL_SELECT, "Select"), (TOOL_PIN, "Pin"), (TOOL_RECT, "Rectangle")]:
            action = QAction(label, self)
            action.setCheckable(True)
            action.setChecked(tool_id == self._tool)
            action.triggered.connect(lambda _checked, t=tool_id: self.set_tool(t))
            group.addAction(action)
            tb.addAction(action)
        tb.addSeparator()

        self._approve_action = QAction("Approve", self)
        self._approve_action.triggered.connect(self._on_approve)
        tb.addAction(self._approve_action)

        if not self._settings.is_client:
            self._unlock_action = QAction("Unlock", self)
            self._unlock_action.triggered.connect(self._on_unlock)
            tb.addAction(self._unlock_action)
            tb.addSeparator()
            for label, slot in [
                ("Export JSON", self._on_export),
                ("Import JSON", self._on_import),
                ("Clear annotations", self._on_clear),
            ]:
                action = QAction(label, self)
                action.triggered.connect(slot)
                tb.addAction(action)

    # ── Loading ───────────────────────────────────────────────────────────────

    def load(self):
        """Open the proof (or local PDF) named by the viewer settings."""
        pdf_path = self._settings.pdf_path
        if self._settings.proof_id and self._api is not None:
            self._proof = self._api.get_proof(self._settings.proof_id)
            pdf_path = pdf_path or _fetch_pdf(self._proof["fileRef"])
        if not pdf_path:
            raise ValueError("Nothing to open: pass --pdf or --proof")

        file_id = active_file_id(self._proof, pdf_path)
        persister = None
        if self._proof is not None:
            persister = self._api.page_persister(self._proof["id"])
        self._store = AnnotationStore(
            file_id,
            persister=persister,
            kv_store=JsonFileKeyValueStore(self._settings.data_dir),
        )
        self._load_pages(pdf_path)
        self._hydrate_from_server()
        self._apply_lock_state()

    def _load_pages(self, pdf_path: str):
        doc = fitz.open(pdf_path)
        try:
            if doc.page_count == 0:
                raise ValueError("PDF has no pages")
            dpr = self.devicePixelRatio()
            for idx in range(doc.page_count):
                surface = AnnotationSurface(
                    idx + 1,
                    _render_page_pixmap(doc, idx, dpr),
                    self._store,
                    self._text_entry,
                    self._confirmation,
                    scheduler=self._scheduler,
                    scroller=self._scroller,
                )
                surface.machine.set_tool(self._tool)
                self._pages_layout.addWidget(surface)
                self._surfaces.append(surface)
            logger.info("Loaded %s (%d page(s))", pdf_path, doc.page_count)
        finally:
            doc.close()

    def _hydrate_from_server(self):
        if self._proof is None:
            return
        for surface in self._surfaces:
            try:
                records = self._api.get_page(self._proof["id"], surface.page)
            except httpx.HTTPError as e:
                logger.error("Loading annotations of page %d failed: %s", surface.page, e)
                continue
            self._store.hydrate(surface.page, records)

    # ── Tool / lock state ─────────────────────────────────────────────────────

    def set_tool(self, tool: str):
        self._tool = tool
        for surface in self._surfaces:
            surface.set_tool(tool)

    def _locked(self) -> bool:
        return bool(self._proof and self._proof.get("locked"))

    def _apply_lock_state(self):
        locked = self._locked()
        read_only = self._settings.is_client and locked
        for surface in self._surfaces:
            surface.set_read_only(read_only)
        self._approve_action.setEnabled(not locked)
        version = (self._proof or {}).get("currentVersion") or {}
        text = f"V{version.get('sequenceNumber', 1)}"
        text += " - Approved" if locked else " - Draft"
        self._status.setText(text)

    def _on_approve(self):
        if self._proof is None or self._api is None:
            QMessageBox.information(self, "Approve", "Open a proof from the server to approve it.")
            return
        try:
            state = self._api.approve(self._proof["id"])
        except httpx.HTTPError as e:
            logger.error("Approve failed: %s", e)
            QMessageBox.warning(self, "Approve", f"Approval failed: {e}")
            return
        self._proof["locked"] = state["locked"]
        self._proof["approvedAt"] = state.get("approvedAt")
        self._apply_lock_state()

    def _on_unlock(self):
        if self._proof is None or self._api is None:
            return
        try:
            self._api.unlock(self._proof["id"])
        except httpx.HTTPError as e:
            logger.error("Unlock failed: %s", e)
            QMessageBox.warning(self, "Unlock", f"Unlock failed: {e}")
            return
        self._proof["locked"] = False
        self._proof["approvedAt"] = None
        self._apply_lock_state()

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def _on_export(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export annotations", "annotations.json", "JSON (*.json)")
        if not path:
            return
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._store.export_snapshot(), f, indent=2)

    def _on_import(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import annotations", "", "JSON (*.json)")
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                self._store.import_snapshot(json.load(f))
        except SnapshotMismatchError as e:
            QMessageBox.warning(self, "Import annotations", str(e))
        except (OSError, ValueError) as e:
            logger.error("Import of %s failed: %s", path, e)
            QMessageBox.warning(self, "Import annotations", f"Could not read {path}: {e}")

    def _on_clear(self):
        answer = QMessageBox.question(self, "Clear annotations", "Remove every annotation?")
        if answer == QMessageBox.StandardButton.Yes:
            self._store.clear()

    def closeEvent(self, event):
        if self._store is not None:
            self._store.close()
        super().closeEvent(event)
