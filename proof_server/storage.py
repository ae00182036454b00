"""JSON-file record store.

Layout under ``DATA_DIR``::

    proofs/<proof_id>.json                    proof record
    versions/<proof_id>.json                  list of version records
    annotations/<version_id>/<page>.json      annotation page set of a revision
    legacy_annotations/<proof_id>/<page>.json pre-versioning page sets (read only)

Every write goes through a temporary file and ``os.replace`` so a single
record is replaced atomically. Nothing spans more than one file.
"""
import json
import os
import tempfile
from typing import Dict, List, Optional

from proof_server.settings import settings

DATA_DIR = settings.data_dir


def _path(*parts: str) -> str:
    return os.path.join(DATA_DIR, *parts)


def _read_json(path: str):
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data) -> None:
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _page_files(directory: str) -> Dict[int, str]:
    if not os.path.isdir(directory):
        return {}
    pages = {}
    for name in os.listdir(directory):
        stem, ext = os.path.splitext(name)
        if ext == ".json" and stem.isdigit():
            pages[int(stem)] = os.path.join(directory, name)
    return pages


# ── Proofs ────────────────────────────────────────────────────────────────────

def load_proof(proof_id: str) -> Optional[dict]:
    return _read_json(_path("proofs", f"{proof_id}.json"))


def save_proof(proof: dict) -> None:
    _write_json(_path("proofs", f"{proof['id']}.json"), proof)


def list_proof_ids() -> List[str]:
    directory = _path("proofs")
    if not os.path.isdir(directory):
        return []
    return sorted(
        os.path.splitext(name)[0]
        for name in os.listdir(directory)
        if name.endswith(".json")
    )


# ── Versions ──────────────────────────────────────────────────────────────────

def load_versions(proof_id: str) -> List[dict]:
    return _read_json(_path("versions", f"{proof_id}.json")) or []


def save_versions(proof_id: str, versions: List[dict]) -> None:
    _write_json(_path("versions", f"{proof_id}.json"), versions)


# ── Annotation pages ──────────────────────────────────────────────────────────

def load_page(version_id: str, page: int) -> Optional[list]:
    return _read_json(_path("annotations", version_id, f"{page}.json"))


def save_page(version_id: str, page: int, annotations: list) -> None:
    _write_json(_path("annotations", version_id, f"{page}.json"), annotations)


def list_pages(version_id: str) -> List[int]:
    return sorted(_page_files(_path("annotations", version_id)))


# ── Legacy (pre-versioning) annotation pages ─────────────────────────────────

def load_legacy_pages(proof_id: str) -> Dict[int, list]:
    """Return { page: annotations } stored before revisions existed."""
    pages = {}
    for page, path in sorted(_page_files(_path("legacy_annotations", proof_id)).items()):
        with open(path, "r", encoding="utf-8") as f:
            pages[page] = json.load(f)
    return pages


def save_legacy_page(proof_id: str, page: int, annotations: list) -> None:
    _write_json(_path("legacy_annotations", proof_id, f"{page}.json"), annotations)
