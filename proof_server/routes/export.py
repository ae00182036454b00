from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse
from proof_server import annotation_repository
from proof_server.routes.annotations import resolve_version_id
from typing import Optional
import csv
import io
import openpyxl

router = APIRouter()

COLUMNS = ["page", "id", "type", "x", "y", "w", "h", "text", "createdAt"]


def _build_rows(pages: dict):
    rows = []
    for page in sorted(pages):
        for ann in pages[page]:
            row = {"page": page}
            for col in COLUMNS[1:]:
                row[col] = ann.get(col, "")
            rows.append(row)
    return rows


def _rows_for(proof_id: str, version: Optional[int]):
    version_id = resolve_version_id(proof_id, version)
    if version_id is None:
        raise HTTPException(status_code=404, detail=f"Unknown revision {version} for proof {proof_id}")
    return _build_rows(annotation_repository.get_all_pages(version_id))


@router.get("/proofs/{proof_id}/export/annotations.csv")
def export_annotations_csv(proof_id: str, version: Optional[int] = Query(default=None, ge=1)):
    rows = _rows_for(proof_id, version)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    output.seek(0)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={proof_id}_annotations.csv"},
    )


@router.get("/proofs/{proof_id}/export/annotations.xlsx")
def export_annotations_xlsx(proof_id: str, version: Optional[int] = Query(default=None, ge=1)):
    rows = _rows_for(proof_id, version)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Annotations"

    ws.append(COLUMNS)
    for row in rows:
        ws.append([row.get(c, "") for c in COLUMNS])

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={proof_id}_annotations.xlsx"},
    )
