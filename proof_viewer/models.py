"""Data models for the proof viewer."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

TOOL_SELECT = "select"
TOOL_PIN = "pin"
TOOL_RECT = "rect"
TOOLS = (TOOL_SELECT, TOOL_PIN, TOOL_RECT)

PIN = "pin"
RECT = "rect"


@dataclass
class Annotation:
    id: str
    type: str          # "pin" | "rect"
    x: float           # fractional coordinate 0.0–1.0
    y: float           # fractional coordinate 0.0–1.0
    w: Optional[float] = None   # rect only
    h: Optional[float] = None   # rect only
    text: str = ""
    created_at: int = 0         # epoch milliseconds

    def to_record(self) -> Dict[str, Any]:
        """Wire shape: camelCase, w/h omitted for pins."""
        item = {"id": self.id, "type": self.type, "x": self.x, "y": self.y}
        if self.w is not None:
            item["w"] = self.w
        if self.h is not None:
            item["h"] = self.h
        item["text"] = self.text
        item["createdAt"] = self.created_at
        return item

    @classmethod
    def from_record(cls, item: Dict[str, Any]) -> "Annotation":
        return cls(
            id=str(item["id"]),
            type=item["type"],
            x=float(item["x"]),
            y=float(item["y"]),
            w=float(item["w"]) if item.get("w") is not None else None,
            h=float(item["h"]) if item.get("h") is not None else None,
            text=item.get("text") or "",
            created_at=int(item.get("createdAt") or 0),
        )


@dataclass
class SurfaceRect:
    """Current on-screen bounding rectangle of an annotation surface."""
    left: float
    top: float
    width: float
    height: float


@dataclass
class PointerEvent:
    pointer_id: int
    client_x: float
    client_y: float
    # Annotation under the pointer, None when the background was hit
    target: Optional[Annotation] = None


# ── Mutation intents (state machine output) ───────────────────────────────────

@dataclass
class CreateAnnotation:
    page: int
    annotation: Annotation


@dataclass
class UpdateAnnotation:
    page: int
    annotation_id: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RemoveAnnotation:
    page: int
    annotation_id: str


@dataclass
class ViewerSettings:
    api_url: str = "http://127.0.0.1:4000"
    proof_id: Optional[str] = None
    pdf_path: Optional[str] = None
    mode: str = "admin"         # "admin" | "client"
    data_dir: str = "./viewer_data"
    debug: bool = False

    @property
    def is_client(self) -> bool:
        return self.mode == "client"
