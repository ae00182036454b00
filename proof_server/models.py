from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Float sums such as 0.7 + 0.3 can land a hair above 1.0
_BOUND_TOLERANCE = 1e-9


class WireModel(BaseModel):
    """Base for records that travel as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Annotation(WireModel):
    id: str
    type: Literal["pin", "rect"]
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    w: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    h: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    text: str = ""
    created_at: int

    @model_validator(mode="after")
    def _check_shape(self):
        if self.type == "pin":
            if self.w is not None or self.h is not None:
                raise ValueError("pin annotations carry no w/h")
            return self
        if self.w is None or self.h is None:
            raise ValueError("rect annotations require w and h")
        if self.x + self.w > 1.0 + _BOUND_TOLERANCE:
            raise ValueError("rect exceeds the page horizontally (x + w > 1)")
        if self.y + self.h > 1.0 + _BOUND_TOLERANCE:
            raise ValueError("rect exceeds the page vertically (y + h > 1)")
        return self

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProofCreate(WireModel):
    file_ref: Optional[str] = None
    meta: Dict[str, Any] = {}


class ProofCreated(WireModel):
    id: str
    version_id: str
    client_url: str


class VersionRef(WireModel):
    id: str
    sequence_number: int


class Proof(WireModel):
    id: str
    file_ref: str
    meta: Dict[str, Any] = {}
    locked: bool = False
    approved_at: Optional[str] = None


class ProofState(Proof):
    current_version: Optional[VersionRef] = None


class ProofVersion(WireModel):
    id: str
    proof_id: str
    sequence_number: int = Field(ge=1)
    file_ref: str
    metadata: Dict[str, Any] = {}
    created_at: str


class VersionCreate(WireModel):
    file_ref: Optional[str] = None
    meta: Dict[str, Any] = {}


class ApprovalState(WireModel):
    locked: bool
    approved_at: Optional[str] = None


class AnnotationPage(WireModel):
    page: int
    version_id: Optional[str] = None
    annotations: List[Annotation] = []


class AnnotationPageWrite(WireModel):
    annotations: List[Annotation] = []
