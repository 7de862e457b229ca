"""
Schemas - Validated payloads returned by the in-page scan scripts.

Every script run through ``evaluate`` hands back plain JSON. These models
give that JSON a fixed shape before any scoring happens in Python.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    """Base for script payloads; unknown keys from newer scripts are ignored."""
    model_config = ConfigDict(extra="ignore")


def best_selector(tag: str, id: str = "", classes: Optional[List[str]] = None) -> str:
    """Best available selector for a scanned element: id, then first class, then tag."""
    if id:
        return f"#{id}"
    if classes:
        return f".{classes[0]}"
    return tag


# =============================================================================
# FEATURE GROUPS
# =============================================================================

class BoundingBox(_Payload):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class TextFeatures(_Payload):
    """Text content of an element."""
    content: str = ""
    visible_text: str = ""
    aria_label: Optional[str] = None
    title: Optional[str] = None
    placeholder: Optional[str] = None
    value: Optional[str] = None
    alt: Optional[str] = None


class VisualFeatures(_Payload):
    """Rendered geometry and computed style."""
    is_visible: bool = False
    bounding_box: Optional[BoundingBox] = None
    z_index: int = 0
    opacity: float = 1.0
    background_color: str = ""
    color: str = ""
    font_size: str = ""
    font_weight: str = ""
    display: str = ""
    position: str = ""
    cursor: str = ""
    in_viewport: bool = False
    visual_weight: float = 0.0


class StructuralFeatures(_Payload):
    """Tag, attributes and place in the tree."""
    tag_name: str = ""
    attributes: Dict[str, str] = Field(default_factory=dict)
    class_list: List[str] = Field(default_factory=list)
    id: str = ""
    role: Optional[str] = None
    is_interactive: bool = False
    child_count: int = 0
    sibling_count: int = 0
    sibling_index: int = -1
    path: List[str] = Field(default_factory=list)
    depth: int = 0


class SemanticFeatures(_Payload):
    """ARIA role and document semantics."""
    role: str = "generic"
    semantic_type: str = "generic"
    is_landmark: bool = False
    heading_level: int = 0
    list_item: bool = False
    list_container: bool = False
    table_cell: bool = False
    table_row: bool = False
    is_required: bool = False


class Landmark(_Payload):
    role: str
    id: str = ""


class ContextFeatures(_Payload):
    """Surroundings of an element."""
    parent_tag: str = ""
    parent_text: str = ""
    sibling_texts: List[str] = Field(default_factory=list)
    nearby_heading: str = ""
    label_text: str = ""
    form_id: str = ""
    table_headers: List[str] = Field(default_factory=list)
    nearest_landmark: Optional[Landmark] = None
    preceding_text: str = ""
    following_text: str = ""


# =============================================================================
# HEALING SCANS
# =============================================================================

class ElementSummary(_Payload):
    """Coarse description of one document element (nearby scan)."""
    tag: str
    id: str = ""
    classes: List[str] = Field(default_factory=list)
    text: str = ""

    def best_selector(self) -> str:
        return best_selector(self.tag, self.id, self.classes)


class VisualSignature(_Payload):
    """Geometry and style captured from an element that resolved."""
    width: float
    height: float
    top: float
    left: float
    background_color: str = ""
    color: str = ""
    font_size: str = ""


class VisualCandidate(VisualSignature):
    """One element from the visual scan."""
    tag: str
    id: str = ""
    classes: List[str] = Field(default_factory=list)

    def best_selector(self) -> str:
        return best_selector(self.tag, self.id, self.classes)


class ParentInfo(_Payload):
    tag: str
    class_name: str = ""


class StructureSignature(_Payload):
    """Tree position captured from an element that resolved."""
    tag: str
    parent: Optional[ParentInfo] = None
    sibling_index: int = -1
    child_count: int = 0
    attributes: Dict[str, str] = Field(default_factory=dict)


class StructureCandidate(StructureSignature):
    """One same-tag element from the structure scan."""
    id: str = ""
    classes: List[str] = Field(default_factory=list)

    def best_selector(self) -> str:
        if self.id:
            return f"#{self.id}"
        if self.classes:
            return f"{self.tag}.{self.classes[0]}"
        return self.tag


# =============================================================================
# INTERACTIVE SCAN
# =============================================================================

class ElementStyle(_Payload):
    color: str = ""
    background_color: str = ""
    border_radius: str = ""


class InteractiveElement(_Payload):
    """One interactive element considered by the visual-description matcher."""
    tag: str
    text: str = ""
    selector: str
    position: BoundingBox = Field(default_factory=BoundingBox)
    style: ElementStyle = Field(default_factory=ElementStyle)
    near_text: str = ""
    visible: bool = True


class Viewport(_Payload):
    width: float = 1920
    height: float = 1080


class InteractiveScan(_Payload):
    viewport: Viewport = Field(default_factory=Viewport)
    elements: List[InteractiveElement] = Field(default_factory=list)
