from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

ContentId = Union[int, str]
Quad = tuple[float, float, float, float, float, float, float, float]


@dataclass(frozen=True)
class TableCell:
    position: Quad
    row_index: int
    col_index: int
    row: int
    row_span: int
    col: int
    col_span: int
    cell_identity: str | None = None
    text: str = ""


@dataclass(frozen=True)
class CellIdentity:
    """Decoded compound cell identifier."""
    row_index: int
    col_index: int
    row: int
    row_span: int
    col: int
    col_span: int
    table_id: str = ""

    def fields(self) -> tuple[int, int, int, int, int, int]:
        return (self.row_index, self.col_index, self.row, self.row_span, self.col, self.col_span)


@dataclass(frozen=True)
class Region:
    content_id: ContentId
    page_id: int
    type: str
    position: Quad
    text: str = ""
    sub_type: str | None = None
    table: tuple[TableCell, ...] = ()
    image_ref: str | None = None
    outline_level: int | None = None
    caption_id: ContentId | None = None
    render_text: str | None = None
    active: bool = True

    @property
    def is_table(self) -> bool:
        return self.type == "table" or bool(self.table)


@dataclass(frozen=True)
class Page:
    page_id: int  # 1-based
    page_index: int  # 0-based position in the payload
    width: float | None
    height: float | None
    angle: float = 0.0
    resolution: float | None = None
    regions: tuple[Region, ...] = ()


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class ViewBox:
    width: float
    height: float


@dataclass(frozen=True)
class ViewContext:
    rendered_page_width: float  # page pixel width at zoom 1
    rendered_page_height: float
    zoom: float
    rotation: int  # 0|90|180|270
    current_page: int


@dataclass
class SelectionState:
    focused_id: ContentId | None = None
    focused_page: int | None = None


@dataclass(frozen=True)
class SelectionNotification:
    content_id: ContentId
    page: int
    origin: str  # overlay|list
    cell: CellIdentity | None = None

    def payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"content_id": self.content_id, "page": self.page}
        if self.cell is not None:
            out["cell"] = list(self.cell.fields())
        return out


@dataclass(frozen=True)
class LookupResult:
    region: Region
    page_index: int


@dataclass
class BuildStats:
    pages_total: int = 0
    pages_without_regions: int = 0
    regions_kept: int = 0
    regions_dropped: int = 0
    shapes_used: dict[str, int] = field(default_factory=dict)
