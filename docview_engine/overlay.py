"""Overlay side of the viewer.

Turns a page's regions into view-space polygons for the current
ViewContext, consumes selection notifications (navigating the viewer when
the focused region sits on another page) and maps clicks back to regions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from PIL import Image, ImageDraw

from . import cell_codec
from .config import EngineConfig
from .content_list import type_label
from .geometry import (
    click_to_source_point,
    dpi_scale,
    hit_test,
    hit_test_cell,
    project_quad,
    resolve_view_box_size,
    rotated_size,
    toggle_button_box,
)
from .logging import get_logger
from .region_index import RegionIndex
from .types import CellIdentity, ContentId, Quad, SelectionNotification, ViewBox, ViewContext
from .utils import canonical_id
from .viewer import ViewerState

if TYPE_CHECKING:
    from .selection import SelectionSynchronizer

log = get_logger(__name__)


@dataclass(frozen=True)
class CellShape:
    key: str
    points: Quad


@dataclass(frozen=True)
class RegionShape:
    content_id: ContentId
    type: str
    label: str
    color: str
    points: Quad
    active: bool = True
    cells: tuple[CellShape, ...] = ()
    toggle_button: tuple[float, float, float] | None = None


@dataclass(frozen=True)
class PageOverlay:
    page: int
    dpi_scale: float
    zoom: float
    rotation: int
    view_box: ViewBox  # source space, unrotated
    view_size: tuple[float, float]  # view space, rotated
    regions: tuple[RegionShape, ...] = ()


def _color_for(region_type: str, sub_type: str | None, overlay_cfg: dict[str, Any]) -> str:
    colors = overlay_cfg.get("type_colors", {}) or {}
    return str(colors.get(sub_type or "") or colors.get(region_type) or overlay_cfg.get("default_color", "#6B7280"))


def build_page_overlay(
    index: RegionIndex,
    page_id: int,
    ctx: ViewContext,
    cfg: EngineConfig | None = None,
    *,
    hidden_tables: set[str] | None = None,
) -> PageOverlay:
    cfg = cfg or EngineConfig()
    page = index.page(page_id)
    resolution = index.resolution_for(
        page_id,
        rendered_base_width=ctx.rendered_page_width or None,
        viewer_dpi=cfg.viewer_dpi,
        default_dpi=cfg.default_result_dpi,
    )
    scale = dpi_scale(cfg.viewer_dpi, resolution)
    view_box = resolve_view_box_size(
        page.width if page is not None else None,
        page.height if page is not None else None,
        ctx.rendered_page_width * ctx.zoom,
        ctx.rendered_page_height * ctx.zoom,
        ctx.zoom,
        scale,
    )
    rw, rh = rotated_size(view_box.width, view_box.height, ctx.rotation)
    k = ctx.zoom * scale
    hidden = hidden_tables or set()

    def project(quad: Quad) -> Quad:
        return project_quad(quad, ctx.zoom, scale, ctx.rotation, view_box.width, view_box.height)

    shapes: list[RegionShape] = []
    for region in page.regions if page is not None else ():
        points = project(region.position)
        cells: tuple[CellShape, ...] = ()
        button = None
        if region.table:
            button = toggle_button_box(points, 1.0)
            if canonical_id(region.content_id) not in hidden:
                cells = tuple(
                    CellShape(key=cell_codec.overlay_key(region.content_id, c), points=project(c.position))
                    for c in region.table
                )
        shapes.append(
            RegionShape(
                content_id=region.content_id,
                type=region.type,
                label=type_label(region.type, region.sub_type),
                color=_color_for(region.type, region.sub_type, cfg.overlay),
                points=points,
                active=region.active,
                cells=cells,
                toggle_button=button,
            )
        )

    return PageOverlay(
        page=page_id,
        dpi_scale=scale,
        zoom=ctx.zoom,
        rotation=ctx.rotation,
        view_box=view_box,
        view_size=(rw * k, rh * k),
        regions=tuple(shapes),
    )


@dataclass
class OverlayModel:
    """Overlay-side consumer of selection notifications."""
    index: RegionIndex
    viewer: ViewerState
    cfg: EngineConfig = field(default_factory=EngineConfig)
    focused_id: ContentId | None = None
    focused_cell: CellIdentity | None = None
    hidden_tables: set[str] = field(default_factory=set)
    navigations: int = 0

    def on_selection(self, notification: SelectionNotification) -> None:
        if self.viewer.current_page != notification.page:
            if self.viewer.go_to(notification.page):
                self.navigations += 1
                log.debug("overlay_navigated", page=self.viewer.current_page)
        self.focused_id = notification.content_id
        self.focused_cell = notification.cell

    def is_focused(self, content_id: ContentId) -> bool:
        return self.focused_id is not None and canonical_id(self.focused_id) == canonical_id(content_id)

    def toggle_table(self, content_id: ContentId) -> bool:
        """Show/hide a table's cells; returns True when the cells are now hidden."""
        key = canonical_id(content_id)
        if key in self.hidden_tables:
            self.hidden_tables.discard(key)
            return False
        self.hidden_tables.add(key)
        return True

    def current_overlay(self) -> PageOverlay:
        ctx = self.viewer.context()
        return build_page_overlay(self.index, ctx.current_page, ctx, self.cfg, hidden_tables=self.hidden_tables)

    def click(self, x: float, y: float, synchronizer: "SelectionSynchronizer") -> SelectionNotification | None:
        """Handle a click at view-space (x, y) on the current page."""
        ctx = self.viewer.context()
        overlay = self.current_overlay()
        sx, sy = click_to_source_point(
            (x, y), ctx.zoom, overlay.dpi_scale, ctx.rotation, overlay.view_box.width, overlay.view_box.height
        )
        region = hit_test((sx, sy), self.index.regions_for_page(ctx.current_page))
        if region is None:
            return None

        token = None
        if region.table and canonical_id(region.content_id) not in self.hidden_tables:
            cell = hit_test_cell((sx, sy), region.table)
            if cell is not None:
                token = cell_codec.encode(region.content_id, cell)
        return synchronizer.activate_from_overlay(region.content_id, ctx.current_page, token)


def render_overlay(
    overlay: PageOverlay,
    base: Image.Image | None = None,
    *,
    focused_id: ContentId | None = None,
    cfg: EngineConfig | None = None,
) -> Image.Image:
    """Draw the overlay polygons onto the page raster (or a blank canvas)."""
    cfg = cfg or EngineConfig()
    line_width = int(cfg.overlay.get("line_width", 2))
    focus_width = int(cfg.overlay.get("focus_line_width", 4))
    focus_color = str(cfg.overlay.get("focus_color", "#3B82F6"))

    if base is None:
        w, h = overlay.view_size
        img = Image.new("RGB", (max(1, int(round(w))), max(1, int(round(h)))), color=(255, 255, 255))
    else:
        img = base.convert("RGB").copy()
    draw = ImageDraw.Draw(img)

    focus_key = canonical_id(focused_id) if focused_id is not None else None
    for shape in overlay.regions:
        pts = [(shape.points[i], shape.points[i + 1]) for i in range(0, 8, 2)]
        for cell in shape.cells:
            cell_pts = [(cell.points[i], cell.points[i + 1]) for i in range(0, 8, 2)]
            draw.polygon(cell_pts, outline=shape.color, width=1)
        if focus_key is not None and canonical_id(shape.content_id) == focus_key:
            draw.polygon(pts, outline=focus_color, width=focus_width)
        else:
            draw.polygon(pts, outline=shape.color, width=line_width)
    return img
