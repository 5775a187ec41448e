from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .types import ViewContext
from .utils import clamp


@dataclass
class ViewerState:
    """Page/zoom/rotation of the rendered document.

    page_width/page_height are the current page's pixel size at zoom 1,
    as reported by the renderer.
    """
    page_count: int
    page_width: float = 0.0
    page_height: float = 0.0
    current_page: int = 1
    zoom: float = 1.5
    rotation: int = 0
    default_zoom: float = 1.5
    zoom_step: float = 0.25
    min_zoom: float = 0.5
    max_zoom: float = 3.0

    @classmethod
    def from_config(cls, page_count: int, viewer_cfg: dict[str, Any]) -> "ViewerState":
        default_zoom = float(viewer_cfg.get("default_zoom", 1.5))
        return cls(
            page_count=page_count,
            zoom=default_zoom,
            default_zoom=default_zoom,
            zoom_step=float(viewer_cfg.get("zoom_step", 0.25)),
            min_zoom=float(viewer_cfg.get("min_zoom", 0.5)),
            max_zoom=float(viewer_cfg.get("max_zoom", 3.0)),
        )

    def go_to(self, page: int) -> bool:
        """Navigate; returns True when the visible page changed."""
        target = int(clamp(page, 1, max(1, self.page_count)))
        changed = target != self.current_page
        self.current_page = target
        return changed

    def next_page(self) -> bool:
        return self.go_to(self.current_page + 1)

    def prev_page(self) -> bool:
        return self.go_to(self.current_page - 1)

    def zoom_in(self) -> None:
        self.zoom = clamp(self.zoom + self.zoom_step, self.min_zoom, self.max_zoom)

    def zoom_out(self) -> None:
        self.zoom = clamp(self.zoom - self.zoom_step, self.min_zoom, self.max_zoom)

    def rotate_right(self) -> None:
        self.rotation = (self.rotation + 90) % 360

    def rotate_left(self) -> None:
        self.rotation = (self.rotation - 90 + 360) % 360

    def reset_view(self) -> None:
        self.zoom = self.default_zoom
        self.rotation = 0

    def set_page_size(self, width: float, height: float) -> None:
        self.page_width = float(width)
        self.page_height = float(height)

    def context(self) -> ViewContext:
        return ViewContext(
            rendered_page_width=self.page_width,
            rendered_page_height=self.page_height,
            zoom=self.zoom,
            rotation=self.rotation,
            current_page=self.current_page,
        )
