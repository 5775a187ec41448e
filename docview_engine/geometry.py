"""Coordinate math shared by the overlay, hit testing and the CLI.

Coordinate spaces:
- source space: the analysis payload's page coordinates, in pixels at the
  payload's resolution (usually 144 dpi)
- view space: the rendered page, in CSS pixels at the viewer resolution
  (96 dpi) multiplied by the current zoom

All functions are pure; nothing here keeps state.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

import numpy as np

from .types import BoundingBox, Page, Quad, Region, TableCell, ViewBox
from .utils import canonical_id

VIEWER_DPI = 96.0
DEFAULT_RESULT_DPI = 144.0

Point = tuple[float, float]


class InvalidArgument(ValueError):
    """Raised for caller mistakes (as opposed to bad payload data)."""


def _positive(value: Any) -> float | None:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v) or v <= 0:
        return None
    return v


def _metric_for_page(metrics: Iterable[Any] | None, page_id: int) -> float | None:
    for m in metrics or []:
        if not isinstance(m, dict):
            continue
        if canonical_id(m.get("page_id")) != canonical_id(page_id):
            continue
        return _positive(m.get("dpi")) or _positive(m.get("ppi"))
    return None


def resolve_resolution(
    page: Page,
    metrics: Iterable[Any] | None = None,
    *,
    rendered_base_width: float | None = None,
    viewer_dpi: float = VIEWER_DPI,
    default_dpi: float = DEFAULT_RESULT_DPI,
) -> float:
    """Resolution the payload's coordinates were produced at.

    First matching rule wins:
    1. explicit ppi/dpi on the page
    2. page width vs. the renderer's base width at zoom 1
    3. page-indexed metrics table
    4. default_dpi
    """
    explicit = _positive(page.resolution)
    if explicit is not None:
        return explicit

    width = _positive(page.width)
    base = _positive(rendered_base_width)
    if width is not None and base is not None and width != base:
        return viewer_dpi * (width / base)

    from_metrics = _metric_for_page(metrics, page.page_id)
    if from_metrics is not None:
        return from_metrics

    return float(default_dpi)


def dpi_scale(viewer_resolution: float = VIEWER_DPI, result_resolution: float = DEFAULT_RESULT_DPI) -> float:
    if _positive(result_resolution) is None:
        raise InvalidArgument(f"result_resolution must be positive, got {result_resolution!r}")
    if _positive(viewer_resolution) is None:
        raise InvalidArgument(f"viewer_resolution must be positive, got {viewer_resolution!r}")
    return float(viewer_resolution) / float(result_resolution)


def scale_point(p: Point, zoom: float, dpi_scale: float) -> Point:
    k = zoom * dpi_scale
    return (p[0] * k, p[1] * k)


def normalize_rotation(degrees: float) -> int:
    """Angle modulo 360; anything other than a quarter turn counts as 0."""
    r = float(degrees) % 360
    if r in (90.0, 180.0, 270.0):
        return int(r)
    return 0


def rotated_size(width: float, height: float, degrees: float) -> tuple[float, float]:
    if normalize_rotation(degrees) in (90, 270):
        return (height, width)
    return (width, height)


def rotate_point(p: Point, degrees: float, width: float, height: float) -> Point:
    """Rotate p by a quarter turn.

    width/height are the size of the frame p lands in, i.e. the page after
    rotation. rotate_point(rotate_point(p, r, *rotated_size(w, h, r)), -r, w, h)
    gives p back.
    """
    x, y = p
    r = normalize_rotation(degrees)
    if r == 90:
        return (y, height - x)
    if r == 180:
        return (width - x, height - y)
    if r == 270:
        return (width - y, x)
    return (x, y)


def unrotate_point(p: Point, degrees: float, width: float, height: float) -> Point:
    """Inverse of a rotation applied to a width x height (unrotated) page."""
    return rotate_point(p, -normalize_rotation(degrees), width, height)


def click_to_source_point(
    click: Point,
    zoom: float,
    dpi_scale: float,
    rotation: float,
    width: float,
    height: float,
) -> Point:
    """Map a click in view space back to source space.

    width/height are the unrotated source page size.
    """
    if _positive(zoom) is None or _positive(dpi_scale) is None:
        raise InvalidArgument("zoom and dpi_scale must be positive")
    x = click[0] / zoom / dpi_scale
    y = click[1] / zoom / dpi_scale
    return unrotate_point((x, y), rotation, width, height)


def quad_points(quad: Sequence[float]) -> list[Point]:
    if len(quad) != 8:
        raise InvalidArgument(f"quad must have 8 numbers, got {len(quad)}")
    return [(float(quad[i]), float(quad[i + 1])) for i in range(0, 8, 2)]


def point_in_polygon(point: Point, quad: Sequence[float]) -> bool:
    """Ray-casting parity test. Points exactly on an edge may go either way."""
    x, y = point
    pts = quad_points(quad)
    inside = False
    j = len(pts) - 1
    for i in range(len(pts)):
        xi, yi = pts[i]
        xj, yj = pts[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def bounding_box(quad: Sequence[float]) -> BoundingBox:
    arr = np.asarray(quad_points(quad), dtype=np.float64)
    mins = arr.min(axis=0)
    maxs = arr.max(axis=0)
    return BoundingBox(min_x=float(mins[0]), min_y=float(mins[1]), max_x=float(maxs[0]), max_y=float(maxs[1]))


def resolve_view_box_size(
    source_page_width: float | None,
    source_page_height: float | None,
    rendered_width: float,
    rendered_height: float,
    zoom: float,
    dpi_scale: float,
) -> ViewBox:
    """Stated page size wins; otherwise derive it from the rendered size."""
    w = _positive(source_page_width)
    h = _positive(source_page_height)
    if w is not None and h is not None:
        return ViewBox(width=w, height=h)
    if _positive(zoom) is None or _positive(dpi_scale) is None:
        raise InvalidArgument("zoom and dpi_scale must be positive")
    return ViewBox(
        width=round(rendered_width / zoom / dpi_scale, 2),
        height=round(rendered_height / zoom / dpi_scale, 2),
    )


def project_quad(
    quad: Sequence[float],
    zoom: float,
    dpi_scale: float,
    rotation: float = 0,
    width: float = 0.0,
    height: float = 0.0,
) -> Quad:
    """Rotate a source-space quad, then scale it to view space.

    width/height are the unrotated source page size.
    """
    if _positive(zoom) is None or _positive(dpi_scale) is None:
        raise InvalidArgument("zoom and dpi_scale must be positive finite numbers")
    arr = np.asarray(quad_points(quad), dtype=np.float64)
    r = normalize_rotation(rotation)
    rw, rh = rotated_size(width, height, r)
    x = arr[:, 0].copy()
    y = arr[:, 1].copy()
    if r == 90:
        x, y = y, rh - x
    elif r == 180:
        x, y = rw - x, rh - y
    elif r == 270:
        x, y = rw - y, x
    out = np.column_stack([x, y]) * (zoom * dpi_scale)
    return tuple(float(v) for v in out.reshape(-1))  # type: ignore[return-value]


def hit_test(point: Point, regions: Sequence[Region]) -> Region | None:
    """Top-most region (last in paint order) containing point; inactive regions are skipped."""
    for region in reversed(regions):
        if not region.active:
            continue
        if point_in_polygon(point, region.position):
            return region
    return None


def hit_test_cell(point: Point, cells: Sequence[TableCell]) -> TableCell | None:
    for cell in reversed(cells):
        if point_in_polygon(point, cell.position):
            return cell
    return None


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def format_polygon_points(quad: Sequence[float]) -> str:
    return " ".join(f"{x:g},{y:g}" for x, y in quad_points(quad))


def format_path_d(quad: Sequence[float]) -> str:
    parts = []
    for i, (x, y) in enumerate(quad_points(quad)):
        parts.append(f"{'M' if i == 0 else 'L'} {x:g} {y:g}")
    parts.append("Z")
    return " ".join(parts)


def toggle_button_box(quad: Sequence[float], view_rate: float) -> tuple[float, float, float]:
    """(x, y, size) of a table's show/hide-cells button, anchored at its top-right corner."""
    pts = quad_points(quad)
    top_right_x, top_right_y = pts[1]
    size = 18 * view_rate
    x, y = top_right_x - size, top_right_y - size
    if y < 30 * view_rate:
        y = top_right_y
    return (x, y, size)
