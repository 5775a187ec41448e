"""Normalize an analysis payload into pages of regions.

The backend has shipped several payload shapes over time. Each page is
matched against PAYLOAD_SHAPES in order and the first field holding a
non-empty list wins; shapes are never merged. Bad entries are dropped,
never raised.

Regions without an id take their position in the page. If an earlier
explicit id already holds that number, the next free integer is used; a
repeated explicit id is dropped as a duplicate.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable

from .geometry import resolve_resolution
from .logging import get_logger
from .types import BuildStats, ContentId, LookupResult, Page, Region, TableCell
from .utils import as_int, as_positive_float, as_quad, canonical_id

log = get_logger(__name__)


@dataclass(frozen=True)
class PayloadShape:
    field: str
    id_keys: tuple[str, ...]
    position_keys: tuple[str, ...]
    default_type: str
    with_extras: bool


PAYLOAD_SHAPES: tuple[PayloadShape, ...] = (
    # pre-normalized geometry
    PayloadShape("rects", ("content_id", "id"), ("position", "pos"), "paragraph", True),
    # richer structural elements
    PayloadShape("structured", ("id",), ("pos", "position"), "textblock", True),
    # legacy flat content
    PayloadShape("content", ("id",), ("pos", "position"), "textblock", False),
)


def unwrap_result(payload: Any) -> dict[str, Any]:
    """Strip API envelopes: {"data": {"result": ...}} and {"result": ...}."""
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("result"), dict):
        return data["result"]
    if isinstance(payload.get("result"), dict):
        return payload["result"]
    return payload


def _has_regions(raw_page: Any) -> bool:
    if not isinstance(raw_page, dict):
        return False
    return any(isinstance(raw_page.get(s.field), list) and raw_page.get(s.field) for s in PAYLOAD_SHAPES)


def _pages_from_detail(result: dict[str, Any]) -> list[dict[str, Any]]:
    """Group a flat `detail` list into pages; ids are positions in `detail`."""
    info: dict[int, dict[str, Any]] = {}
    for i, p in enumerate(result.get("pages") or []):
        if isinstance(p, dict):
            info[as_int(p.get("page_id"), i + 1)] = p

    grouped: dict[int, list[dict[str, Any]]] = {}
    for idx, item in enumerate(result.get("detail") or []):
        if not isinstance(item, dict):
            continue
        page_id = as_int(item.get("page_id"), 0)
        if page_id < 1:
            continue
        rect = dict(item)
        rect["content_id"] = idx
        grouped.setdefault(page_id, []).append(rect)

    pages: list[dict[str, Any]] = []
    # Only page ids that actually occur; a stray large page_id must not fan out.
    for page_id in sorted(pid for pid in set(grouped) | set(info) if pid >= 1):
        page = {k: v for k, v in info.get(page_id, {}).items() if k not in ("rects", "structured", "content")}
        page["page_id"] = page_id
        page["rects"] = grouped.get(page_id, [])
        pages.append(page)
    return pages


def extract_pages(result: dict[str, Any]) -> list[Any]:
    pages = result.get("pages")
    if isinstance(pages, list) and any(_has_regions(p) for p in pages):
        return pages
    if isinstance(result.get("detail"), list):
        return _pages_from_detail(result)
    return pages if isinstance(pages, list) else []


def _first(item: dict[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        v = item.get(k)
        if v is not None:
            return v
    return None


def _normalize_cells(raw: Any) -> tuple[TableCell, ...]:
    if isinstance(raw, dict):
        raw = raw.get("cells")
    if not isinstance(raw, list):
        return ()

    cells: list[TableCell] = []
    for c in raw:
        if not isinstance(c, dict):
            continue
        position = as_quad(c.get("position") if c.get("position") is not None else c.get("pos"))
        if position is None:
            continue
        row_index = as_int(c.get("row_index"), 0)
        col_index = as_int(c.get("col_index"), 0)
        cell_id = c.get("cell_id")
        cells.append(
            TableCell(
                position=position,  # type: ignore[arg-type]
                row_index=row_index,
                col_index=col_index,
                row=as_int(c.get("row"), row_index),
                row_span=as_int(c.get("row_span"), 1),
                col=as_int(c.get("col"), col_index),
                col_span=as_int(c.get("col_span"), 1),
                cell_identity=str(cell_id) if cell_id not in (None, "") else None,
                text=str(c.get("text") or ""),
            )
        )
    return tuple(cells)


def _explicit_id(item: dict[str, Any], shape: PayloadShape) -> ContentId | None:
    raw_id = _first(item, shape.id_keys)
    if isinstance(raw_id, float) and raw_id.is_integer():
        raw_id = int(raw_id)
    if isinstance(raw_id, (int, str)) and not isinstance(raw_id, bool):
        return raw_id
    return None


def _normalize_region(item: Any, position_in_page: int, page_id: int, shape: PayloadShape) -> tuple[Region | None, str]:
    if not isinstance(item, dict):
        return None, "not_an_object"

    position = as_quad(_first(item, shape.position_keys))
    if position is None:
        return None, "bad_position"

    explicit = _explicit_id(item, shape)
    content_id: ContentId = explicit if explicit is not None else position_in_page

    sub_type = item.get("sub_type") or None
    region_type = str(item.get("type") or sub_type or shape.default_type)

    extras: dict[str, Any] = {}
    if shape.with_extras:
        outline = item.get("outline_level")
        extras = {
            "table": _normalize_cells(item.get("cells")),
            "image_ref": item.get("image_url") or item.get("image_ref") or None,
            "outline_level": outline if isinstance(outline, int) and not isinstance(outline, bool) else None,
            "caption_id": item.get("caption_id"),
            "render_text": str(item["render_text"]) if item.get("render_text") else None,
            "active": item.get("active") != 0,
        }

    region = Region(
        content_id=content_id,
        page_id=page_id,
        type=region_type,
        position=position,  # type: ignore[arg-type]
        text=str(item.get("text") or ""),
        sub_type=str(sub_type) if sub_type else None,
        **extras,
    )
    return region, ""


def _resolve_page_fields(raw_page: dict[str, Any], page_index: int) -> dict[str, Any]:
    page_id = as_int(raw_page.get("page_id"), page_index + 1)
    if page_id < 1:
        page_id = page_index + 1
    angle = raw_page.get("angle")
    return {
        "page_id": page_id,
        "page_index": page_index,
        "width": as_positive_float(raw_page.get("width")),
        "height": as_positive_float(raw_page.get("height")),
        "angle": float(angle) if isinstance(angle, (int, float)) and not isinstance(angle, bool) else 0.0,
        "resolution": as_positive_float(raw_page.get("ppi")) or as_positive_float(raw_page.get("dpi")),
    }


class RegionIndex:
    """Pages of regions plus a flat id lookup, rebuilt as a whole on every build."""

    def __init__(self) -> None:
        self.pages: list[Page] = []
        self.metrics: list[Any] = []
        self.stats = BuildStats()
        self._by_id: dict[str, LookupResult] = {}

    @classmethod
    def from_payload(cls, payload: Any) -> "RegionIndex":
        result = unwrap_result(payload)
        index = cls()
        metrics = result.get("metrics")
        index.build(extract_pages(result), metrics if isinstance(metrics, list) else None)
        return index

    def build(self, raw_pages: Any, metrics: list[Any] | None = None) -> list[Page]:
        pages: list[Page] = []
        by_id: dict[str, LookupResult] = {}
        stats = BuildStats()

        for page_index, raw_page in enumerate(raw_pages if isinstance(raw_pages, list) else []):
            stats.pages_total += 1
            if not isinstance(raw_page, dict):
                raw_page = {}
            fields = _resolve_page_fields(raw_page, page_index)

            shape = next(
                (s for s in PAYLOAD_SHAPES if isinstance(raw_page.get(s.field), list) and raw_page.get(s.field)),
                None,
            )
            regions: list[Region] = []
            if shape is None:
                stats.pages_without_regions += 1
                log.warning("page_without_regions", page_id=fields["page_id"])
            else:
                stats.shapes_used[shape.field] = stats.shapes_used.get(shape.field, 0) + 1
                seen: set[str] = set()
                for pos, item in enumerate(raw_page[shape.field]):
                    region, reason = _normalize_region(item, pos, fields["page_id"], shape)
                    if region is not None and canonical_id(region.content_id) in seen:
                        if _explicit_id(item, shape) is None:
                            # positional id taken by an explicit one; move to the next free slot
                            free = pos + 1
                            while canonical_id(free) in seen:
                                free += 1
                            region = replace(region, content_id=free)
                        else:
                            region, reason = None, "duplicate_id"
                    if region is None:
                        stats.regions_dropped += 1
                        log.debug("region_dropped", page_id=fields["page_id"], position=pos, reason=reason)
                        continue
                    seen.add(canonical_id(region.content_id))
                    regions.append(region)

            page = Page(regions=tuple(regions), **fields)
            pages.append(page)
            stats.regions_kept += len(regions)
            for region in regions:
                by_id.setdefault(canonical_id(region.content_id), LookupResult(region=region, page_index=page_index))

        # Swap in one go so readers never see a half-built index.
        self.pages = pages
        self.metrics = list(metrics or [])
        self.stats = stats
        self._by_id = by_id

        log.info(
            "index_built",
            pages=stats.pages_total,
            regions=stats.regions_kept,
            dropped=stats.regions_dropped,
            empty_pages=stats.pages_without_regions,
        )
        return pages

    def lookup(self, content_id: ContentId, *, page: int | None = None) -> LookupResult | None:
        """Find a region by id; `page` narrows the search to one page id."""
        key = canonical_id(content_id)
        if page is None:
            return self._by_id.get(key)
        p = self.page(page)
        if p is None:
            return None
        for region in p.regions:
            if canonical_id(region.content_id) == key:
                return LookupResult(region=region, page_index=p.page_index)
        return None

    def page(self, page_id: int) -> Page | None:
        for p in self.pages:
            if p.page_id == page_id:
                return p
        return None

    def has_page(self, page_id: int) -> bool:
        return self.page(page_id) is not None

    def regions_for_page(self, page_id: int) -> tuple[Region, ...]:
        p = self.page(page_id)
        return p.regions if p is not None else ()

    def resolution_for(
        self,
        page_id: int,
        *,
        rendered_base_width: float | None = None,
        viewer_dpi: float = 96.0,
        default_dpi: float = 144.0,
    ) -> float:
        p = self.page(page_id)
        if p is None:
            return float(default_dpi)
        return resolve_resolution(
            p,
            self.metrics,
            rendered_base_width=rendered_base_width,
            viewer_dpi=viewer_dpi,
            default_dpi=default_dpi,
        )

    def __len__(self) -> int:
        return sum(len(p.regions) for p in self.pages)

    def iter_regions(self) -> Iterable[Region]:
        for p in self.pages:
            yield from p.regions

