from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .logging import get_logger
from .region_index import RegionIndex
from .types import ContentId, Region, SelectionNotification
from .utils import canonical_id

if TYPE_CHECKING:
    from .selection import SelectionSynchronizer

log = get_logger(__name__)

TYPE_LABELS: dict[str, str] = {
    "text_title": "Title",
    "title": "Title",
    "paragraph": "Paragraph",
    "text": "Text",
    "table": "Table",
    "image": "Image",
    "formula": "Formula",
    "handwriting": "Handwriting",
    "image_title": "Image caption",
    "textblock": "Text block",
}


def type_label(region_type: str, sub_type: str | None = None) -> str:
    """sub_type wins over type; unknown types fall back to the raw type name."""
    key = sub_type or region_type
    return TYPE_LABELS.get(key) or TYPE_LABELS.get(region_type) or region_type or "Region"


@dataclass(frozen=True)
class ListEntry:
    content_id: ContentId
    page: int
    type: str
    label: str
    text: str
    image_ref: str | None = None
    cell_count: int = 0
    outline_level: int | None = None

    @property
    def key(self) -> tuple[int, str]:
        return (self.page, canonical_id(self.content_id))


def _is_listable(region: Region) -> bool:
    return bool(region.text) or bool(region.image_ref) or region.type == "table"


def build_entries(index: RegionIndex) -> list[ListEntry]:
    entries: list[ListEntry] = []
    for page in index.pages:
        for region in page.regions:
            if not _is_listable(region):
                continue
            entries.append(
                ListEntry(
                    content_id=region.content_id,
                    page=page.page_id,
                    type=region.type,
                    label=type_label(region.type, region.sub_type),
                    text=region.text,
                    image_ref=region.image_ref,
                    cell_count=len(region.table),
                    outline_level=region.outline_level,
                )
            )
    return entries


class ContentListModel:
    """List-side consumer of selection notifications."""

    def __init__(self, index: RegionIndex) -> None:
        self.entries = build_entries(index)
        self._positions = {e.key: i for i, e in enumerate(self.entries)}
        self.highlighted: ListEntry | None = None
        self.scroll_to: int | None = None

    def on_selection(self, notification: SelectionNotification) -> None:
        key = (notification.page, canonical_id(notification.content_id))
        pos = self._positions.get(key)
        if pos is None:
            # Region exists but has nothing to list (e.g. empty text).
            self.highlighted = None
            log.debug("list_entry_missing", content_id=notification.content_id, page=notification.page)
            return
        self.highlighted = self.entries[pos]
        self.scroll_to = pos

    def is_highlighted(self, entry: ListEntry) -> bool:
        return self.highlighted is not None and self.highlighted.key == entry.key

    def entries_for_page(self, page: int) -> list[ListEntry]:
        return [e for e in self.entries if e.page == page]

    def click(self, position: int, synchronizer: "SelectionSynchronizer") -> SelectionNotification:
        entry = self.entries[position]
        return synchronizer.activate_from_list(entry.content_id, entry.page)
