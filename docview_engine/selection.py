"""Single source of truth for the focused region.

Both views report clicks here and both receive the same notification back,
including the view the click came from. Consumers must treat a repeated
notification as a cheap no-op.
"""
from __future__ import annotations

from typing import Callable, Protocol

from . import cell_codec
from .logging import get_logger
from .region_index import RegionIndex
from .types import ContentId, SelectionNotification, SelectionState
from .utils import canonical_id

log = get_logger(__name__)

ORIGIN_OVERLAY = "overlay"
ORIGIN_LIST = "list"


class UnknownPageError(ValueError):
    pass


class SelectionObserver(Protocol):
    def on_selection(self, notification: SelectionNotification) -> None: ...


class SelectionSynchronizer:
    def __init__(
        self,
        index: RegionIndex,
        *,
        overlay: SelectionObserver | None = None,
        content_list: SelectionObserver | None = None,
        current_page: Callable[[], int] | None = None,
    ) -> None:
        self._index = index
        self._overlay = overlay
        self._content_list = content_list
        self._current_page = current_page
        self._state = SelectionState()

    @property
    def state(self) -> SelectionState:
        # hand out a copy; the live record stays private
        return SelectionState(focused_id=self._state.focused_id, focused_page=self._state.focused_page)

    @property
    def is_focused(self) -> bool:
        return self._state.focused_id is not None

    def attach(
        self,
        *,
        overlay: SelectionObserver | None = None,
        content_list: SelectionObserver | None = None,
    ) -> None:
        if overlay is not None:
            self._overlay = overlay
        if content_list is not None:
            self._content_list = content_list

    def activate_from_overlay(
        self,
        content_id: ContentId,
        page: int,
        cell_token: str | None = None,
    ) -> SelectionNotification:
        cell = cell_codec.decode(cell_token) if cell_token else None
        if cell is not None and cell.table_id and cell.table_id != canonical_id(content_id):
            log.debug("cell_token_table_mismatch", content_id=content_id, token=cell_token)
        return self._activate(content_id, page, ORIGIN_OVERLAY, cell)

    def activate_from_list(self, content_id: ContentId, page: int) -> SelectionNotification:
        return self._activate(content_id, page, ORIGIN_LIST, None)

    def _check_page(self, page: int) -> None:
        if self._index.has_page(page):
            return
        if self._current_page is not None and self._current_page() == page:
            return
        raise UnknownPageError(f"page {page} is not in the index and is not the current viewer page")

    def _activate(self, content_id, page, origin, cell) -> SelectionNotification:
        self._check_page(page)
        if self._index.lookup(content_id, page=page) is None:
            log.debug("activation_unknown_region", content_id=content_id, page=page, origin=origin)

        self._state.focused_id = content_id
        self._state.focused_page = page

        notification = SelectionNotification(content_id=content_id, page=page, origin=origin, cell=cell)
        log.debug("selection_changed", content_id=content_id, page=page, origin=origin, cell=cell is not None)
        self._notify(notification)
        return notification

    def _notify(self, notification: SelectionNotification) -> None:
        # Overlay first so page navigation happens before the list scrolls.
        for name, observer in (("overlay", self._overlay), ("content_list", self._content_list)):
            if observer is None:
                continue
            try:
                observer.on_selection(notification)
            except Exception:
                log.exception("selection_observer_failed", observer=name, content_id=notification.content_id)
