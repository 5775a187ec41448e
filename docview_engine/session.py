"""Per-document state and result loading.

Each load is tagged with a sequence number. Only the most recently issued
load may land; a late completion for an older request is dropped, so a
slow result for a previous file can never overwrite the current one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .config import EngineConfig
from .content_list import ContentListModel
from .logging import get_logger
from .overlay import OverlayModel
from .region_index import RegionIndex
from .selection import SelectionSynchronizer
from .viewer import ViewerState

log = get_logger(__name__)


@dataclass
class LoadTicket:
    sequence: int
    document: str | None = None


class DocumentSession:
    def __init__(self, cfg: EngineConfig | None = None, viewer: ViewerState | None = None) -> None:
        self.cfg = cfg or EngineConfig()
        self.document: str | None = None
        self._issued = 0
        self._pending: int | None = None
        self._viewer = viewer
        self._install(RegionIndex())

    def _install(self, index: RegionIndex) -> None:
        viewer = self._viewer or ViewerState.from_config(max(1, len(index.pages)), self.cfg.viewer)
        self.viewer = viewer
        self.index = index
        self.overlay = OverlayModel(index=index, viewer=viewer, cfg=self.cfg)
        self.content_list = ContentListModel(index)
        self.synchronizer = SelectionSynchronizer(
            index,
            overlay=self.overlay,
            content_list=self.content_list,
            current_page=lambda: viewer.current_page,
        )

    @property
    def latest_sequence(self) -> int:
        return self._issued

    @property
    def loading(self) -> bool:
        return self._pending is not None

    def begin_load(self, document: str | None = None) -> LoadTicket:
        """Start loading a new document; any earlier pending load becomes stale."""
        self._issued += 1
        self._pending = self._issued
        self.document = document
        if self._viewer is not None:
            # an injected viewer outlives documents; start the new one fresh
            self._viewer.go_to(1)
            self._viewer.reset_view()
        self._install(RegionIndex())
        log.info("load_started", sequence=self._issued, document=document)
        return LoadTicket(sequence=self._issued, document=document)

    def _check_issued(self, sequence: int) -> None:
        if sequence < 1 or sequence > self._issued:
            raise ValueError(f"sequence {sequence} was never issued")

    def complete_load(self, sequence: int, payload: Any) -> bool:
        """Install the analysis result for `sequence`; False if it was superseded."""
        self._check_issued(sequence)
        if sequence != self._pending:
            log.info("stale_result_discarded", sequence=sequence, latest=self._issued)
            return False

        index = RegionIndex.from_payload(payload)
        self._pending = None
        self._install(index)
        log.info("load_completed", sequence=sequence, pages=len(index.pages), regions=len(index))
        return True

    def fail_load(self, sequence: int, error: str) -> bool:
        self._check_issued(sequence)
        if sequence != self._pending:
            log.info("stale_failure_discarded", sequence=sequence, latest=self._issued)
            return False
        self._pending = None
        log.error("load_failed", sequence=sequence, error=error)
        return True
