"""View-space overlay construction, clicks and PNG rendering."""
from __future__ import annotations

import pytest

from docview_engine.config import EngineConfig
from docview_engine.overlay import OverlayModel, build_page_overlay, render_overlay
from docview_engine.region_index import RegionIndex
from docview_engine.selection import SelectionSynchronizer
from docview_engine.types import SelectionNotification, ViewContext
from docview_engine.viewer import ViewerState


def _ctx(rotation: int = 0, page: int = 1, zoom: float = 1.5) -> ViewContext:
    return ViewContext(rendered_page_width=200, rendered_page_height=100, zoom=zoom, rotation=rotation, current_page=page)


@pytest.fixture
def index(structured_payload) -> RegionIndex:
    return RegionIndex.from_payload(structured_payload)


@pytest.fixture
def model(index) -> OverlayModel:
    viewer = ViewerState(page_count=2)
    viewer.set_page_size(200, 100)
    return OverlayModel(index=index, viewer=viewer)


# ═══════════════════════════════════════════════════════════════════════════════
# BUILD
# ═══════════════════════════════════════════════════════════════════════════════

class TestBuildPageOverlay:
    """Region shapes for the current view."""

    def test_scale_from_width_ratio(self, index):
        """Page 300 wide shown 200 wide -> 144 dpi, zoom 1.5 cancels it."""
        overlay = build_page_overlay(index, 1, _ctx())
        assert overlay.dpi_scale == pytest.approx(2 / 3)
        assert overlay.view_size == pytest.approx((300, 150))
        assert overlay.regions[0].points == pytest.approx((10, 10, 100, 10, 100, 30, 10, 30))

    def test_rotated_view_size(self, index):
        overlay = build_page_overlay(index, 1, _ctx(rotation=90))
        assert overlay.view_size == pytest.approx((150, 300))
        # (10, 10) on a 300 x 150 page lands at (10, 290) after a quarter turn
        assert overlay.regions[0].points[:2] == pytest.approx((10, 290))

    def test_labels_and_colors(self, index):
        overlay = build_page_overlay(index, 2, _ctx(page=2))
        shape = overlay.regions[0]
        assert shape.label == "Title"
        assert shape.color == "#6B7280"

        cfg = EngineConfig(overlay={"type_colors": {"text_title": "#7C3AED", "title": "#EA580C"}})
        assert build_page_overlay(index, 2, _ctx(page=2), cfg).regions[0].color == "#7C3AED"

    def test_table_cells_and_button(self, index):
        table = build_page_overlay(index, 1, _ctx()).regions[1]
        assert [c.key for c in table.cells][:2] == ["1_cell_0_0_cell_0_1_cell_0_1", "1_cell_0_1_cell_0_1_cell_1_1"]
        assert table.toggle_button == pytest.approx((192, 32, 18))

    def test_hidden_table_has_no_cells(self, index):
        table = build_page_overlay(index, 1, _ctx(), hidden_tables={"1"}).regions[1]
        assert table.cells == ()
        assert table.toggle_button is not None

    def test_empty_page(self):
        overlay = build_page_overlay(RegionIndex(), 1, _ctx())
        assert overlay.regions == ()


# ═══════════════════════════════════════════════════════════════════════════════
# MODEL
# ═══════════════════════════════════════════════════════════════════════════════

class TestOverlayModel:
    """Notifications, table toggles and clicks."""

    def test_notification_navigates(self, model):
        model.on_selection(SelectionNotification(content_id=0, page=2, origin="list"))
        assert model.viewer.current_page == 2
        assert model.navigations == 1
        model.on_selection(SelectionNotification(content_id=0, page=2, origin="list"))
        assert model.navigations == 1
        assert model.is_focused("0")

    def test_toggle_table(self, model):
        assert model.toggle_table(1) is True
        assert model.current_overlay().regions[1].cells == ()
        assert model.toggle_table("1") is False
        assert len(model.current_overlay().regions[1].cells) == 4

    def test_click_cell(self, model, index):
        sync = SelectionSynchronizer(index, overlay=model)
        n = model.click(160, 110, sync)
        assert n.content_id == 1
        assert n.cell.fields() == (1, 1, 1, 1, 1, 1)
        assert model.focused_cell == n.cell

    def test_click_cell_with_backend_cell_id(self):
        """A cell carrying its own cell_id keeps that as UI key but still reports its position."""
        index = RegionIndex.from_payload(
            {
                "pages": [
                    {
                        "page_id": 1,
                        "width": 300,
                        "height": 150,
                        "structured": [
                            {
                                "id": 7,
                                "type": "table",
                                "pos": [10, 10, 110, 10, 110, 90, 10, 90],
                                "cells": [
                                    {"cell_id": "c0", "position": [10, 10, 110, 10, 110, 90, 10, 90], "row_index": 0, "col_index": 0},
                                ],
                            }
                        ],
                    }
                ]
            }
        )
        viewer = ViewerState(page_count=1)
        viewer.set_page_size(200, 100)
        overlay = OverlayModel(index=index, viewer=viewer)
        sync = SelectionSynchronizer(index, overlay=overlay)

        assert overlay.current_overlay().regions[0].cells[0].key == "7_cell_c0"
        n = overlay.click(50, 50, sync)
        assert n.content_id == 7
        assert n.cell is not None
        assert n.cell.fields() == (0, 0, 0, 1, 0, 1)
        assert n.cell.table_id == "7"

    def test_click_hidden_table_selects_table_only(self, model, index):
        sync = SelectionSynchronizer(index, overlay=model)
        model.toggle_table(1)
        n = model.click(160, 110, sync)
        assert n.content_id == 1
        assert n.cell is None

    def test_click_outside(self, model, index):
        sync = SelectionSynchronizer(index, overlay=model)
        assert model.click(290, 140, sync) is None
        assert not sync.is_focused

    def test_click_rotated(self, model, index):
        """A click on the rotated paragraph still finds it."""
        sync = SelectionSynchronizer(index, overlay=model)
        model.viewer.rotation = 90
        n = model.click(20, 245, sync)
        assert n.content_id == 0


class TestRenderOverlay:
    """PNG rendering of one page."""

    def test_blank_canvas_size(self, index):
        img = render_overlay(build_page_overlay(index, 1, _ctx()))
        assert img.size == (300, 150)
        assert img.mode == "RGB"

    def test_focus_color(self, index):
        overlay = build_page_overlay(index, 1, _ctx())
        img = render_overlay(overlay, focused_id=0)
        assert img.getpixel((12, 20)) == (59, 130, 246)

    def test_draws_on_base(self, index):
        from PIL import Image

        base = Image.new("L", (300, 150), color=0)
        img = render_overlay(build_page_overlay(index, 1, _ctx()), base)
        assert img.mode == "RGB"
        assert img.size == (300, 150)
        assert img.getpixel((150, 5)) == (0, 0, 0)
