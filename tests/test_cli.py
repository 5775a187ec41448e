"""Command line entry points."""
from __future__ import annotations

import json

import pytest

from docview_engine.cli import main


@pytest.fixture
def payload_file(tmp_path, structured_payload):
    path = tmp_path / "result.json"
    path.write_text(json.dumps({"code": 200, "data": {"result": structured_payload}}), encoding="utf-8")
    return path


VIEW = ["--page-width", "200", "--page-height", "100"]


class TestCli:
    """Each subcommand prints key=value lines."""

    def test_summary(self, payload_file, capsys):
        assert main(["summary", "--payload", str(payload_file), "--log-level", "WARNING"]) == 0
        out = capsys.readouterr().out
        assert "pages=2" in out
        assert "regions=3" in out
        assert "shape_structured=2" in out
        assert "page 1: 2 paragraph:1 table:1" in out

    def test_locate_cell(self, payload_file, capsys):
        rc = main(["locate", "--payload", str(payload_file), *VIEW, "--x", "60", "--y", "70"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "content_id=1" in out
        assert "page=1" in out
        assert "cell=0,0,0,1,0,1" in out

    def test_locate_miss(self, payload_file, capsys):
        assert main(["locate", "--payload", str(payload_file), *VIEW, "--x", "290", "--y", "140"]) == 1
        assert "hit=none" in capsys.readouterr().out

    def test_overlay_png(self, payload_file, tmp_path, capsys):
        from PIL import Image

        out_path = tmp_path / "out" / "page1.png"
        rc = main(["overlay", "--payload", str(payload_file), *VIEW, "--out", str(out_path), "--focus", "0"])
        assert rc == 0
        assert "regions=2" in capsys.readouterr().out
        with Image.open(out_path) as img:
            assert img.size == (300, 150)

    def test_select_navigates(self, payload_file, capsys):
        assert main(["select", "--payload", str(payload_file), "--content-id", "0", "--page", "2"]) == 0
        out = capsys.readouterr().out
        assert "viewer_page=2" in out
        assert "list_position=2" in out

    def test_select_unknown_page_fails(self, payload_file, capsys):
        assert main(["select", "--payload", str(payload_file), "--content-id", "0", "--page", "9"]) == 1
        assert "select_failed" in capsys.readouterr().err

    def test_decode_cell(self, capsys):
        assert main(["decode-cell", "T1_cell_0_0_cell_0_1_cell_0_1"]) == 0
        out = capsys.readouterr().out
        assert "table_id=T1" in out
        assert "row_span=1" in out

        assert main(["decode-cell", "garbage"]) == 1
        assert "cell=none" in capsys.readouterr().out

    def test_missing_payload_fails(self, tmp_path, capsys):
        assert main(["summary", "--payload", str(tmp_path / "nope.json")]) == 1
        assert "summary_failed" in capsys.readouterr().err

    def test_bad_config(self, tmp_path, capsys):
        cfg = tmp_path / "cfg.json"
        cfg.write_text("[1, 2]", encoding="utf-8")
        assert main(["decode-cell", "x", "--config", str(cfg)]) == 1
        assert "config_failed" in capsys.readouterr().err
