from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from . import cell_codec
from .config import EngineConfig, load_config
from .logging import configure_logging
from .overlay import render_overlay
from .page_provider import PdfPageProvider
from .session import DocumentSession
from .utils import load_json
from .viewer import ViewerState


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="Config path (JSON); built-in defaults when omitted")
    p.add_argument("--log-level", default=None, help="Override logging.level from the config")


def _add_view(p: argparse.ArgumentParser) -> None:
    p.add_argument("--payload", required=True, help="Analysis result JSON")
    p.add_argument("--pdf", default=None, help="Source PDF (page sizes and raster)")
    p.add_argument("--page", type=int, default=1, help="1-based page number")
    p.add_argument("--zoom", type=float, default=None, help="Zoom factor (default: viewer.default_zoom)")
    p.add_argument("--rotation", type=int, default=0, choices=[0, 90, 180, 270])
    p.add_argument("--page-width", type=float, default=0.0, help="Page width at zoom 1 when no --pdf is given")
    p.add_argument("--page-height", type=float, default=0.0, help="Page height at zoom 1 when no --pdf is given")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="docview_engine")
    sub = p.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Summarize the pages and regions of an analysis result")
    summary.add_argument("--payload", required=True, help="Analysis result JSON")
    _add_common(summary)

    locate = sub.add_parser("locate", help="Resolve a view-space click to a region")
    _add_view(locate)
    locate.add_argument("--x", type=float, required=True)
    locate.add_argument("--y", type=float, required=True)
    _add_common(locate)

    overlay = sub.add_parser("overlay", help="Render the region overlay of one page to PNG")
    _add_view(overlay)
    overlay.add_argument("--out", required=True, help="Output PNG path")
    overlay.add_argument("--focus", default=None, help="content_id to draw as focused")
    _add_common(overlay)

    select = sub.add_parser("select", help="Activate a region from the content list")
    select.add_argument("--payload", required=True, help="Analysis result JSON")
    select.add_argument("--content-id", required=True)
    select.add_argument("--page", type=int, required=True)
    _add_common(select)

    decode = sub.add_parser("decode-cell", help="Decode a compound table-cell identifier")
    decode.add_argument("token")
    _add_common(decode)

    return p


def _load_session(args: argparse.Namespace, cfg: EngineConfig) -> tuple[DocumentSession, PdfPageProvider | None]:
    payload = load_json(args.payload)
    provider = PdfPageProvider(args.pdf) if getattr(args, "pdf", None) else None

    viewer = None
    if provider is not None:
        viewer = ViewerState.from_config(provider.page_count, cfg.viewer)

    session = DocumentSession(cfg, viewer=viewer)
    ticket = session.begin_load(str(Path(args.payload).name))
    session.complete_load(ticket.sequence, payload)
    return session, provider


def _prepare_view(args: argparse.Namespace, session: DocumentSession, provider: PdfPageProvider | None) -> None:
    viewer = session.viewer
    if provider is None:
        viewer.page_count = max(viewer.page_count, args.page)
    viewer.go_to(args.page)
    if args.zoom is not None:
        viewer.zoom = float(args.zoom)
    viewer.rotation = int(args.rotation)
    if provider is not None:
        viewer.set_page_size(*provider.page_size(viewer.current_page))
    else:
        viewer.set_page_size(args.page_width, args.page_height)


def _content_id_arg(value: str) -> Any:
    return int(value) if value.lstrip("-").isdigit() else value


def cmd_summary(args: argparse.Namespace, cfg: EngineConfig) -> int:
    session, _ = _load_session(args, cfg)
    index = session.index
    stats = index.stats
    print(f"pages={stats.pages_total}")
    print(f"regions={stats.regions_kept}")
    print(f"dropped={stats.regions_dropped}")
    print(f"pages_without_regions={stats.pages_without_regions}")
    for shape, n in sorted(stats.shapes_used.items()):
        print(f"shape_{shape}={n}")
    for page in index.pages:
        types: dict[str, int] = {}
        for r in page.regions:
            types[r.type] = types.get(r.type, 0) + 1
        detail = " ".join(f"{k}:{v}" for k, v in sorted(types.items()))
        print(f"page {page.page_id}: {len(page.regions)} {detail}".rstrip())
    return 0


def cmd_locate(args: argparse.Namespace, cfg: EngineConfig) -> int:
    session, provider = _load_session(args, cfg)
    try:
        _prepare_view(args, session, provider)
        notification = session.overlay.click(args.x, args.y, session.synchronizer)
    finally:
        if provider is not None:
            provider.close()
    if notification is None:
        print("hit=none")
        return 1
    print(f"content_id={notification.content_id}")
    print(f"page={notification.page}")
    if notification.cell is not None:
        print("cell=" + ",".join(str(v) for v in notification.cell.fields()))
    return 0


def cmd_overlay(args: argparse.Namespace, cfg: EngineConfig) -> int:
    session, provider = _load_session(args, cfg)
    try:
        _prepare_view(args, session, provider)
        page_overlay = session.overlay.current_overlay()
        base = None
        if provider is not None:
            viewer = session.viewer
            base = provider.render(viewer.current_page, zoom=viewer.zoom, rotation=viewer.rotation)
    finally:
        if provider is not None:
            provider.close()

    focus = _content_id_arg(args.focus) if args.focus is not None else None
    img = render_overlay(page_overlay, base, focused_id=focus, cfg=cfg)
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out, format="PNG")
    print(f"regions={len(page_overlay.regions)} dpi_scale={page_overlay.dpi_scale:.4f} out={out}")
    return 0


def cmd_select(args: argparse.Namespace, cfg: EngineConfig) -> int:
    session, _ = _load_session(args, cfg)
    notification = session.synchronizer.activate_from_list(_content_id_arg(args.content_id), args.page)
    highlighted = session.content_list.highlighted
    print(f"content_id={notification.content_id}")
    print(f"page={notification.page}")
    print(f"viewer_page={session.viewer.current_page}")
    print(f"list_position={session.content_list.scroll_to if highlighted is not None else 'none'}")
    return 0


def cmd_decode_cell(args: argparse.Namespace, cfg: EngineConfig) -> int:
    identity = cell_codec.decode(args.token)
    if identity is None:
        print("cell=none")
        return 1
    print(f"table_id={identity.table_id}")
    print(
        f"row_index={identity.row_index} col_index={identity.col_index} "
        f"row={identity.row} row_span={identity.row_span} col={identity.col} col_span={identity.col_span}"
    )
    return 0


COMMANDS = {
    "summary": cmd_summary,
    "locate": cmd_locate,
    "overlay": cmd_overlay,
    "select": cmd_select,
    "decode-cell": cmd_decode_cell,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except Exception as e:
        print(f"config_failed: {e}", file=sys.stderr)
        return 1

    configure_logging(
        args.log_level or str(cfg.logging.get("level", "INFO")),
        json=bool(cfg.logging.get("json", True)),
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)
    try:
        return handler(args, cfg)
    except Exception as e:
        print(f"{args.command}_failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
