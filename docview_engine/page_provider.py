from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image

from .geometry import normalize_rotation


@dataclass
class PdfPageProvider:
    """Page sizes and rasters for a PDF, standing in for the browser renderer.

    Sizes at zoom 1 are in PDF points, which the viewer draws 1:1 as CSS pixels.
    """
    pdf_path: str | Path
    _doc: Any = field(default=None, init=False, repr=False)

    def _open(self) -> Any:
        if self._doc is None:
            try:
                import fitz  # PyMuPDF
            except Exception as e:  # pragma: no cover
                raise RuntimeError("PyMuPDF is required to read PDFs. Install pymupdf.") from e
            self._doc = fitz.open(Path(self.pdf_path))
        return self._doc

    @property
    def page_count(self) -> int:
        return int(self._open().page_count)

    def _page(self, page_number: int) -> Any:
        doc = self._open()
        if not 1 <= page_number <= doc.page_count:
            raise ValueError(f"page {page_number} out of range 1..{doc.page_count}")
        return doc.load_page(page_number - 1)

    def page_size(self, page_number: int) -> tuple[float, float]:
        rect = self._page(page_number).rect
        return float(rect.width), float(rect.height)

    def render(self, page_number: int, *, zoom: float = 1.0, rotation: int = 0) -> Image.Image:
        """Rasterize one page at zoom, rotated the same way the overlay quads are."""
        import fitz  # PyMuPDF

        page = self._page(page_number)
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        img = Image.open(BytesIO(pix.tobytes("png"))).convert("RGB")
        r = normalize_rotation(rotation)
        if r:
            # PIL turns counter-clockwise, matching rotate_point's quarter turns.
            img = img.rotate(r, expand=True)
        return img

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None
