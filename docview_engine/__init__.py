"""Document viewer linkage engine.

Keeps a rendered document page and a structured content list in step:
- maps analysis-result region coordinates onto the rendered page
  (resolution, zoom, rotation)
- normalizes the analysis payload into pages of regions
- holds the one focused region and notifies both views on every change

Rendering, uploads and the analysis backend itself are out of scope.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
