from __future__ import annotations

from typing import Any

import pytest

PARAGRAPH_QUAD = [10, 10, 100, 10, 100, 30, 10, 30]
TABLE_QUAD = [10, 50, 210, 50, 210, 130, 10, 130]


def _cell(position: list[float], r: int, c: int, **extra: Any) -> dict[str, Any]:
    out = {
        "position": position,
        "row_index": r,
        "col_index": c,
        "row": r,
        "row_span": 1,
        "col": c,
        "col_span": 1,
    }
    out.update(extra)
    return out


@pytest.fixture
def structured_payload() -> dict[str, Any]:
    """Two pages in the structured shape: paragraph + table on page 1, title on page 2."""
    return {
        "pages": [
            {
                "page_id": 1,
                "width": 300,
                "height": 150,
                "angle": 0,
                "structured": [
                    {"id": 0, "type": "paragraph", "pos": PARAGRAPH_QUAD, "text": "First paragraph"},
                    {
                        "id": 1,
                        "type": "table",
                        "pos": TABLE_QUAD,
                        "text": "",
                        "cells": {
                            "cells": [
                                _cell([10, 50, 110, 50, 110, 90, 10, 90], 0, 0),
                                _cell([110, 50, 210, 50, 210, 90, 110, 90], 0, 1),
                                _cell([10, 90, 110, 90, 110, 130, 10, 130], 1, 0),
                                _cell([110, 90, 210, 90, 210, 130, 110, 130], 1, 1),
                            ]
                        },
                    },
                ],
            },
            {
                "page_id": 2,
                "width": 300,
                "height": 150,
                "structured": [
                    {"id": 0, "type": "title", "sub_type": "text_title", "pos": [20, 20, 200, 20, 200, 40, 20, 40], "text": "Chapter 2"},
                ],
            },
        ],
    }


@pytest.fixture
def single_paragraph_payload() -> dict[str, Any]:
    return {
        "pages": [
            {
                "page_id": 1,
                "width": 300,
                "height": 150,
                "rects": [
                    {"content_id": 0, "type": "paragraph", "position": PARAGRAPH_QUAD, "text": "Hello"},
                ],
            }
        ]
    }
