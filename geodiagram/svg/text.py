"""Deterministic text helpers used when emitting SVG markup."""

from __future__ import annotations

import math
from typing import List, Optional, Union

from ..theme import CHAR_WIDTH_RATIO

Number = Union[int, float]

_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}


def escape_xml(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def format_number(value: Number) -> str:
    """Render ``value`` with at most four decimals and no trailing zeros."""

    if isinstance(value, bool):
        raise ValueError("Booleans are not valid SVG numbers")
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        raise ValueError("Cannot format non-finite float for SVG output")
    formatted = f"{value:.4f}".rstrip("0").rstrip(".")
    if formatted in ("", "-0"):
        return "0"
    return formatted


def estimate_text_width(text: str, font_px: float) -> float:
    """Character-count width estimate; no font metrics are consulted."""

    return len(text) * font_px * CHAR_WIDTH_RATIO


def wrap_text(text: str, max_width: Optional[float], font_px: float) -> List[str]:
    """Split ``text`` on explicit newlines, then greedily wrap words to ``max_width``."""

    paragraphs = text.split("\n")
    if max_width is None:
        return paragraphs

    lines: List[str] = []
    for paragraph in paragraphs:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if estimate_text_width(candidate, font_px) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines
