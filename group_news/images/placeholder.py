"""Deterministic placeholder images encoded as data URIs."""

from __future__ import annotations

import base64
import hashlib
from html import escape
import textwrap

_MAX_LINES = 3
_LINE_CHARS = 36


def placeholder_image(label: str, width: int = 1200, height: int = 630) -> str:
    """Render a labeled SVG card and return it as a base64 data URI.

    The background hue is derived from the label's SHA-256 digest, so the
    same headline always yields the same image.
    """
    text = " ".join(label.split()) or "News"
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    hue = int(digest[:6], 16) % 360
    wrapped = textwrap.wrap(text, _LINE_CHARS)
    lines = wrapped[:_MAX_LINES]
    if len(wrapped) > _MAX_LINES:
        lines[-1] = lines[-1].rstrip(".") + "..."

    font_size = max(24, height // 12)
    line_height = int(font_size * 1.3)
    first_y = height // 2 - (len(lines) - 1) * line_height // 2
    tspans = "".join(
        f'<tspan x="50%" y="{first_y + idx * line_height}">{escape(line)}</tspan>'
        for idx, line in enumerate(lines)
    )
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">'
        '<defs><linearGradient id="bg" x1="0" y1="0" x2="1" y2="1">'
        f'<stop offset="0%" stop-color="hsl({hue},55%,35%)"/>'
        f'<stop offset="100%" stop-color="hsl({(hue + 40) % 360},60%,20%)"/>'
        "</linearGradient></defs>"
        f'<rect width="{width}" height="{height}" fill="url(#bg)"/>'
        f'<text x="50%" y="{height // 8}" fill="#ffffff" fill-opacity="0.7" '
        f'font-family="Helvetica, Arial, sans-serif" font-size="{font_size // 2}" '
        'text-anchor="middle">AI News</text>'
        f'<text fill="#ffffff" font-family="Helvetica, Arial, sans-serif" font-size="{font_size}" '
        f'font-weight="bold" text-anchor="middle" dominant-baseline="middle">{tspans}</text>'
        "</svg>"
    )
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
