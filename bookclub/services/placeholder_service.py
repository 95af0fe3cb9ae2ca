"""SVG placeholder covers for books with no image at all."""
from __future__ import annotations

import hashlib
from html import escape

DEFAULT_TITLE = "Unknown Title"
DEFAULT_AUTHOR = "Unknown Author"
MAX_LABEL_CHARS = 30
CACHE_CONTROL = "public, max-age=31536000"

_SVG_TEMPLATE = """<svg xmlns="http://www.w3.org/2000/svg" width="200" height="300" viewBox="0 0 200 300">
  <rect width="200" height="300" fill="{background}" />
  <rect width="180" height="280" x="10" y="10" fill="white" fill-opacity="0.8" rx="5" />
  <text x="100" y="30" font-family="Arial, sans-serif" font-size="14" text-anchor="middle" fill="#333">Book Cover</text>
  <text x="100" y="150" font-family="Arial, sans-serif" font-size="16" font-weight="bold" text-anchor="middle" fill="#333">{title}</text>
  <text x="100" y="180" font-family="Arial, sans-serif" font-size="14" text-anchor="middle" fill="#555">{author}</text>
</svg>"""


def pastel_color(seed: str) -> str:
    """rgb() colour with every channel in 100..255, stable for a given seed."""
    digest = hashlib.md5(seed.encode("utf-8")).digest()
    r, g, b = (byte % 156 + 100 for byte in digest[:3])
    return f"rgb({r},{g},{b})"


def _label(value: str) -> str:
    return escape(value.replace("<", "").replace(">", "")[:MAX_LABEL_CHARS])


def render_placeholder_svg(title: str | None, author: str | None) -> str:
    title = title or DEFAULT_TITLE
    author = author or DEFAULT_AUTHOR
    return _SVG_TEMPLATE.format(
        background=pastel_color(f"{title}-{author}"),
        title=_label(title),
        author=_label(author),
    )


__all__ = ["DEFAULT_TITLE", "DEFAULT_AUTHOR", "CACHE_CONTROL", "pastel_color", "render_placeholder_svg"]
