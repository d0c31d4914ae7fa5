"""HTML page layout for the web interface."""

from __future__ import annotations

_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "'": "&#39;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&#34;",
    }
)

_HEAD = (
    '<!doctype html><html lang="en"><head><meta charset="UTF-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
    "<title>"
)

_AFTER_TITLE = (
    " - secretly</title>"
    '<script src="/static/js/app.js" defer></script>'
    "</head>"
    '<body class="bg-code-bg text-code-fg min-h-screen">'
    '<nav class="bg-code-bg border-b border-gray-800">'
    '<div class="max-w-7xl mx-auto px-4"><div class="flex justify-between h-16">'
    '<div class="flex"><div class="flex-shrink-0 flex items-center">'
    '<span class="text-xl font-bold text-code-accent">'
    '<i class="fas fa-key mr-2"></i>secretly</span>'
    "</div></div></div></div></nav>"
    '<main class="max-w-7xl mx-auto py-6 sm:px-6 lg:px-8">'
)

_TAIL = "</main></body></html>"


def _escape(text: str) -> str:
    return text.translate(_ESCAPES)


def render_layout(title: str, content: str) -> str:
    """Wrap already-rendered *content* in the page layout.

    The title is HTML-escaped; the content is inserted as is.
    """
    return f"{_HEAD}{_escape(title)}{_AFTER_TITLE}{content}{_TAIL}"