"""
Printable renderings of token bytes for listings and error messages.
"""

import unicodedata


def _escape_char(c: str) -> str:
    # Cc, Cf, Cn, Co and Cs all share the leading "C"
    if unicodedata.category(c).startswith("C"):
        return f"\\u{ord(c):04x}"
    return c


def render_bytes(b: bytes, *, limit: int | None = None) -> str:
    """
    Decode token bytes for display.

    Partial UTF-8 characters, common inside a single token, become U+FFFD
    and control characters are escaped so each token stays on one line.

    :param b: Token bytes.
    :param limit: Truncate the rendering to this many characters, marking
        the cut with "...".
    """
    text = "".join(_escape_char(c) for c in b.decode("utf-8", errors="replace"))
    if limit is not None and len(text) > limit:
        return text[:limit] + "..."
    return text
