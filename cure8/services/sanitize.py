from __future__ import annotations

import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

_DROPPED_ELEMENTS = ("script", "style", "template", "iframe", "object")


def sanitize_text(value) -> str:
    """Plain text of ``value`` with every HTML element stripped."""
    if not isinstance(value, str) or not value:
        return ""
    if "<" not in value:
        return value.strip()
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(value, "lxml")
    for element in soup(list(_DROPPED_ELEMENTS)):
        element.decompose()
    return soup.get_text().strip()


def sanitize_optional(value) -> str | None:
    cleaned = sanitize_text(value)
    return cleaned or None
