"""Text cleanup for feed items and other third-party content."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

_ENTITY_PATTERN = re.compile(r"&[^;\s]+;")
_FOOTER_PATTERNS = (
    re.compile(r"Continue reading.*$", re.IGNORECASE | re.DOTALL),
    re.compile(r"The post .* appeared first on.*$", re.IGNORECASE | re.DOTALL),
    re.compile(r"Read more.*$", re.IGNORECASE | re.DOTALL),
)
_BRACKET_ELLIPSIS_PATTERN = re.compile(r"\[(?:…|\.\.\.|â€¦)\]")
_DOTS_PATTERN = re.compile(r"\.{3,}")


def clean_text(text: str | None) -> str:
    """Collapse all whitespace runs to single spaces."""
    if not text:
        return ""
    return " ".join(text.split())


def strip_html(html: str | None) -> str:
    """Return the visible text of an HTML fragment, whitespace-normalized."""
    if not html:
        return ""
    if "<" not in html and "&" not in html:
        return clean_text(html)
    soup = BeautifulSoup(html, "html.parser")
    return clean_text(soup.get_text(separator=" "))


def first_image_src(html: str | None) -> str | None:
    """Return the ``src`` of the first ``<img>`` tag in an HTML fragment."""
    if not html or "<img" not in html.lower():
        return None
    soup = BeautifulSoup(html, "html.parser")
    for img in soup.find_all("img"):
        src = img.get("src")
        if isinstance(src, str) and src.strip():
            return src.strip()
    return None


def clean_content_description(description: str | None) -> str:
    """Strip markup, leftover entities and the usual "read more" feed footers."""
    if not description:
        return ""
    text = strip_html(description)
    text = _ENTITY_PATTERN.sub(" ", text)
    for pattern in _FOOTER_PATTERNS:
        text = pattern.sub("", text)
    text = _BRACKET_ELLIPSIS_PATTERN.sub("", text)
    text = _DOTS_PATTERN.sub("...", text)
    return clean_text(text)


def extract_clean_excerpt(text: str | None, max_length: int = 150) -> str:
    """Cleaned excerpt cut at a sentence end when possible, else at a word boundary."""
    cleaned = clean_content_description(text)
    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_sentence = truncated.rfind(".")
    if last_sentence > max_length * 0.6:
        return truncated[: last_sentence + 1]

    last_space = truncated.rfind(" ")
    if last_space > 0:
        return truncated[:last_space] + "..."
    return truncated + "..."
