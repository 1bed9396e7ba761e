"""Neutralize untrusted article text before it is embedded in LLM prompts.

Feed items and user submissions are third-party text. They are never rejected
(an article still needs a classification), but instruction-like phrases,
code fences and control characters are removed and the length is capped.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

REDACTED_MARKER = "[removed]"

_CODE_BLOCK_PATTERN = re.compile(r"```.*?```", re.DOTALL)
_CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_INJECTION_PATTERNS = [
    re.compile(r"ignore (all|previous|prior|the above) instructions", re.IGNORECASE),
    re.compile(r"disregard (all|previous|prior) (instructions|prompts)", re.IGNORECASE),
    re.compile(r"system prompt", re.IGNORECASE),
    re.compile(r"developer message", re.IGNORECASE),
    re.compile(r"jailbreak", re.IGNORECASE),
]


def neutralize_untrusted_text(text: str, max_length: int | None = None) -> str:
    """Return ``text`` with control characters, code blocks and injection phrases removed."""
    cleaned = _CONTROL_CHARS_PATTERN.sub(" ", text)
    cleaned = _CODE_BLOCK_PATTERN.sub(" ", cleaned)

    redactions = 0
    for pattern in _INJECTION_PATTERNS:
        cleaned, count = pattern.subn(REDACTED_MARKER, cleaned)
        redactions += count

    cleaned = " ".join(cleaned.split())
    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    if redactions:
        logger.info(
            "Redacted instruction-like phrases from untrusted text",
            extra={"redactions": redactions, "original_length": len(text)},
        )
    return cleaned
