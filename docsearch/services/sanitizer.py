# =============================================================================
# Content Sanitizer — Text Cleaning Before Embedding
# =============================================================================
#
# Strips markdown syntax and non-ASCII noise from a section's content,
# collapses whitespace, and truncates to a character budget that
# approximates the embedding model's token limit.
#
# ORDER MATTERS. The steps below always run in this sequence so that the same
# input yields the same output:
#   1. Normalize line endings (\r\n, \r → \n)
#   2. Markdown links [text](url) → text
#   3. Remaining bracket references [text] → removed
#   4. Parenthetical content (…) → removed
#   5. Anything outside printable ASCII + \n → removed
#   6. Markdown formatting characters # * _ ` ~ → removed
#   7. Whitespace runs (newlines included) → single space
#   8. Trim
#   9. Truncate to max_length characters
#  10. Shorter than min_length → None (caller skips the row)
# =============================================================================

from __future__ import annotations

import logging
import re

from docsearch.config import settings

logger = logging.getLogger(__name__)

_MARKDOWN_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_BRACKET_REFERENCE = re.compile(r"\[[^\]]*\]")
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")
_MARKDOWN_FORMATTING = re.compile(r"[#*_`~]")
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Apply steps 1–8 (everything except truncation and the length check)."""
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _MARKDOWN_LINK.sub(r"\1", cleaned)
    cleaned = _BRACKET_REFERENCE.sub("", cleaned)
    cleaned = _PARENTHETICAL.sub("", cleaned)
    cleaned = _NON_PRINTABLE.sub("", cleaned)
    cleaned = _MARKDOWN_FORMATTING.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()


def sanitize_content(
    text: str | None,
    max_length: int | None = None,
    min_length: int | None = None,
) -> str | None:
    """
    Clean `text` for embedding.

    Args:
        text: Raw section content (markdown).
        max_length: Character cap. Defaults to settings.content_max_length.
        min_length: Minimum length after cleaning. Defaults to
            settings.content_min_length.

    Returns:
        The cleaned text, at most `max_length` characters and containing only
        printable ASCII, or None if the input is empty or the cleaned text is
        shorter than `min_length`.
    """
    if not text:
        return None

    _max = settings.content_max_length if max_length is None else max_length
    _min = settings.content_min_length if min_length is None else min_length

    cleaned = clean_text(text)

    if len(cleaned) > _max:
        logger.debug("Content truncated from %d to %d chars", len(cleaned), _max)
        cleaned = cleaned[:_max]

    if len(cleaned) < _min:
        return None
    return cleaned
