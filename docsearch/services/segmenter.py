# =============================================================================
# Markdown Segmenter — Heading-Based Sections with a Token Cap
# =============================================================================
#
# Default implementation of `segment(text) -> sections`. The processor treats
# it as a black box; any callable with the same shape can replace it.
#
# ALGORITHM:
# 1. Walk the document line by line, tracking fenced code blocks (``` / ~~~)
#    so '#' lines inside code are not mistaken for headings.
# 2. Every ATX heading (# … ######) starts a new section. The heading line is
#    kept as the first line of its section so it is embedded with its body.
# 3. Text before the first heading forms its own section.
# 4. Whitespace-only sections are dropped.
# 5. A section longer than max_tokens (tiktoken cl100k_base) is split into
#    consecutive windows of max_tokens tokens.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import tiktoken

from docsearch.config import settings

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t#]*$")
_FENCE = re.compile(r"^ {0,3}(```|~~~)")


@dataclass
class MarkdownSection:
    """One section of a markdown document."""

    content: str
    heading: str | None = None  # Text of the heading that opened the section
    part: int = 0  # Index of the token window when a section was split


_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Lazily initialize and cache the tiktoken encoder."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("cl100k_base")
    return _encoder


def _split_by_headings(text: str) -> list[tuple[str | None, list[str]]]:
    blocks: list[tuple[str | None, list[str]]] = [(None, [])]
    fence: str | None = None

    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        fence_match = _FENCE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            blocks[-1][1].append(line)
            continue

        heading_match = _HEADING.match(line) if fence is None else None
        if heading_match:
            blocks.append(((heading_match.group(2) or "").strip() or None, [line]))
        else:
            blocks[-1][1].append(line)

    return blocks


def _split_by_tokens(content: str, max_tokens: int) -> list[str]:
    encoder = _get_encoder()
    tokens = encoder.encode(content)
    if len(tokens) <= max_tokens:
        return [content]
    windows = []
    for start in range(0, len(tokens), max_tokens):
        window = encoder.decode(tokens[start : start + max_tokens]).strip()
        if window:
            windows.append(window)
    return windows


def segment_markdown(text: str, max_tokens: int | None = None) -> list[MarkdownSection]:
    """
    Split a markdown document into sections.

    Args:
        text: Markdown source.
        max_tokens: Token cap per section. Defaults to settings.segment_max_tokens.

    Returns:
        Sections in document order. Empty input returns an empty list.
    """
    _max_tokens = max_tokens or settings.segment_max_tokens
    sections: list[MarkdownSection] = []

    for heading, lines in _split_by_headings(text):
        content = "\n".join(lines).strip()
        if not content:
            continue
        for part, window in enumerate(_split_by_tokens(content, _max_tokens)):
            sections.append(MarkdownSection(content=window, heading=heading, part=part))

    logger.debug("Segmented %d chars into %d sections", len(text), len(sections))
    return sections
