"""Compose the detection conventions into one ordered, non-overlapping block list"""

import logging
from collections import Counter
from typing import Iterable

from vizpdf.core.detect.fences import scan_backtick_fences, scan_dash_fences, scan_directives
from vizpdf.core.detect.keywords import MERMAID_KEYWORDS, MIN_BLOCK_LENGTH, scan_keyword_blocks
from vizpdf.core.models import CodeBlock, Dialect


logger = logging.getLogger(__name__)

_TRIGGERS = ("```", "----", "@startuml") + tuple(k.lower() for k in MERMAID_KEYWORDS)


def _overlaps(a: CodeBlock, b: CodeBlock) -> bool:
    return a.start_offset < b.end_offset and b.start_offset < a.end_offset


def merge_candidates(passes: Iterable[list[CodeBlock]]) -> list[CodeBlock]:
    """Accept candidates pass by pass, dropping any that intersect an accepted span.

    Earlier passes win. The result is sorted by start_offset; the sort is
    stable so discovery order survives for equal starts.
    """
    accepted: list[CodeBlock] = []
    for candidates in passes:
        for c in candidates:
            if any(_overlaps(c, a) for a in accepted):
                logger.debug("Dropping overlapping %s candidate at %d", c.dialect.value, c.start_offset)
                continue
            accepted.append(c)
    return sorted(accepted, key=lambda b: b.start_offset)


def detect(text: str, min_block_length: int = MIN_BLOCK_LENGTH) -> list[CodeBlock]:
    """Return every diagram block in text, ordered by offset. Never raises; no blocks -> []."""
    blocks = merge_candidates([
        scan_backtick_fences(text),
        scan_dash_fences(text),
        scan_directives(text),
        scan_keyword_blocks(text, min_block_length),
    ])
    logger.debug("Detected %d block(s) in %d chars", len(blocks), len(text))
    return blocks


def contains_any_block(text: str, min_block_length: int = MIN_BLOCK_LENGTH) -> bool:
    """Cheap probe that agrees with detect(): skips the scan when no trigger substring is present."""
    lowered = text.lower()
    if not any(t in lowered for t in _TRIGGERS):
        return False
    return bool(detect(text, min_block_length))


def present_dialects(text: str, min_block_length: int = MIN_BLOCK_LENGTH) -> set[Dialect]:
    return {b.dialect for b in detect(text, min_block_length)}


def is_valid_block(block: CodeBlock) -> bool:
    """A block is renderable when its source is non-blank and its dialect is known."""
    if not block.source_code.strip():
        logger.warning("Empty code block detected (%s)", block.dialect.value)
        return False
    return block.dialect in set(Dialect)


def detector_statistics(blocks: list[CodeBlock]) -> dict:
    counts = Counter(b.dialect.value for b in blocks)
    return {"total": len(blocks), "by_dialect": dict(counts)}
