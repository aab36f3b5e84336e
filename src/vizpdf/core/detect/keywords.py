"""Keyword-delimited Mermaid detection: unfenced diagrams introduced by a header keyword.

The body of an unfenced diagram has no closing delimiter, so the scanner
keeps consuming lines until a structural boundary. Mermaid bodies may
contain blank lines (sequence diagrams, gantt sections), so a blank line
only ends the block when the next non-blank line does not look like
diagram syntax.
"""

import re

from vizpdf.core.detect.lines import (
    BACKTICK_FENCE_RE,
    Line,
    is_fence_line,
    is_heading_line,
    split_lines,
)
from vizpdf.core.models import CodeBlock, Dialect


MERMAID_KEYWORDS = (
    "flowchart", "graph", "sequenceDiagram", "classDiagram", "stateDiagram-v2",
    "stateDiagram", "erDiagram", "journey", "gantt", "pie", "gitGraph",
    "mindmap", "timeline",
)

# Ordinary English words: only accepted when the header line looks like a diagram header.
AMBIGUOUS_KEYWORDS = {"flowchart", "graph", "pie", "journey", "timeline"}
DIRECTIONS = {"TD", "TB", "BT", "RL", "LR"}
HEADER_TOKENS = {"title", "showData"}

INTERNAL_KEYWORDS = {
    "participant", "actor", "note", "Note", "loop", "alt", "else", "opt", "par",
    "and", "critical", "break", "end", "rect", "activate", "deactivate",
    "autonumber", "subgraph", "direction", "class", "classDef", "click",
    "style", "linkStyle", "state", "section", "title", "dateFormat",
    "axisFormat", "excludes", "todayMarker", "accTitle", "accDescr",
    "commit", "branch", "checkout", "merge", "root",
}

MIN_BLOCK_LENGTH = 11

HEADER_RE = re.compile(
    r"^[ ]{0,3}(" + "|".join(re.escape(k) for k in MERMAID_KEYWORDS) + r")(?=[\s;]|$)(.*)$"
)
_MARKER_RE = re.compile(r"^\s*(?:[-*+|>]|\d+[.)]\s|%%|<)")
_IDENT_RE = re.compile(r"^\s*[A-Za-z_][\w.-]*\s*(?:[\[({:;|<>]|[-=.<>]{2}|@\{)")
_QUOTED_LABEL_RE = re.compile(r'^\s*"[^"]*"\s*:')

SEEKING_START, IN_BODY, SEEKING_TERMINATOR = range(3)


def match_header(text: str) -> str | None:
    """Return the Mermaid keyword opening this line, or None if it is not a diagram header."""
    m = HEADER_RE.match(text)
    if not m:
        return None
    keyword, rest = m.group(1), m.group(2).strip().rstrip(";").strip()
    if keyword in AMBIGUOUS_KEYWORDS and not _plausible_header_rest(rest):
        return None
    return keyword


def _plausible_header_rest(rest: str) -> bool:
    if not rest:
        return True
    first = rest.split()[0]
    return first in DIRECTIONS or first in HEADER_TOKENS


def looks_like_continuation(line: Line) -> bool:
    """True if a line after a blank run still reads as diagram syntax."""
    text = line.text
    if line.indent >= 4 or text.startswith("\t"):
        return True
    if _MARKER_RE.match(text) or _IDENT_RE.match(text) or _QUOTED_LABEL_RE.match(text):
        return True
    first = text.strip().split(None, 1)[0].rstrip(":")
    return first in INTERNAL_KEYWORDS


def _is_boundary(text: str) -> bool:
    return is_heading_line(text) or is_fence_line(text) or match_header(text) is not None


def scan_keyword_blocks(text: str, min_length: int = MIN_BLOCK_LENGTH) -> list[CodeBlock]:
    """Find unfenced Mermaid diagrams; short bodies and fenced code samples are skipped."""
    lines = split_lines(text)
    blocks: list[CodeBlock] = []
    state = SEEKING_START
    in_fence = False
    header: Line | None = None
    last: Line | None = None

    def _finish() -> None:
        start = header.start + header.indent
        source = text[start:last.end].strip()
        if len(source) >= min_length:
            blocks.append(CodeBlock(
                dialect=Dialect.mermaid,
                source_code=source,
                start_offset=start,
                end_offset=last.end,
            ))

    i = 0
    while i < len(lines):
        line = lines[i]
        if state == SEEKING_START:
            if BACKTICK_FENCE_RE.match(line.text):
                in_fence = not in_fence
            elif not in_fence and match_header(line.text):
                header = last = line
                state = IN_BODY
            i += 1
        elif state == IN_BODY:
            if line.is_blank():
                state = SEEKING_TERMINATOR
                i += 1
            elif _is_boundary(line.text):
                _finish()
                state = SEEKING_START    # re-read this line as a possible new start
            else:
                last = line
                i += 1
        else:
            if line.is_blank():
                i += 1
            elif not _is_boundary(line.text) and looks_like_continuation(line):
                last = line
                state = IN_BODY
                i += 1
            else:
                _finish()
                state = SEEKING_START

    if state != SEEKING_START:
        _finish()
    return blocks
