"""Explicit-fence scanners: backtick fences, dash-rule fences and @startuml directives"""

import re

from vizpdf.core.detect.keywords import HEADER_RE
from vizpdf.core.detect.lines import (
    BACKTICK_FENCE_RE,
    DASH_RULE_RE,
    DIRECTIVE_CLOSE_RE,
    DIRECTIVE_OPEN_RE,
    Line,
    split_lines,
)
from vizpdf.core.models import CodeBlock, Dialect


FENCE_TAGS: dict[str, Dialect] = {
    "mermaid":  Dialect.mermaid,
    "plantuml": Dialect.plantuml,
    "puml":     Dialect.plantuml,
}

_BACKTICK_OPEN_RE = re.compile(r"^[ \t]{0,3}```[ \t]*(mermaid|plantuml|puml)\b", re.IGNORECASE)

SEEKING_START, IN_BODY, SEEKING_HEADER = range(3)


def _block(dialect: Dialect, body: list[Line], start: int, end: int) -> CodeBlock | None:
    source = "\n".join(line.text for line in body).strip()
    if not source:
        return None
    return CodeBlock(dialect=dialect, source_code=source, start_offset=start, end_offset=end)


def scan_backtick_fences(text: str) -> list[CodeBlock]:
    """```mermaid / ```plantuml fences; the span runs from the opening to the closing backticks."""
    blocks: list[CodeBlock] = []
    state = SEEKING_START
    dialect, start, body = None, 0, []

    for line in split_lines(text):
        if state == SEEKING_START:
            m = _BACKTICK_OPEN_RE.match(line.text)
            if m:
                dialect = FENCE_TAGS[m.group(1).lower()]
                start = line.start + line.text.index("```")
                body = []
                state = IN_BODY
        elif BACKTICK_FENCE_RE.match(line.text):
            end = line.start + line.text.index("```") + 3
            if block := _block(dialect, body, start, end):
                blocks.append(block)
            state = SEEKING_START
        else:
            body.append(line)
    return blocks


def scan_dash_fences(text: str) -> list[CodeBlock]:
    """Mermaid between two ---- rules, where the first line inside names the diagram type."""
    blocks: list[CodeBlock] = []
    state = SEEKING_START
    start, body = 0, []

    for line in split_lines(text):
        is_rule = bool(DASH_RULE_RE.match(line.text))
        if state == SEEKING_START:
            if is_rule:
                start = line.start
                state = SEEKING_HEADER
        elif state == SEEKING_HEADER:
            if is_rule:
                start = line.start
            elif HEADER_RE.match(line.text):
                body = [line]
                state = IN_BODY
            else:
                state = SEEKING_START
        elif is_rule:
            if block := _block(Dialect.mermaid, body, start, line.end):
                blocks.append(block)
            state = SEEKING_START
        else:
            body.append(line)
    return blocks


def scan_directives(text: str) -> list[CodeBlock]:
    """@startuml ... @enduml; source_code is the interior without the directives."""
    blocks: list[CodeBlock] = []
    state = SEEKING_START
    start, body = 0, []

    for line in split_lines(text):
        if state == SEEKING_START:
            m = DIRECTIVE_OPEN_RE.match(line.text)
            if m:
                start = line.start + line.text.index("@")
                body = []
                state = IN_BODY
            continue
        close = DIRECTIVE_CLOSE_RE.search(line.text)
        if close:
            prefix = line.text[:close.start()]
            if prefix.strip():
                body.append(Line(line.start, prefix))
            if block := _block(Dialect.plantuml, body, start, line.start + close.end()):
                blocks.append(block)
            state = SEEKING_START
        else:
            body.append(line)
    return blocks
