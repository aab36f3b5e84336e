"""Line splitting with absolute offsets, shared by the detection scanners"""

import re
from dataclasses import dataclass


BACKTICK_FENCE_RE = re.compile(r"^[ \t]{0,3}```")
DASH_RULE_RE = re.compile(r"^[ \t]{0,3}-{4,}[ \t]*$")
DIRECTIVE_OPEN_RE = re.compile(r"^[ \t]*@startuml\b", re.IGNORECASE)
DIRECTIVE_CLOSE_RE = re.compile(r"@enduml\b", re.IGNORECASE)
HEADING_RE = re.compile(r"^[ ]{0,3}#{1,6}(?:[ \t]|$)")


@dataclass(frozen=True)
class Line:
    """One source line; start is its offset in the scanned text, text excludes the terminator."""
    start: int
    text: str

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def indent(self) -> int:
        return len(self.text) - len(self.text.lstrip(" \t"))

    def is_blank(self) -> bool:
        return not self.text.strip()


def split_lines(text: str) -> list[Line]:
    """Split text on LF (tolerating CRLF) keeping each line's absolute start offset."""
    lines: list[Line] = []
    pos = 0
    while pos < len(text):
        nl = text.find("\n", pos)
        stop = len(text) if nl == -1 else nl
        body = text[pos:stop]
        if body.endswith("\r"):
            body = body[:-1]
        lines.append(Line(pos, body))
        pos = stop + 1
    return lines


def is_fence_line(text: str) -> bool:
    """True for a delimiter line of any explicit-fence convention."""
    return bool(
        BACKTICK_FENCE_RE.match(text)
        or DASH_RULE_RE.match(text)
        or DIRECTIVE_OPEN_RE.match(text)
        or DIRECTIVE_CLOSE_RE.search(text)
    )


def is_heading_line(text: str) -> bool:
    return bool(HEADING_RE.match(text))
