"""Textual markers of diagram source, used to detect source leaking into output"""

import re


PLACEHOLDER_MARKER = "IMAGE_PLACEHOLDER"

SOURCE_MARKERS: dict[str, re.Pattern] = {
    "mermaid-fence":  re.compile(r"```\s*mermaid", re.IGNORECASE),
    "plantuml-fence": re.compile(r"```\s*(?:plantuml|puml)", re.IGNORECASE),
    "startuml":       re.compile(r"@startuml", re.IGNORECASE),
    "enduml":         re.compile(r"@enduml", re.IGNORECASE),
    "mermaid-header": re.compile(
        r"\b(?:sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram|gitGraph)\b"
        r"|\b(?:flowchart|graph)\s+(?:TD|TB|BT|RL|LR)\b"
    ),
}


def _normalize(text: str) -> str:
    return " ".join(text.split())


def count_markers(text: str) -> dict[str, int]:
    """Occurrences of each source marker in whitespace-normalized text; zero counts omitted."""
    flat = _normalize(text)
    counts = {name: len(p.findall(flat)) for name, p in SOURCE_MARKERS.items()}
    return {name: n for name, n in counts.items() if n}


def excess_markers(candidate: str, allowed: str = "") -> dict[str, int]:
    """Markers found in candidate beyond what allowed legitimately carries."""
    found, expected = count_markers(candidate), count_markers(allowed)
    return {
        name: n - expected.get(name, 0)
        for name, n in found.items()
        if n > expected.get(name, 0)
    }
