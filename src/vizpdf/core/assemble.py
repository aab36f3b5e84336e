"""Splice rendered images into the document text and build printable markup"""

import base64
import html
import logging
import re
from string import Template
from typing import Optional

from vizpdf.core.errors import AssemblyError, ValidationError
from vizpdf.core.leaks import PLACEHOLDER_MARKER, count_markers
from vizpdf.core.models import AssembledDocument, ParsedDocument, RenderedBlock
from vizpdf.core.utils.hashing import sha256


logger = logging.getLogger(__name__)

_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_HEADING_LINE_RE = re.compile(r"^[ ]{0,3}(#{1,6})[ \t]+(.+?)[ \t#]*$")

_DOCUMENT = Template("""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>$title</title>
  <style>
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
      line-height: 1.6;
      max-width: 800px;
      margin: 40px auto;
      padding: 20px;
      color: #333;
    }
    img {
      max-width: 100%;
      height: auto;
      display: block;
      margin: 20px 0;
      border: 1px solid #ddd;
      border-radius: 4px;
      padding: 5px;
      background: white;
    }
    h1, h2, h3, h4, h5, h6 {
      margin-top: 24px;
      margin-bottom: 16px;
      font-weight: 600;
      line-height: 1.25;
    }
    p { margin-bottom: 16px; white-space: pre-wrap; word-wrap: break-word; }
  </style>
</head>
<body>
$body
</body>
</html>
""")


def placeholder_nonce(raw_text: str) -> str:
    return sha256(raw_text)[:8]


def placeholder_token(nonce: str, ordinal: int) -> str:
    return f"[[{PLACEHOLDER_MARKER}:{nonce}:{ordinal}]]"


def placeholder_re(nonce: str) -> re.Pattern:
    return re.compile(r"\[\[" + PLACEHOLDER_MARKER + ":" + re.escape(nonce) + r":(\d+)\]\]")


def _check_spans(text: str, rendered: list[RenderedBlock]) -> None:
    """Blocks must lie inside text, ascend by start offset and not overlap."""
    prev: Optional[RenderedBlock] = None
    for i, block in enumerate(rendered):
        if block.end_offset > len(text):
            raise AssemblyError(
                f"Block {i} span [{block.start_offset}, {block.end_offset}) exceeds text length {len(text)}"
            )
        if prev is not None:
            if block.start_offset < prev.start_offset:
                raise AssemblyError(f"Block {i} is out of order (offset {block.start_offset} < {prev.start_offset})")
            if block.start_offset < prev.end_offset:
                raise AssemblyError(f"Block {i} overlaps block {i - 1}")
        prev = block


def splice(text: str, rendered: list[RenderedBlock], nonce: str) -> str:
    """Replace each rendered span with its placeholder paragraph, highest offset first.

    Offsets refer to the unmodified text, so working from the end keeps the
    remaining spans valid. Failed blocks are left as they are.
    """
    indexed = sorted(enumerate(rendered), key=lambda pair: pair[1].start_offset, reverse=True)
    for ordinal, block in indexed:
        if not block.ok:
            continue
        token = placeholder_token(nonce, ordinal)
        text = f"{text[:block.start_offset]}\n\n{token}\n\n{text[block.end_offset:]}"
    return text


def _image_element(block: RenderedBlock) -> str:
    encoded = base64.b64encode(block.image.data).decode("ascii")
    return (
        f'  <img src="data:image/{block.image.format};base64,{encoded}" '
        f'alt="{block.dialect.value} diagram" width="{block.image.width}">'
    )


def _paragraph_elements(paragraph: str) -> list[str]:
    """Heading lines become <hN>; runs of other lines become one <p> joined by <br>."""
    elements: list[str] = []
    run: list[str] = []

    def _flush():
        if run:
            elements.append("  <p>" + "<br>".join(html.escape(line) for line in run) + "</p>")
            run.clear()

    for line in paragraph.split("\n"):
        line = line.rstrip("\r")
        m = _HEADING_LINE_RE.match(line)
        if m:
            _flush()
            level = len(m.group(1))
            elements.append(f"  <h{level}>{html.escape(m.group(2))}</h{level}>")
        else:
            run.append(line)
    _flush()
    return elements


def to_markup(text: str, rendered: list[RenderedBlock], nonce: str, title: str = "Document") -> str:
    """Build a self-contained HTML document from spliced text."""
    token_re = placeholder_re(nonce)
    body: list[str] = []
    for paragraph in _PARAGRAPH_SPLIT_RE.split(text):
        if not paragraph.strip():
            continue
        m = token_re.fullmatch(paragraph.strip())
        if m:
            ordinal = int(m.group(1))
            if ordinal >= len(rendered) or not rendered[ordinal].ok:
                raise AssemblyError(f"Placeholder {ordinal} has no rendered image")
            body.append(_image_element(rendered[ordinal]))
            continue
        body.extend(_paragraph_elements(paragraph.strip("\n")))
    return _DOCUMENT.substitute(title=html.escape(title), body="\n".join(body))


def assemble(document: ParsedDocument, rendered: list[RenderedBlock]) -> AssembledDocument:
    """Splice rendered blocks into document.raw_text and derive the printable markup."""
    rendered = list(rendered)
    _check_spans(document.raw_text, rendered)

    nonce = placeholder_nonce(document.raw_text)
    text = splice(document.raw_text, rendered, nonce)
    title = str(document.source_metadata.get("title") or "Document")
    markup = to_markup(text, rendered, nonce, title=title)

    rendered_count = sum(1 for b in rendered if b.ok)
    logger.info("Assembled document with %d/%d image(s)", rendered_count, len(rendered))
    metadata = {
        **document.source_metadata,
        "kind": document.kind.value,
        "placeholder_nonce": nonce,
        "visualizations_rendered": rendered_count,
    }
    return AssembledDocument(text=text, markup=markup, blocks=tuple(rendered), metadata=metadata)


def validate(assembled: AssembledDocument) -> bool:
    """Best-effort checks on an assembled document. Only empty markup is fatal."""
    if not assembled.markup.strip():
        raise ValidationError("Assembled document has no markup")
    if not any(b.ok for b in assembled.blocks):
        logger.warning("No rendered blocks in assembled document")
    markers = count_markers(assembled.text)
    if markers:
        logger.warning("Diagram source still present in assembled text: %s", ", ".join(sorted(markers)))
    return True


def assembly_statistics(assembled: AssembledDocument) -> dict:
    rendered = sum(1 for b in assembled.blocks if b.ok)
    return {
        "total_blocks": len(assembled.blocks),
        "rendered": rendered,
        "failed": len(assembled.blocks) - rendered,
        "markup_length": len(assembled.markup),
    }
