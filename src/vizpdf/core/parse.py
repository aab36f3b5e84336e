"""File discovery and parsing of supported inputs into ParsedDocument"""

import html
import io
import re
import zipfile
from pathlib import Path
from typing import Any

import docx
import pypdfium2 as pdfium
import yaml
from docx.opc.exceptions import PackageNotFoundError
from markdown_it import MarkdownIt

from vizpdf.core.errors import ParseFailure
from vizpdf.core.models import DocumentKind, ParsedDocument
from vizpdf.core.utils.hashing import sha256


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
FIRST_HEADING_RE = re.compile(r'^[ ]{0,3}#[ \t]+(.+?)[ \t#]*$', re.MULTILINE)

MD_EXTENSIONS = {'.md', '.markdown', '.mdx'}
SUPPORTED_EXTENSIONS = MD_EXTENSIONS | {'.txt', '.pdf', '.docx'}


def _make_parser(preset: str = 'commonmark') -> MarkdownIt:
    return MarkdownIt(preset, options_update={"linkify": False, "html": False})


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ParseFailure(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ParseFailure(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


def _decode(data: bytes) -> str:
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise ParseFailure(f"File is not valid UTF-8: {e}") from e


def _parse_markdown(data: bytes) -> ParsedDocument:
    raw = _decode(data)
    frontmatter, body = _strip_frontmatter(raw)
    metadata: dict[str, Any] = {"frontmatter": frontmatter}
    title = frontmatter.get('title')
    if not title:
        m = FIRST_HEADING_RE.search(body)
        title = m.group(1) if m else None
    if title:
        metadata["title"] = str(title)
    return ParsedDocument(
        kind=DocumentKind.markdown,
        raw_text=body,
        styled_markup=_make_parser().render(body),
        source_metadata=metadata,
    )


def _parse_text(data: bytes) -> ParsedDocument:
    raw = _decode(data)
    return ParsedDocument(
        kind=DocumentKind.plain_text,
        raw_text=raw,
        styled_markup=f"<pre>{html.escape(raw)}</pre>",
    )


def _parse_pdf(data: bytes) -> ParsedDocument:
    try:
        pdf = pdfium.PdfDocument(data)
    except pdfium.PdfiumError as e:
        raise ParseFailure(f"Could not open PDF: {e}") from e
    pages = []
    try:
        for page_index in range(len(pdf)):
            page = pdf[page_index]
            text_page = None
            try:
                text_page = page.get_textpage()
                pages.append(text_page.get_text_range().replace('\r\n', '\n').strip())
            finally:
                if text_page is not None:
                    text_page.close()
                page.close()
        page_count = len(pdf)
    except pdfium.PdfiumError as e:
        raise ParseFailure(f"Could not read PDF text: {e}") from e
    finally:
        pdf.close()
    return ParsedDocument(
        kind=DocumentKind.rich_text,
        raw_text="\n\n".join(p for p in pages if p),
        source_metadata={"page_count": page_count, "source": "pdf"},
    )


def _parse_docx(data: bytes) -> ParsedDocument:
    try:
        document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ParseFailure(f"Could not open DOCX: {e}") from e
    paragraphs = [p.text for p in document.paragraphs]
    metadata: dict[str, Any] = {"source": "docx"}
    title = document.core_properties.title
    if title:
        metadata["title"] = title
    return ParsedDocument(
        kind=DocumentKind.rich_text,
        raw_text="\n\n".join(p for p in paragraphs if p.strip()),
        source_metadata=metadata,
    )


_PARSERS = {
    '.md': _parse_markdown,
    '.markdown': _parse_markdown,
    '.mdx': _parse_markdown,
    '.txt': _parse_text,
    '.pdf': _parse_pdf,
    '.docx': _parse_docx,
}


def parse_bytes(data: bytes, extension: str) -> ParsedDocument:
    """Parse file content by extension (with or without the leading dot)."""
    ext = extension.lower()
    if not ext.startswith('.'):
        ext = f'.{ext}'
    parser = _PARSERS.get(ext)
    if parser is None:
        raise ParseFailure(f"Unsupported file type: {ext or '(none)'}")
    return parser(data)


def parse_file(path: Path) -> ParsedDocument:
    """Parse a single file; the result's metadata records its name and content hash."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ParseFailure(f"Could not read {path}: {e}") from e
    parsed = parse_bytes(data, path.suffix)
    metadata = {**parsed.source_metadata, "filename": path.name, "hash": sha256(data)}
    return parsed.model_copy(update={"source_metadata": metadata})


def discover_files(path: Path) -> list[Path]:
    """Return sorted supported files under path, or [path] if a single supported file."""
    if path.is_file():
        return [path] if path.suffix.lower() in SUPPORTED_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS)
