"""Print assembled markup to PDF and verify the result"""

import asyncio
import logging
from typing import Callable, Optional

import pypdfium2 as pdfium
from playwright.async_api import Error as PlaywrightError

from vizpdf.config import Settings
from vizpdf.core.errors import ArtifactValidationError, GenerationError, RenderError
from vizpdf.core.leaks import PLACEHOLDER_MARKER, excess_markers
from vizpdf.core.models import Artifact, ArtifactStatistics, AssembledDocument, ValidationResult
from vizpdf.core.render.session import EngineSession


logger = logging.getLogger(__name__)

TextExtractor = Callable[[bytes], str]


def extract_text(pdf_bytes: bytes) -> str:
    """Text layer of every page, pages separated by newlines."""
    pdf = pdfium.PdfDocument(pdf_bytes)
    pages = []
    try:
        for page_index in range(len(pdf)):
            page = pdf[page_index]
            text_page = None
            try:
                text_page = page.get_textpage()
                pages.append(text_page.get_text_range())
            finally:
                if text_page is not None:
                    text_page.close()
                page.close()
    finally:
        pdf.close()
    return "\n".join(pages).strip()


def count_pages(pdf_bytes: bytes) -> int:
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        return len(pdf)
    finally:
        pdf.close()


class ArtifactGenerator:
    """Produces and checks the final PDF using the shared EngineSession."""

    def __init__(self, session: EngineSession, settings: Settings, text_extractor: Optional[TextExtractor] = None):
        self._session = session
        self._settings = settings
        self._extract = text_extractor or extract_text

    def _pdf_options(self) -> dict:
        margin = self._settings.page_margin
        return {
            "format": self._settings.page_format,
            "print_background": self._settings.print_background,
            "margin": {"top": margin, "right": margin, "bottom": margin, "left": margin},
        }

    async def generate(self, assembled: AssembledDocument) -> Artifact:
        logger.info("Generating PDF")
        timeout = self._settings.render_timeout_ms
        try:
            async with self._session.page() as page:
                await page.set_content(assembled.markup, wait_until="networkidle", timeout=timeout)
                await page.wait_for_timeout(self._settings.settle_delay_ms)
                # page.pdf() has no timeout of its own
                data = await asyncio.wait_for(page.pdf(**self._pdf_options()), timeout / 1000)
        except asyncio.TimeoutError as e:
            raise GenerationError(f"PDF generation timed out after {timeout} ms") from e
        except RenderError as e:
            raise GenerationError(f"PDF generation failed: {e.message}") from e
        except PlaywrightError as e:
            raise GenerationError(f"PDF generation failed: {e.message}") from e

        if not data:
            raise GenerationError("PDF generation produced no bytes")
        stats = self.get_statistics(data)
        logger.info("Generated PDF: %d page(s), %d bytes", stats.page_count, stats.byte_size)
        return Artifact(data=data, page_count=stats.page_count, byte_size=stats.byte_size)

    def validate(self, artifact_bytes: bytes, retained_text: str) -> ValidationResult:
        """Authoritative checks on the PDF text layer.

        retained_text is the text the artifact is expected to carry; diagram
        markers it already contains (failed blocks) are not counted as leaks.
        """
        try:
            extracted = self._extract(artifact_bytes)
        except pdfium.PdfiumError as e:
            raise ArtifactValidationError(f"Could not read generated PDF: {e}") from e

        if not extracted or not extracted.strip():
            raise ArtifactValidationError("Generated PDF contains no text")
        if PLACEHOLDER_MARKER in extracted:
            raise ArtifactValidationError("Generated PDF contains an image placeholder")
        leaked = excess_markers(extracted, retained_text)
        if leaked:
            found = ", ".join(f"{name} x{n}" for name, n in sorted(leaked.items()))
            raise ArtifactValidationError(f"Generated PDF contains diagram source: {found}")

        logger.debug("Validated PDF text layer (%d chars)", len(extracted))
        return ValidationResult(
            is_text_searchable=True,
            contains_leaked_source=False,
            extracted_length=len(extracted),
        )

    def get_statistics(self, artifact_bytes: bytes) -> ArtifactStatistics:
        """Size and page count; page_count is 0 when the PDF cannot be read."""
        try:
            page_count = count_pages(artifact_bytes)
        except (pdfium.PdfiumError, ValueError) as e:
            logger.warning("Could not count PDF pages: %s", e)
            page_count = 0
        size = len(artifact_bytes)
        return ArtifactStatistics(
            page_count=page_count,
            byte_size=size,
            byte_size_mb=round(size / (1024 * 1024), 2),
        )
