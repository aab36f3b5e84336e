"""Pipeline orchestration: detect -> render -> assemble -> generate -> validate"""

import logging
import time
from pathlib import Path
from typing import Optional

from vizpdf.config import Settings
from vizpdf.core import assemble as assembler
from vizpdf.core.artifact import ArtifactGenerator, TextExtractor
from vizpdf.core.detect.detect import detect, detector_statistics
from vizpdf.core.errors import AllRendersFailed, NoBlocksDetected, PipelineError
from vizpdf.core.export import write_result
from vizpdf.core.models import (
    BlockFailure,
    ConversionResult,
    ConversionStatistics,
    ParsedDocument,
    PartialRenderFailure,
    RenderedBlock,
)
from vizpdf.core.parse import discover_files, parse_file
from vizpdf.core.render.renderer import BlockRenderer
from vizpdf.core.render.session import EngineSession, Launcher


logger = logging.getLogger(__name__)


def _failures(rendered: list[RenderedBlock]) -> list[BlockFailure]:
    return [
        BlockFailure(
            ordinal=i,
            dialect=b.dialect,
            start_offset=b.start_offset,
            kind=b.failure.kind,
            message=b.failure.message,
        )
        for i, b in enumerate(rendered)
        if not b.ok
    ]


async def process_document(
    parsed: ParsedDocument,
    renderer: BlockRenderer,
    generator: ArtifactGenerator,
    settings: Settings,
    ) -> ConversionResult:
    """Convert one parsed document into a validated PDF.

    Raises NoBlocksDetected before any rendering when the text has no diagrams,
    and AllRendersFailed when none of them render. Partial failures are
    reported on the result instead.
    """
    started = time.perf_counter()

    blocks = detect(parsed.raw_text, settings.min_block_length)
    if not blocks:
        raise NoBlocksDetected("No diagram code blocks found in document")
    stats = detector_statistics(blocks)
    logger.info("Detected %d block(s): %s", stats["total"], stats["by_dialect"])

    rendered = await renderer.render_batch(blocks)
    failures = _failures(rendered)
    rendered_count = len(rendered) - len(failures)
    if rendered_count == 0:
        kinds = sorted({f.kind.value for f in failures})
        logger.error("All %d block(s) failed to render (%s)", len(failures), ", ".join(kinds))
        raise AllRendersFailed(f"All {len(failures)} diagram(s) failed to render ({', '.join(kinds)})", failures)

    assembled = assembler.assemble(parsed, rendered)
    assembler.validate(assembled)

    artifact = await generator.generate(assembled)
    validation = generator.validate(artifact.data, assembled.text)
    artifact = artifact.model_copy(update={"validation": validation})
    artifact_stats = generator.get_statistics(artifact.data)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Converted document: %d/%d diagram(s) rendered, %d page(s), %d ms",
        rendered_count, len(blocks), artifact_stats.page_count, elapsed_ms,
    )
    return ConversionResult(
        artifact=artifact,
        statistics=ConversionStatistics(
            visualizations_found=len(blocks),
            visualizations_rendered=rendered_count,
            page_count=artifact_stats.page_count,
            byte_size=artifact_stats.byte_size,
            byte_size_mb=artifact_stats.byte_size_mb,
            processing_time_ms=elapsed_ms,
            is_text_searchable=validation.is_text_searchable,
        ),
        partial_failure=PartialRenderFailure(failures=failures) if failures else None,
    )


async def run_convert(
    path: str,
    settings: Settings,
    output_dir: Path,
    launcher: Optional[Launcher] = None,
    text_extractor: Optional[TextExtractor] = None,
    ) -> tuple[list[tuple[Path, Path, ConversionResult]], list[tuple[Path, PipelineError]]]:
    """Convert every supported file under path into output_dir.

    Returns (converted, failed): converted holds (source, pdf_path, result),
    failed holds (source, error) for documents whose pipeline stopped.
    One browser session serves all documents and is shut down on exit.
    """
    files = discover_files(Path(path))
    session = EngineSession(settings, launcher=launcher)
    renderer = BlockRenderer(session, settings)
    generator = ArtifactGenerator(session, settings, text_extractor=text_extractor)
    converted, failed = [], []
    try:
        for p in files:
            logger.info("Converting %s", p)
            try:
                parsed = parse_file(p)
                result = await process_document(parsed, renderer, generator, settings)
            except PipelineError as e:
                logger.error("Failed to convert %s at %s stage: %s", p, e.stage, e)
                failed.append((p, e))
                continue
            pdf_path, _ = write_result(result, p, output_dir)
            converted.append((p, pdf_path, result))
    finally:
        await renderer.cleanup()
    return converted, failed
