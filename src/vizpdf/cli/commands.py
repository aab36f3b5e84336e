"""CLI command implementations"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from vizpdf.config import Settings, load_config
from vizpdf.core.detect.detect import detect
from vizpdf.core.errors import AllRendersFailed, NoBlocksDetected, PipelineError
from vizpdf.core.parse import discover_files, parse_file
from vizpdf.core.pipeline import run_convert
from vizpdf.core.utils.log import configure_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    configure_logging(settings.log_level)
    return settings


def _describe(error: PipelineError) -> str:
    """One-line, actionable explanation of why a document was not converted."""
    if isinstance(error, NoBlocksDetected):
        return "no diagrams found (expected ```mermaid, ```plantuml or @startuml...@enduml blocks)"
    if isinstance(error, AllRendersFailed):
        kinds = sorted({f.kind.value for f in error.failures})
        return f"no diagram could be rendered ({', '.join(kinds)}); check the diagram syntax and network access"
    return f"{error.stage} failed: {error}"


def convert_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to convert")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    timeout: Annotated[Optional[int], typer.Option("--timeout", help="Render timeout per diagram, in ms")] = None,
    settle: Annotated[Optional[int], typer.Option("--settle", help="Delay before PDF capture, in ms")] = None,
    ):
    """Render embedded diagrams and write a searchable PDF per document."""
    settings = _settings(overrides={"output_dir": out, "render_timeout_ms": timeout, "settle_delay_ms": settle})
    if not discover_files(Path(path)):
        _fail(f"No supported documents found at {path}")
    output_dir = Path(settings.output_dir)

    converted, failed = asyncio.run(run_convert(path, settings, output_dir))

    for src, pdf_path, result in converted:
        stats = result.statistics
        typer.echo(
            f"  {src} -> {pdf_path} "
            f"({stats.visualizations_rendered}/{stats.visualizations_found} diagrams, {stats.page_count} page(s))"
        )
        if result.partial_failure:
            for f in result.partial_failure.failures:
                typer.echo(f"    block {f.ordinal} ({f.dialect.value}) not rendered: {f.kind.value}: {f.message}")
    for src, error in failed:
        typer.echo(f"  {src}: {_describe(error)}", err=True)

    typer.echo(f"Converted {len(converted)} document(s) to {output_dir}/")
    if failed:
        raise typer.Exit(1)


def detect_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to scan")],
    ):
    """List diagram blocks found in each document without rendering them."""
    settings = _settings()
    files = discover_files(Path(path))
    if not files:
        _fail(f"No supported documents found at {path}")

    total = 0
    for p in files:
        try:
            parsed = parse_file(p)
        except PipelineError as e:
            _fail(f"Could not parse {p}", e)
        blocks = detect(parsed.raw_text, settings.min_block_length)
        typer.echo(f"{p}: {len(blocks)} block(s)")
        for b in blocks:
            first_line = b.source_code.splitlines()[0].strip()
            typer.echo(f"  {b.dialect.value:<8} [{b.start_offset}, {b.end_offset})  {first_line}")
        total += len(blocks)
    typer.echo(f"Found {total} block(s) in {len(files)} document(s)")
