"""Export: write the generated PDF and its sidecar JSON"""

import json
from datetime import datetime, timezone
from pathlib import Path

from vizpdf.core.models import ConversionResult
from vizpdf.core.utils.hashing import sha256
from vizpdf.core.utils.slug import slugify


def build_sidecar(result: ConversionResult, source_path: Path) -> dict:
    """Build the sidecar JSON dict: source, content hash, statistics and block failures."""
    failures = result.partial_failure.failures if result.partial_failure else []
    return {
        "source": source_path.as_posix(),
        "hash": sha256(result.artifact.data),
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "statistics": result.statistics.model_dump(),
        "failures": [f.model_dump(mode="json") for f in failures],
    }


def write_result(result: ConversionResult, source_path: Path, output_dir: Path) -> tuple[Path, Path]:
    """Write <slug>.pdf + <slug>.json for a single document.

    Output path mirrors the source directory structure when source_path is relative:
      output_dir / source_path.parent / slug.{pdf|json}

    Returns (pdf_path, json_path).
    """
    dest_dir = output_dir / source_path.parent if not source_path.is_absolute() else output_dir
    dest_dir.mkdir(parents=True, exist_ok=True)

    slug = slugify(source_path.stem)
    pdf_path = dest_dir / f"{slug}.pdf"
    json_path = dest_dir / f"{slug}.json"

    pdf_path.write_bytes(result.artifact.data)
    json_path.write_text(json.dumps(build_sidecar(result, source_path), indent=2), encoding='utf-8')
    return pdf_path, json_path
