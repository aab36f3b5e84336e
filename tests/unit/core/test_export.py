"""Unit tests for core/export.py and core/utils"""

import json
from pathlib import Path

import pytest

from vizpdf.core.export import build_sidecar, write_result
from vizpdf.core.models import (
    Artifact,
    BlockFailure,
    ConversionResult,
    ConversionStatistics,
    Dialect,
    ErrorKind,
    PartialRenderFailure,
)
from vizpdf.core.utils.hashing import sha256
from vizpdf.core.utils.slug import slugify


@pytest.fixture(name="result")
def result_fixture():
    data = b"%PDF-1.4 fake"
    return ConversionResult(
        artifact=Artifact(data=data, page_count=1, byte_size=len(data)),
        statistics=ConversionStatistics(
            visualizations_found=2,
            visualizations_rendered=1,
            page_count=1,
            byte_size=len(data),
            byte_size_mb=0.0,
            processing_time_ms=12,
            is_text_searchable=True,
        ),
        partial_failure=PartialRenderFailure(failures=[
            BlockFailure(
                ordinal=1, dialect=Dialect.plantuml, start_offset=40,
                kind=ErrorKind.render_timeout, message="No completion signal within 1000 ms",
            ),
        ]),
    )


@pytest.mark.parametrize("text,expected", [
    ("Hello World", "hello-world"),
    ("my_file_name", "my-file-name"),
    ("multiple---hyphens", "multiple-hyphens"),
    ("Special! Ch@rs#", "special-chrs"),
    ("!!!", "document"),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_sha256_str_and_bytes_agree():
    assert sha256("abc") == sha256(b"abc")
    assert sha256("abc").startswith("ba7816bf")


def test_build_sidecar(result):
    sidecar = build_sidecar(result, Path("docs/design.md"))
    assert sidecar["source"] == "docs/design.md"
    assert sidecar["hash"] == sha256(result.artifact.data)
    assert sidecar["statistics"]["visualizations_rendered"] == 1
    assert sidecar["failures"] == [{
        "ordinal": 1,
        "dialect": "plantuml",
        "start_offset": 40,
        "kind": "RenderTimeout",
        "message": "No completion signal within 1000 ms",
    }]


def test_write_result_mirrors_relative_source(tmp_path, result):
    pdf_path, json_path = write_result(result, Path("docs/My Design.md"), tmp_path)
    assert pdf_path == tmp_path / "docs" / "my-design.pdf"
    assert pdf_path.read_bytes() == result.artifact.data
    assert json.loads(json_path.read_text())["source"] == "docs/My Design.md"


def test_write_result_absolute_source_goes_to_output_root(tmp_path, result):
    pdf_path, _ = write_result(result, tmp_path / "src" / "notes.md", tmp_path / "out")
    assert pdf_path == tmp_path / "out" / "notes.pdf"
