"""Integration tests for the convert and detect commands"""

import pytest
from typer.testing import CliRunner

from vizpdf.cli.cli import app


DIAGRAM_MD = """\
# Hello

```mermaid
graph TD
    A-->B
```

World.
"""


@pytest.fixture(name="runner")
def runner_fixture(tmp_path, monkeypatch, launcher, extract):
    """CliRunner in an empty cwd with the fake browser and text extractor patched in."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VIZPDF_SETTLE_DELAY_MS", "0")
    monkeypatch.setattr("vizpdf.core.render.session.launch_chromium", launcher)
    monkeypatch.setattr("vizpdf.core.artifact.extract_text", extract)
    return CliRunner()


def test_help():
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "convert" in result.output


def test_convert_writes_pdf_and_sidecar(runner, tmp_path):
    (tmp_path / "hello.md").write_text(DIAGRAM_MD)
    result = runner.invoke(app, ["convert", "hello.md", "--out-dir", str(tmp_path / "dist")])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "dist" / "hello.pdf").exists()
    assert (tmp_path / "dist" / "hello.json").exists()
    assert "1/1 diagrams" in result.output
    assert "Converted 1 document(s)" in result.output


def test_convert_reports_partial_failure(runner, tmp_path):
    (tmp_path / "mixed.md").write_text(DIAGRAM_MD + "\n```mermaid\ngraph LR\n    BROKEN\n```\n")
    result = runner.invoke(app, ["convert", "mixed.md", "--out-dir", "out"])

    assert result.exit_code == 0, result.output
    assert "1/2 diagrams" in result.output
    assert "SyntaxRejected" in result.output


def test_convert_no_diagrams_exits_1(runner, tmp_path):
    (tmp_path / "memo.txt").write_text("Nothing to draw here.\n")
    result = runner.invoke(app, ["convert", "memo.txt"])

    assert result.exit_code == 1
    assert "no diagrams found" in result.output
    assert not (tmp_path / "dist").exists()


def test_convert_all_renders_failed_exits_1(runner, tmp_path, monkeypatch, broken_launcher):
    monkeypatch.setattr("vizpdf.core.render.session.launch_chromium", broken_launcher)
    (tmp_path / "hello.md").write_text(DIAGRAM_MD)
    result = runner.invoke(app, ["convert", "hello.md"])

    assert result.exit_code == 1
    assert "no diagram could be rendered (EngineUnavailable)" in result.output


def test_convert_missing_path_exits_1(runner):
    result = runner.invoke(app, ["convert", "nowhere"])
    assert result.exit_code == 1
    assert "No supported documents" in result.output


def test_convert_invalid_config_exits_1(runner, tmp_path):
    (tmp_path / "config.yaml").write_text("key: [unclosed\n")
    (tmp_path / "hello.md").write_text(DIAGRAM_MD)
    result = runner.invoke(app, ["convert", "hello.md"])
    assert result.exit_code == 1
    assert "Invalid config.yaml" in result.output


def test_detect_lists_blocks(runner, tmp_path):
    (tmp_path / "hello.md").write_text(DIAGRAM_MD + "\n@startuml\nAlice -> Bob: hi\n@enduml\n")
    result = runner.invoke(app, ["detect", "hello.md"])

    assert result.exit_code == 0, result.output
    assert "2 block(s)" in result.output
    assert "mermaid" in result.output
    assert "plantuml" in result.output
    assert "graph TD" in result.output
