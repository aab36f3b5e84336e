"""Unit tests for config.py"""

import pytest

from vizpdf.config import DEFAULT_BROWSER_ARGS, load_config


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run each test in an empty directory so a project config.yaml is never picked up."""
    monkeypatch.chdir(tmp_path)


def test_load_config_defaults(monkeypatch):
    monkeypatch.delenv("VIZPDF_RENDER_TIMEOUT_MS", raising=False)
    settings = load_config()
    assert settings.render_timeout_ms == 30000
    assert settings.settle_delay_ms == 1000
    assert settings.page_format == "A4"
    assert settings.min_block_length == 11
    assert settings.browser_args == DEFAULT_BROWSER_ARGS


def test_load_config_reads_config_yaml(tmp_path):
    (tmp_path / "config.yaml").write_text("page_format: Letter\nrender_timeout_ms: 5000\n")
    settings = load_config()
    assert settings.page_format == "Letter"
    assert settings.render_timeout_ms == 5000


def test_load_config_env_overrides_config_yaml(tmp_path, monkeypatch):
    """VIZPDF_RENDER_TIMEOUT_MS takes precedence over config.yaml."""
    (tmp_path / "config.yaml").write_text("render_timeout_ms: 5000\n")
    monkeypatch.setenv("VIZPDF_RENDER_TIMEOUT_MS", "7000")
    assert load_config().render_timeout_ms == 7000


def test_load_config_cli_overrides_env(monkeypatch):
    """A non-None CLI override beats the env var; None overrides are ignored."""
    monkeypatch.setenv("VIZPDF_SETTLE_DELAY_MS", "300")
    settings = load_config(overrides={"settle_delay_ms": 0, "output_dir": None})
    assert settings.settle_delay_ms == 0
    assert settings.output_dir == "dist"


def test_load_config_env_bool(monkeypatch):
    monkeypatch.setenv("VIZPDF_HEADLESS", "false")
    assert load_config().headless is False


def test_load_config_env_plantuml_server(monkeypatch):
    monkeypatch.setenv("VIZPDF_PLANTUML_SERVER_URL", "http://localhost:8080")
    assert load_config().plantuml_server_url == "http://localhost:8080"


def test_load_config_invalid_yaml(tmp_path):
    """load_config raises ValueError when config.yaml contains invalid YAML."""
    (tmp_path / "config.yaml").write_text("key: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        load_config()


def test_load_config_non_mapping_yaml(tmp_path):
    (tmp_path / "config.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="expected a mapping"):
        load_config()


def test_load_config_rejects_invalid_values():
    """pydantic's ValidationError is a ValueError, so the CLI reports it the same way."""
    with pytest.raises(ValueError):
        load_config(overrides={"render_timeout_ms": 0})
    with pytest.raises(ValueError):
        load_config(overrides={"log_level": "LOUD"})
