"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"

DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class Settings(BaseModel):
    render_timeout_ms:  int = Field(default=30000, gt=0, description="Bound on every engine wait, in ms")
    settle_delay_ms:    int = Field(default=1000,  ge=0, description="Pause before PDF capture so images composite")
    viewport_width:     int = Field(default=1200,  gt=0)
    viewport_height:    int = Field(default=800,   gt=0)
    headless:           bool = True
    browser_executable: Optional[str] = Field(default=None, description="Chromium binary; None uses Playwright's")
    browser_args:       list[str] = Field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    mermaid_script_url: str = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"
    plantuml_server_url: str = "https://www.plantuml.com/plantuml"
    page_format:        str = Field(default="A4", description="Paper size passed to the PDF printer")
    page_margin:        str = Field(default="20px", description="CSS length applied to all four margins")
    print_background:   bool = True
    min_block_length:   int = Field(default=11, ge=1, description="Keyword-delimited blocks shorter than this are noise")
    output_dir:         str = Field(default="dist", description="Directory for generated PDF + JSON files")
    log_level:          str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then VIZPDF_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"VIZPDF_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
