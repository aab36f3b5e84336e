"""Data models passed between the detect, render, assemble and generate stages"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DocumentKind(str, Enum):
    """Classification assigned by the parsing collaborator"""
    plain_text = "plain-text"
    markdown = "markdown"
    rich_text = "rich-text"


class Dialect(str, Enum):
    """Diagram source languages recognized by the detector"""
    mermaid = "mermaid"
    plantuml = "plantuml"


class ErrorKind(str, Enum):
    """Per-block render failure classification"""
    engine_unavailable = "EngineUnavailable"
    render_timeout = "RenderTimeout"
    empty_output = "EmptyOutput"
    syntax_rejected = "SyntaxRejected"


class ParsedDocument(BaseModel):
    """Parser output; immutable once handed to the pipeline."""
    model_config = ConfigDict(frozen=True)

    kind: DocumentKind
    raw_text: str
    styled_markup: Optional[str] = None
    source_metadata: dict[str, Any] = Field(default_factory=dict)


class CodeBlock(BaseModel):
    """One diagram source region; offsets index into ParsedDocument.raw_text."""
    model_config = ConfigDict(frozen=True)

    dialect: Dialect
    source_code: str
    start_offset: int = Field(ge=0)
    end_offset: int

    @model_validator(mode="after")
    def _check_span(self):
        if self.start_offset >= self.end_offset:
            raise ValueError(f"empty span [{self.start_offset}, {self.end_offset})")
        return self


class RenderedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    width: int
    height: int
    format: str = "png"


class RenderFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class RenderedBlock(CodeBlock):
    """A CodeBlock plus exactly one of image / failure."""
    image: Optional[RenderedImage] = None
    failure: Optional[RenderFailure] = None

    @model_validator(mode="after")
    def _check_outcome(self):
        if (self.image is None) == (self.failure is None):
            raise ValueError("exactly one of image or failure must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def from_block(cls, block: CodeBlock, **outcome) -> "RenderedBlock":
        return cls(**block.model_dump(), **outcome)


class AssembledDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    markup: str
    blocks: tuple[RenderedBlock, ...]
    metadata: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_text_searchable: bool
    contains_leaked_source: bool
    extracted_length: int = 0


class ArtifactStatistics(BaseModel):
    page_count: int
    byte_size: int
    byte_size_mb: float


class Artifact(BaseModel):
    """Terminal pipeline output, handed to storage."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    page_count: int
    byte_size: int
    validation: Optional[ValidationResult] = None


class BlockFailure(BaseModel):
    ordinal: int
    dialect: Dialect
    start_offset: int
    kind: ErrorKind
    message: str


class PartialRenderFailure(BaseModel):
    """Soft outcome: some blocks failed, the document was still produced."""
    failures: list[BlockFailure]


class ConversionStatistics(BaseModel):
    visualizations_found: int
    visualizations_rendered: int
    page_count: int
    byte_size: int
    byte_size_mb: float
    processing_time_ms: int
    is_text_searchable: bool


class ConversionResult(BaseModel):
    artifact: Artifact
    statistics: ConversionStatistics
    partial_failure: Optional[PartialRenderFailure] = None
