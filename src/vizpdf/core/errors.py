"""Exception hierarchy for the conversion pipeline.

Stage failures derive from PipelineError and carry the name of the stage
that raised them so callers can render a specific message. RenderError is
the only per-block failure; the renderer always converts it into a
RenderedBlock.failure instead of letting it escape a batch.
"""

from vizpdf.core.models import ErrorKind


class VizPdfError(Exception):
    """Base class for every error raised by vizpdf."""


class RenderError(VizPdfError):
    """A single diagram could not be rendered."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class PipelineError(VizPdfError):
    """A pipeline stage failed for one document."""

    stage = "pipeline"

    def __init__(self, message: str, stage: str = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ParseFailure(PipelineError):
    stage = "parse"


class NoBlocksDetected(PipelineError):
    """The document has no recognized diagram syntax (user-correctable)."""
    stage = "detect"


class AllRendersFailed(PipelineError):
    """Every detected block failed to render."""
    stage = "render"

    def __init__(self, message: str, failures: list = None):
        super().__init__(message)
        self.failures = list(failures or [])


class AssemblyError(PipelineError):
    stage = "assemble"


class GenerationError(PipelineError):
    stage = "generate"


class ValidationError(PipelineError):
    stage = "validate"


class ArtifactValidationError(ValidationError):
    """The generated artifact failed a correctness check and must not ship."""
