# errors.py
from typing import Optional


class ReportPipelineError(Exception):
    """Base class for every failure that aborts report generation."""

    kind = "pipeline"

    def __init__(self, message: str, stage=None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class CompletionError(ReportPipelineError):
    """The text-generation service failed or returned nothing usable."""

    kind = "completion"


class SchemaValidationError(ReportPipelineError):
    """Model output was not valid JSON or did not match the stage schema."""

    kind = "validation"

    def __init__(self, message: str, stage=None, field: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.field = field

    def __str__(self):
        if self.field:
            return f"{self.message} (field: {self.field})"
        return self.message


class DocumentRenderError(ReportPipelineError):
    """PDF rendering failed on an already validated report."""

    kind = "render"
