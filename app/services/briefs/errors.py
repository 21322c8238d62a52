"""Shared error classes for the brief pipeline and repositories."""

from __future__ import annotations


class BriefPipelineError(RuntimeError):
    """Base exception raised by the brief pipeline."""

    def __init__(self, message: str, code: str = "BRIEF_PIPELINE_ERROR") -> None:
        super().__init__(message)
        self.code = code


class BriefValidationError(BriefPipelineError):
    """Raised when a brief request is missing required fields."""

    def __init__(self, message: str, code: str = "400_INVALID_REQUEST") -> None:
        super().__init__(message, code=code)


class BriefPersistenceError(BriefPipelineError):
    """Raised when the repository fails to save or retrieve briefs."""


class UpstreamDegradation(BriefPipelineError):
    """Raised inside a pipeline stage whose upstream failed; never leaves the pipeline."""


class InsightProviderError(UpstreamDegradation):
    """Raised when the generative model call fails or times out."""


class MalformedModelOutputError(UpstreamDegradation):
    """Raised when the model response holds no usable JSON object."""

    def __init__(self, message: str = "Model response did not contain a JSON object.") -> None:
        super().__init__(message, code="MALFORMED_MODEL_OUTPUT")
