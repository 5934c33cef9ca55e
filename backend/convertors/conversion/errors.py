"""Conversion error taxonomy. Every error carries a human-readable message and a kind tag."""
from typing import Optional, Sequence


class ConversionError(Exception):
    kind = "conversion_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedInputFormat(ConversionError):
    kind = "unsupported_input_format"


class UnsupportedOutputFormat(ConversionError):
    kind = "unsupported_output_format"


class NoPipeline(ConversionError):
    """No chain of at most two stages connects the source and target formats."""

    kind = "no_pipeline"


class ToolFailure(ConversionError):
    """A single adapter's subprocess or library call failed."""

    kind = "tool_failure"

    def __init__(
        self,
        adapter: str,
        message: str,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(f"{adapter}: {message}")
        self.adapter = adapter
        self.detail = message
        self.exit_code = exit_code
        self.stderr = stderr


class Timeout(ToolFailure):
    kind = "timeout"

    def __init__(self, adapter: str, seconds: float):
        super().__init__(adapter, f"timed out after {seconds:g}s")
        self.seconds = seconds


class AllAdaptersFailed(ConversionError):
    """Every candidate adapter of a capability failed. Holds one attempt record per adapter."""

    kind = "all_adapters_failed"

    def __init__(self, capability: str, attempts: Sequence):
        self.capability = capability
        self.attempts = list(attempts)
        reasons = "; ".join(f"{a.adapter}: {a.error}" for a in self.attempts)
        super().__init__(f"{capability} conversion failed ({len(self.attempts)} attempted): {reasons}")


class ArtifactMissing(ConversionError):
    kind = "artifact_missing"

    def __init__(self, path, message: Optional[str] = None):
        super().__init__(message or f"Input file not found: {path}")
        self.path = path


class BatchValidationError(ConversionError):
    """Malformed batch. Rejected as a whole before any item is dispatched."""

    kind = "batch_validation"
