"""
Pipeline Exceptions
===================

Failure taxonomy for the analysis pipeline. Every error aborts the run.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class ReadError(PipelineError):
    """Input file missing, unreadable, or decoded with the wrong encoding."""


class ParseError(PipelineError):
    """Date text or categorical value does not match the expected format."""


class SchemaError(PipelineError):
    """Expected column absent or mis-typed."""


class FitError(PipelineError):
    """Design matrix cannot be fitted (singular, rank-deficient, constant column)."""
