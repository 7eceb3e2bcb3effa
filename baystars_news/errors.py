"""
Exceptions that abort a pipeline run.

Recoverable problems (a dead source, a corrupt index) never raise; they
are logged and absorbed where they happen.
"""


class PipelineError(Exception):
    """Base class for fatal pipeline errors."""


class SnapshotNotFoundError(PipelineError):
    """The raw snapshot the generation stage needs does not exist."""
