"""
Exceptions raised by the DArTseq population genetics pipeline.

Loader and normalizer errors are fatal for a run. Statistics errors are
raised per statistic so the orchestrator can keep computing the others.
"""


class DartseqError(Exception):
    """Base class for all pipeline errors."""


class MissingFileError(DartseqError, FileNotFoundError):
    """An input file does not exist."""

    def __init__(self, path, description: str = "Input file") -> None:
        self.path = path
        super().__init__(f"{description} not found: {path}")


class MalformedInputError(DartseqError, ValueError):
    """An input file does not match the expected layout."""


class InsufficientDataError(DartseqError, ValueError):
    """A statistic needs more individuals, populations or loci than are available."""


class EmptyInputError(InsufficientDataError):
    """Filtering left no loci or no individuals."""
