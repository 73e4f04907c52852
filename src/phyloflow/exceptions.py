"""Exception hierarchy for phyloflow.

Every error raised by the package derives from :class:`PhyloflowError`, so
callers can catch the whole family with one clause.
"""

from pathlib import Path


class PhyloflowError(Exception):
    """Base class for all phyloflow errors."""


class InconsistentTaxaError(PhyloflowError):
    """A block references a taxon (index or label) its registry does not hold."""


class NoApplicableHandlerError(PhyloflowError):
    """No reader, writer or algorithm accepts the given input.

    Attributes:
        source: File name or node identity the lookup was made for.
    """

    def __init__(self, message: str, source: str | Path | None = None) -> None:
        self.source = str(source) if source is not None else None
        if self.source:
            message = f"{message} ({self.source})"
        super().__init__(message)


class UnlabeledLeafError(NoApplicableHandlerError):
    """A tree leaf carries no label and cannot be mapped to a taxon."""


class CodecError(PhyloflowError):
    """A reader or writer failed; the underlying error is chained as ``__cause__``."""

    def __init__(self, source: str | Path, message: str) -> None:
        self.source = str(source)
        super().__init__(f"{self.source}: {message}")


class CanceledError(PhyloflowError):
    """A computation was canceled through its progress listener."""


class WorkflowError(PhyloflowError):
    """Invalid workflow wiring: kind mismatch, cycle or unknown node."""
