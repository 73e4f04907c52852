"""Taxa-consistent phylogenetic dataflow engine."""

from .blocks import BlockKind, DataBlock
from .config import WorkflowConfig
from .exceptions import (
    CanceledError,
    CodecError,
    InconsistentTaxaError,
    NoApplicableHandlerError,
    PhyloflowError,
    UnlabeledLeafError,
    WorkflowError,
)
from .filtering import filter_block
from .io import export, load
from .pipeline import PhyloPipeline
from .progress import ProgressListener, ProgressSilent
from .taxa import TaxaBlock, Taxon
from .workflow import Scheduler, TaxaChanged, Workflow

__version__ = "0.1.0"

__all__ = [
    "BlockKind",
    "CanceledError",
    "CodecError",
    "DataBlock",
    "InconsistentTaxaError",
    "NoApplicableHandlerError",
    "PhyloPipeline",
    "PhyloflowError",
    "ProgressListener",
    "ProgressSilent",
    "Scheduler",
    "TaxaBlock",
    "TaxaChanged",
    "Taxon",
    "UnlabeledLeafError",
    "Workflow",
    "WorkflowConfig",
    "WorkflowError",
    "export",
    "filter_block",
    "load",
]
