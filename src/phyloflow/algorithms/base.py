"""Algorithm interface shared by every workflow stage."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import ClassVar, Generic, TypeVar

from phyloflow.blocks import BlockKind, DataBlock
from phyloflow.exceptions import NoApplicableHandlerError, WorkflowError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

logger = logging.getLogger(__name__)

I = TypeVar("I", bound=DataBlock)  # noqa: E741
O = TypeVar("O", bound=DataBlock)  # noqa: E741


class Algorithm(ABC, Generic[I, O]):
    """A pure function from (taxa, input block) to a new output block.

    Subclasses declare ``name``, ``from_kind`` and ``to_kind`` as class
    attributes and usually are dataclasses whose fields are the options.
    ``compute`` must not modify its inputs and reports progress through the
    given listener, which raises CanceledError when the run is canceled.
    """

    name: ClassVar[str]
    from_kind: ClassVar[BlockKind]
    to_kind: ClassVar[BlockKind]
    citation: ClassVar[str] = ""

    short_description: str = ""

    def is_applicable(self, taxa: TaxaBlock, block: I) -> bool:
        """Whether the algorithm can run on this input. Defaults to True."""
        return True

    @abstractmethod
    def compute(self, progress: ProgressListener, taxa: TaxaBlock, block: I) -> O:
        """Compute and return the output block."""

    def run(
        self, progress: ProgressListener, inputs: Sequence[DataBlock | TaxaBlock]
    ) -> DataBlock | TaxaBlock:
        """Entry point used by workflow nodes; inputs are (taxa, block)."""
        if len(inputs) != 2:  # noqa: PLR2004
            raise WorkflowError(
                f"{self.name} expects a taxa block and one data block, got {len(inputs)}"
            )
        taxa, block = inputs
        if not isinstance(taxa, TaxaBlock) or block.kind != self.from_kind:
            raise WorkflowError(
                f"{self.name} expects ({BlockKind.TAXA.value}, {self.from_kind.value}) input"
            )
        if not self.is_applicable(taxa, block):  # type: ignore[arg-type]
            raise NoApplicableHandlerError(f"Algorithm {self.name} is not applicable", block.kind.value)
        output = self.compute(progress, taxa, block)  # type: ignore[arg-type]
        self.short_description = output.short_description
        return output

    def __str__(self) -> str:
        return self.name
