"""Workflow stages that apply the taxa selection.

``TaxaFilter`` turns the input taxa into the working taxa (dropping disabled
taxa and applying an optional order); ``DataTaxaFilter`` re-derives the
working data block from the input block whenever the working taxa change.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import ClassVar

from phyloflow.algorithms.base import Algorithm
from phyloflow.blocks import BlockKind, DataBlock
from phyloflow.exceptions import InconsistentTaxaError, WorkflowError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .taxa_filter import filter_block

logger = logging.getLogger(__name__)


@dataclass
class TaxaFilter(Algorithm):
    """Select the working taxa from the input taxa.

    Attributes:
        disabled: Names of taxa to leave out.
        order: Optional explicit order of (a subset of) taxon names; when set,
            only these taxa are kept, in this order.
    """

    name: ClassVar[str] = "TaxaFilter"
    from_kind: ClassVar[BlockKind] = BlockKind.TAXA
    to_kind: ClassVar[BlockKind] = BlockKind.TAXA

    disabled: set[str] = field(default_factory=set)
    order: list[str] | None = None

    def set_selection(
        self, disabled: Iterable[str] = (), order: Iterable[str] | None = None
    ) -> None:
        self.disabled = set(disabled)
        self.order = list(order) if order is not None else None

    def compute(  # type: ignore[override]
        self, progress: ProgressListener, taxa: TaxaBlock, block: TaxaBlock
    ) -> TaxaBlock:
        names = self.order if self.order is not None else block.labels
        unknown = [name for name in (*names, *self.disabled) if block.index_of(name) == -1]
        if unknown:
            listed = ", ".join(sorted(set(unknown)))
            raise InconsistentTaxaError(f"Unknown taxa in selection: {listed}")

        progress.set_maximum(1)
        result = block.subset(name for name in names if name not in self.disabled)
        progress.increment_progress()
        if result.same_sequence(block):
            self.short_description = f"using all {block.ntax} taxa"
        else:
            self.short_description = f"using {result.ntax} of {block.ntax} taxa"
        logger.info("Working taxa: %s", self.short_description)
        return result

    def run(
        self, progress: ProgressListener, inputs: Sequence[DataBlock | TaxaBlock]
    ) -> TaxaBlock:
        if len(inputs) != 1 or not isinstance(inputs[0], TaxaBlock):
            raise WorkflowError("TaxaFilter expects exactly one taxa block input")
        return self.compute(progress, inputs[0], inputs[0])


class DataTaxaFilter(Algorithm):
    """Filter a data block computed on the input taxa down to the working taxa."""

    name: ClassVar[str] = "DataTaxaFilter"

    def __init__(self, kind: BlockKind) -> None:
        self.from_kind = kind  # type: ignore[misc]
        self.to_kind = kind  # type: ignore[misc]

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: DataBlock
    ) -> DataBlock:
        raise WorkflowError("DataTaxaFilter needs both the input and the working taxa; use run()")

    def run(
        self, progress: ProgressListener, inputs: Sequence[DataBlock | TaxaBlock]
    ) -> DataBlock:
        """Inputs are (input taxa, working taxa, input data)."""
        if len(inputs) != 3:  # noqa: PLR2004
            raise WorkflowError(f"DataTaxaFilter expects 3 inputs, got {len(inputs)}")
        original, modified, block = inputs
        if not isinstance(original, TaxaBlock) or not isinstance(modified, TaxaBlock):
            raise WorkflowError("DataTaxaFilter expects two taxa blocks followed by a data block")
        if block.kind != self.from_kind:
            raise WorkflowError(
                f"DataTaxaFilter for {self.from_kind.value} cannot filter a {block.kind.value} block"
            )
        output = filter_block(progress, original, modified, block)  # type: ignore[arg-type]
        self.short_description = output.short_description
        return output
