"""Loader stage: source files to input taxa and input data."""

import logging
from collections.abc import Sequence
from typing import ClassVar

from phyloflow.algorithms.base import Algorithm
from phyloflow.blocks import BlockKind, DataBlock, SourceBlock
from phyloflow.exceptions import WorkflowError
from phyloflow.io import Loader
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

logger = logging.getLogger(__name__)


class LoadSource(Algorithm):
    """Read a source block with the first accepting reader.

    Produces two blocks at once, the taxa and the data, which the
    workflow publishes together only after reading succeeded.
    """

    name: ClassVar[str] = "Loader"
    from_kind: ClassVar[BlockKind] = BlockKind.SOURCE

    def __init__(
        self,
        loader: Loader | None = None,
        kind: BlockKind | None = None,
        format_name: str | None = None,
    ) -> None:
        self.loader = loader or Loader()
        self.kind = kind
        self.format_name = format_name
        self.to_kind = kind  # type: ignore[misc]

    def resolve(self, source: SourceBlock) -> BlockKind:
        """Pick the reader for ``source`` and return the kind it produces."""
        reader = self.loader.find_reader(source.sources, self.kind, self.format_name)
        self.to_kind = reader.kind  # type: ignore[misc]
        self.format_name = reader.name
        return reader.kind

    def compute(  # type: ignore[override]
        self, progress: ProgressListener, taxa: TaxaBlock, block: SourceBlock
    ) -> DataBlock:
        raise WorkflowError("Loader reads from a source block only; use run()")

    def run(  # type: ignore[override]
        self, progress: ProgressListener, inputs: Sequence[DataBlock | TaxaBlock]
    ) -> tuple[TaxaBlock, DataBlock]:
        if len(inputs) != 1 or not isinstance(inputs[0], SourceBlock):
            raise WorkflowError("Loader expects exactly one source block input")
        taxa, block = self.loader.load(
            progress, inputs[0], kind=self.to_kind, format_name=self.format_name
        )
        self.short_description = f"{taxa.short_description}, {block.kind.value}"
        return taxa, block
