"""Typed data blocks indexed against a taxa block."""

from phyloflow.exceptions import WorkflowError

from .base import BlockKind, DataBlock
from .characters import CharactersBlock
from .distances import UNDEFINED, DistancesBlock
from .genomes import Genome, GenomePart, GenomesBlock
from .network import NetworkBlock, NetworkEdge, NetworkNode, NetworkType
from .source import SourceBlock
from .splits import ASplit, Compatibility, SplitsBlock
from .trees import TreesBlock, leaf_labels, tree_to_newick

# Block class per kind (taxa blocks live in phyloflow.taxa)
BLOCK_TYPES: dict[BlockKind, type[DataBlock]] = {
    BlockKind.SOURCE: SourceBlock,
    BlockKind.DISTANCES: DistancesBlock,
    BlockKind.GENOMES: GenomesBlock,
    BlockKind.CHARACTERS: CharactersBlock,
    BlockKind.SPLITS: SplitsBlock,
    BlockKind.TREES: TreesBlock,
    BlockKind.NETWORK: NetworkBlock,
}


def require_block(block: DataBlock, kind: BlockKind) -> None:
    """Raise ``WorkflowError`` unless ``block`` is the block type of ``kind``."""
    if not isinstance(block, BLOCK_TYPES[kind]):
        raise WorkflowError(f"Expected a {kind.value} block, got {type(block).__name__}")


__all__ = [
    "BLOCK_TYPES",
    "UNDEFINED",
    "ASplit",
    "BlockKind",
    "CharactersBlock",
    "Compatibility",
    "DataBlock",
    "DistancesBlock",
    "Genome",
    "GenomePart",
    "GenomesBlock",
    "NetworkBlock",
    "NetworkEdge",
    "NetworkNode",
    "NetworkType",
    "SourceBlock",
    "SplitsBlock",
    "TreesBlock",
    "leaf_labels",
    "require_block",
    "tree_to_newick",
]
