"""Algorithms transforming one data block into another.

Algorithms are looked up by name in the static ``ALGORITHMS`` table.
"""

from phyloflow.blocks import BlockKind, DataBlock
from phyloflow.exceptions import NoApplicableHandlerError
from phyloflow.taxa import TaxaBlock

from .base import Algorithm
from .distances import (
    FillUndefinedDistances,
    GenomeDistanceType,
    HammingDistances,
    MashDistances,
    compute_large_value,
    fill_undefined_distances,
)
from .network import MinSpanningNetwork
from .splits import ConsensusSplits, EdgeWeights, GreedyCompatible, greedy_compatible, splits_from_tree
from .trees import GreedyTree, NeighborJoining, compute_bionj_tree, tree_from_splits

# Registry of algorithms by name
ALGORITHMS: dict[str, type[Algorithm]] = {
    cls.name: cls
    for cls in (
        HammingDistances,
        MashDistances,
        FillUndefinedDistances,
        NeighborJoining,
        MinSpanningNetwork,
        ConsensusSplits,
        GreedyTree,
        GreedyCompatible,
    )
}


def get_algorithm(name: str, **options) -> Algorithm:
    """Instantiate a registered algorithm with the given options.

    Raises:
        NoApplicableHandlerError: If no algorithm has this name.
    """
    if name not in ALGORITHMS:
        raise NoApplicableHandlerError(f"Unknown algorithm: {name}")
    return ALGORITHMS[name](**options)


def algorithms_for(kind: BlockKind) -> list[type[Algorithm]]:
    """Algorithms accepting blocks of the given kind, in registry order."""
    return [cls for cls in ALGORITHMS.values() if cls.from_kind == kind]


def applicable_algorithms(taxa: TaxaBlock, block: DataBlock) -> list[Algorithm]:
    """Default-configured algorithms that can run on this input."""
    candidates = (cls() for cls in algorithms_for(block.kind))
    return [a for a in candidates if a.is_applicable(taxa, block)]


__all__ = [
    "ALGORITHMS",
    "Algorithm",
    "ConsensusSplits",
    "EdgeWeights",
    "FillUndefinedDistances",
    "GenomeDistanceType",
    "GreedyCompatible",
    "GreedyTree",
    "HammingDistances",
    "MashDistances",
    "MinSpanningNetwork",
    "NeighborJoining",
    "algorithms_for",
    "applicable_algorithms",
    "compute_bionj_tree",
    "compute_large_value",
    "fill_undefined_distances",
    "get_algorithm",
    "greedy_compatible",
    "splits_from_tree",
    "tree_from_splits",
]
