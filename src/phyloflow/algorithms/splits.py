"""Split extraction from trees and greedy compatible filtering."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from Bio.Phylo.BaseTree import Tree

from phyloflow.blocks import ASplit, BlockKind, Compatibility, SplitsBlock, TreesBlock
from phyloflow.exceptions import InconsistentTaxaError, UnlabeledLeafError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .base import Algorithm

logger = logging.getLogger(__name__)


def splits_from_tree(taxa: TaxaBlock, tree: Tree) -> list[ASplit]:
    """Return the split of every edge of ``tree``.

    The weight of a split is the branch length of its edge (1.0 if the tree
    has none). The two edges leaving a bifurcating root describe the same
    split and are merged by summing their lengths.

    Raises:
        UnlabeledLeafError: If a leaf has no name.
        InconsistentTaxaError: If a leaf name is not a taxon.
    """
    ntax = taxa.ntax
    below: dict[int, frozenset[int]] = {}
    splits: dict[frozenset[int], ASplit] = {}

    for clade in tree.find_clades(order="postorder"):
        if clade.is_terminal():
            if not clade.name:
                raise UnlabeledLeafError("Tree leaf without label", tree.name)
            t = taxa.index_of(clade.name)
            if t == -1:
                raise InconsistentTaxaError(f"Tree leaf '{clade.name}' is not a taxon")
            below[id(clade)] = frozenset([t])
        else:
            below[id(clade)] = frozenset().union(*(below[id(c)] for c in clade.clades))

        if clade is tree.root:
            continue
        part = below[id(clade)]
        if not part or len(part) == ntax:
            continue
        weight = clade.branch_length if clade.branch_length is not None else 1.0
        split = ASplit(part, ntax, weight, clade.confidence if clade.confidence is not None else -1.0)
        if split.side in splits:
            previous = splits[split.side]
            splits[split.side] = previous.with_weight(previous.weight + split.weight)
        else:
            splits[split.side] = split
    return list(splits.values())


def greedy_compatible(progress: ProgressListener, splits: list[ASplit]) -> list[ASplit]:
    """Accept splits by decreasing weight, skipping any incompatible with those accepted.

    Ties keep input order.
    """
    accepted: list[ASplit] = []
    progress.set_maximum(len(splits))
    for split in sorted(splits, key=lambda s: -s.weight):
        if all(split.is_compatible(other) for other in accepted):
            accepted.append(split)
        progress.increment_progress()
    return accepted


class EdgeWeights(str, Enum):
    MEAN = "mean"
    COUNT = "count"


@dataclass
class ConsensusSplits(Algorithm[TreesBlock, SplitsBlock]):
    """Splits occurring in more than ``threshold`` of the trees.

    With a single input tree this yields the splits of that tree.
    """

    name: ClassVar[str] = "ConsensusSplits"
    from_kind: ClassVar[BlockKind] = BlockKind.TREES
    to_kind: ClassVar[BlockKind] = BlockKind.SPLITS

    threshold: float = 0.5
    edge_weights: EdgeWeights = EdgeWeights.MEAN

    def is_applicable(self, taxa: TaxaBlock, block: TreesBlock) -> bool:
        return block.ntrees > 0 and not block.partial

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: TreesBlock
    ) -> SplitsBlock:
        counts: dict[frozenset[int], int] = {}
        lengths: dict[frozenset[int], float] = {}

        progress.set_maximum(block.ntrees)
        for tree in block.trees:
            for split in splits_from_tree(taxa, tree):
                counts[split.side] = counts.get(split.side, 0) + 1
                lengths[split.side] = lengths.get(split.side, 0.0) + split.weight
            progress.increment_progress()

        result = SplitsBlock()
        for side, count in counts.items():
            frequency = count / block.ntrees
            if frequency <= self.threshold and block.ntrees > 1:
                continue
            if self.edge_weights == EdgeWeights.COUNT:
                weight = frequency
            else:
                weight = lengths[side] / count
            result.add(ASplit(side, taxa.ntax, weight, frequency))

        result.compatibility = result.compute_compatibility()
        result.short_description = (
            f"{result.nsplits} splits from {block.ntrees} trees (threshold {self.threshold})"
        )
        return result


@dataclass
class GreedyCompatible(Algorithm[SplitsBlock, SplitsBlock]):
    """Heaviest pairwise compatible subset of a split system."""

    name: ClassVar[str] = "GreedyCompatible"
    from_kind: ClassVar[BlockKind] = BlockKind.SPLITS
    to_kind: ClassVar[BlockKind] = BlockKind.SPLITS

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: SplitsBlock
    ) -> SplitsBlock:
        accepted = greedy_compatible(progress, block.splits)
        dropped = block.nsplits - len(accepted)
        if dropped:
            logger.info("Greedy compatible: dropped %d incompatible splits", dropped)
        result = SplitsBlock(accepted, Compatibility.COMPATIBLE)
        result.short_description = f"{len(accepted)} of {block.nsplits} splits compatible"
        return result
