"""Tree construction: BioNJ from distances, greedy tree from splits."""

import logging
from dataclasses import dataclass
from typing import ClassVar

import numpy as np
from Bio.Phylo.BaseTree import Clade, Tree

from phyloflow.blocks import ASplit, BlockKind, DistancesBlock, SplitsBlock, TreesBlock
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .base import Algorithm
from .distances import fill_undefined_distances
from .splits import greedy_compatible

logger = logging.getLogger(__name__)

MIN_TAXA_NJ = 3


def compute_bionj_tree(progress: ProgressListener, taxa: TaxaBlock, distances: DistancesBlock) -> Tree:
    """Build a BioNJ tree (Gascuel 1997) from a complete distance matrix.

    The variance of each distance is initialized to the distance itself and
    updated alongside the distances; ``lambda`` weighs the two joined
    subtrees by those variances.

    Args:
        progress: Listener receiving one increment per join.
        taxa: Taxa providing the leaf names.
        distances: Symmetric matrix without undefined entries.

    Returns:
        Unrooted tree with a trifurcating root.
    """
    n = distances.ntax
    clades = [Clade(branch_length=0.0, name=taxa.label_of(t)) for t in range(1, n + 1)]

    upper = np.triu(distances.matrix, 1)
    h = upper + upper.T
    var = h.copy()
    active = list(range(n))

    progress.set_maximum(max(0, n - 3))
    while len(active) > 3:  # noqa: PLR2004
        r = len(active)
        sub = h[np.ix_(active, active)]
        b = sub.sum(axis=1)
        q = (r - 2) * sub - b[:, None] - b[None, :]
        np.fill_diagonal(q, np.inf)
        ii, jj = np.unravel_index(int(np.argmin(q)), q.shape)
        if ii > jj:
            ii, jj = jj, ii
        i, j = active[ii], active[jj]

        dij = h[i, j]
        e = 0.5 * (dij + (b[ii] - b[jj]) / (r - 2))
        f = dij - e

        others = [k for k in active if k != i and k != j]
        var_ij = var[i, j]
        if var_ij == 0:
            lam = 0.5
        else:
            lam = 0.5 + sum(var[j, k] - var[i, k] for k in others) / (2 * (r - 2) * var_ij)
            lam = min(1.0, max(0.0, lam))

        clades[i].branch_length = e
        clades[j].branch_length = f
        joined = Clade(branch_length=0.0, clades=[clades[i], clades[j]])

        for k in others:
            dk = lam * (h[i, k] - e) + (1 - lam) * (h[j, k] - f)
            vk = lam * var[i, k] + (1 - lam) * var[j, k] - lam * (1 - lam) * var_ij
            h[i, k] = h[k, i] = dk
            var[i, k] = var[k, i] = vk

        clades[i] = joined
        active.remove(j)
        progress.increment_progress()

    if len(active) == 1:
        return Tree(root=clades[active[0]], rooted=False)
    if len(active) == 2:  # noqa: PLR2004
        i, j = active
        clades[i].branch_length = clades[j].branch_length = h[i, j] / 2
        return Tree(root=Clade(clades=[clades[i], clades[j]]), rooted=False)

    i, j, k = active
    clades[i].branch_length = 0.5 * (h[i, j] + h[i, k] - h[j, k])
    clades[j].branch_length = 0.5 * (h[i, j] + h[j, k] - h[i, k])
    clades[k].branch_length = 0.5 * (h[i, k] + h[j, k] - h[i, j])
    return Tree(root=Clade(clades=[clades[i], clades[j], clades[k]]), rooted=False)


@dataclass
class NeighborJoining(Algorithm[DistancesBlock, TreesBlock]):
    """BioNJ tree; undefined distances are repaired on a copy first."""

    name: ClassVar[str] = "NeighborJoining"
    from_kind: ClassVar[BlockKind] = BlockKind.DISTANCES
    to_kind: ClassVar[BlockKind] = BlockKind.TREES
    citation: ClassVar[str] = (
        "Gascuel 1997; O. Gascuel, BIONJ: an improved version of the NJ algorithm "
        "based on a simple model of sequence data. Mol. Biol. Evol. 14:685-695, 1997."
    )

    def is_applicable(self, taxa: TaxaBlock, block: DistancesBlock) -> bool:
        return block.ntax == taxa.ntax and block.ntax >= MIN_TAXA_NJ

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: DistancesBlock
    ) -> TreesBlock:
        distances = block
        if block.count_undefined():
            distances, _, _ = fill_undefined_distances(block)
        tree = compute_bionj_tree(progress, taxa, distances)
        tree.name = "BioNJ"
        result = TreesBlock([tree], rooted=False, partial=False)
        result.short_description = f"BioNJ tree on {taxa.ntax} taxa"
        return result


def tree_from_splits(taxa: TaxaBlock, splits: list[ASplit]) -> Tree:
    """Build the tree displaying a set of pairwise compatible splits.

    Each split contributes the cluster of taxa not containing taxon 1; the
    clusters of compatible splits are nested or disjoint, so they form a
    hierarchy hanging from a root that holds taxon 1. Weights of trivial
    splits become leaf branch lengths.
    """
    ntax = taxa.ntax
    leaves = {t: Clade(branch_length=0.0, name=taxa.label_of(t)) for t in range(1, ntax + 1)}
    root = Clade()

    clusters: list[tuple[frozenset[int], Clade]] = []
    for split in sorted(splits, key=lambda s: len(s.side), reverse=True):
        side = split.side
        if len(side) == 1:
            leaves[next(iter(side))].branch_length = split.weight
        elif len(side) == ntax - 1:
            leaves[1].branch_length = split.weight
        elif side:
            clade = Clade(branch_length=split.weight)
            if split.confidence >= 0:
                clade.confidence = split.confidence
            parent = _smallest_containing(clusters, side, root)
            parent.clades.append(clade)
            clusters.append((side, clade))

    for t in range(1, ntax + 1):
        _smallest_containing(clusters, frozenset([t]), root).clades.append(leaves[t])
    return Tree(root=root, rooted=False)


def _smallest_containing(
    clusters: list[tuple[frozenset[int], Clade]], taxa: frozenset[int], root: Clade
) -> Clade:
    best, best_size = root, None
    for cluster, clade in clusters:
        if taxa <= cluster and (best_size is None or len(cluster) < best_size):
            best, best_size = clade, len(cluster)
    return best


@dataclass
class GreedyTree(Algorithm[SplitsBlock, TreesBlock]):
    """Tree from the heaviest splits that are pairwise compatible."""

    name: ClassVar[str] = "GreedyTree"
    from_kind: ClassVar[BlockKind] = BlockKind.SPLITS
    to_kind: ClassVar[BlockKind] = BlockKind.TREES

    def is_applicable(self, taxa: TaxaBlock, block: SplitsBlock) -> bool:
        return block.nsplits > 0

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: SplitsBlock
    ) -> TreesBlock:
        accepted = greedy_compatible(progress, block.splits)
        tree = tree_from_splits(taxa, accepted)
        tree.name = "greedy"
        result = TreesBlock([tree], rooted=False, partial=False)
        result.short_description = f"greedy tree from {len(accepted)} of {block.nsplits} splits"
        return result
