"""Taxa filter: re-derive a data block for a modified taxa block.

Given the original taxa block R0, a modified taxa block R1 (typically a
reordered subset of R0) and a block computed against R0, each function here
returns a new block that is valid against R1. The input block is never
modified. Filtering always starts from the original full block; outputs of
earlier filter runs are never patched.
"""

import copy
import logging
from collections.abc import Callable

import numpy as np

from phyloflow.blocks import (
    ASplit,
    BlockKind,
    CharactersBlock,
    Compatibility,
    DataBlock,
    DistancesBlock,
    GenomesBlock,
    NetworkBlock,
    SplitsBlock,
    TreesBlock,
    require_block,
)
from phyloflow.exceptions import InconsistentTaxaError, NoApplicableHandlerError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

logger = logging.getLogger(__name__)

# Filter function signature: (progress, original, modified, block) -> block
TaxaFilterFunction = Callable[[ProgressListener, TaxaBlock, TaxaBlock, DataBlock], DataBlock]

# Noun used in the "using k of n ..." description
_UNITS: dict[BlockKind, str] = {
    BlockKind.GENOMES: "genomes",
    BlockKind.CHARACTERS: "sequences",
}


def translate_indices(original: TaxaBlock, modified: TaxaBlock) -> list[tuple[int, int]]:
    """Pair each taxon of ``modified`` with its index in ``original``.

    Returns:
        List of (original index, modified index) tuples in modified order.

    Raises:
        InconsistentTaxaError: If a taxon of ``modified`` is absent from ``original``.
    """
    pairs = []
    for new_index, taxon in enumerate(modified, start=1):
        orig_index = original.index_of(taxon)
        if orig_index == -1:
            raise InconsistentTaxaError(
                f"Taxon '{taxon.name}' of the working taxa is not in the input taxa"
            )
        pairs.append((orig_index, new_index))
    return pairs


def filter_distances(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> DistancesBlock:
    """Gather the rows and columns of the kept taxa, variances included."""
    require_block(block, BlockKind.DISTANCES)
    pairs = translate_indices(original, modified)
    orig_cols = np.array([o - 1 for o, _ in pairs], dtype=int)
    new_cols = np.array([n - 1 for _, n in pairs], dtype=int)

    output = DistancesBlock(modified.ntax)
    if block.has_variances:
        output.enable_variances()

    progress.set_maximum(len(pairs))
    for orig_index, new_index in pairs:
        output.matrix[new_index - 1, new_cols] = block.matrix[orig_index - 1, orig_cols]
        if block.variances is not None and output.variances is not None:
            output.variances[new_index - 1, new_cols] = block.variances[orig_index - 1, orig_cols]
        progress.increment_progress()
    return output


def filter_genomes(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> GenomesBlock:
    require_block(block, BlockKind.GENOMES)
    pairs = translate_indices(original, modified)
    output = GenomesBlock()
    progress.set_maximum(len(pairs))
    for orig_index, _ in pairs:
        output.add_genome(block.get_genome(orig_index).copy())
        progress.increment_progress()
    return output


def filter_characters(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> CharactersBlock:
    require_block(block, BlockKind.CHARACTERS)
    pairs = translate_indices(original, modified)
    rows = []
    progress.set_maximum(len(pairs))
    for orig_index, _ in pairs:
        rows.append(block.get_row(orig_index))
        progress.increment_progress()
    return CharactersBlock(rows, block.data_type, block.gap_char, block.missing_char)


def filter_network(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> NetworkBlock:
    """Delete every labeled node whose label is not a taxon of ``modified``.

    Unlabeled nodes and all edges between surviving nodes are kept. The
    taxon attribute of surviving nodes is remapped to ``modified`` indices.
    """
    require_block(block, BlockKind.NETWORK)
    translate_indices(original, modified)
    output = block.copy()

    kept_labels = set(modified.labels)
    kept_labels.update(t.display_label for t in modified if t.display_label)

    nodes = list(output.graph.nodes)
    progress.set_maximum(len(nodes))
    for v in nodes:
        label = output.label_of(v)
        taxon = output.taxon_of(v)
        if label is None and taxon is not None:
            label = original.label_of(taxon)
        if label is not None and label not in kept_labels:
            output.delete_node(v)
        elif taxon is not None:
            new_taxon = modified.index_of(original.get(taxon))
            if new_taxon == -1:
                raise InconsistentTaxaError(
                    f"Network node {v} labeled '{label}' refers to removed taxon "
                    f"'{original.label_of(taxon)}'"
                )
            output.set_taxon(v, new_taxon)
        progress.increment_progress()
    return output


def filter_trees(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> TreesBlock:
    """Prune leaves of removed taxa; trees left without leaves are dropped."""
    require_block(block, BlockKind.TREES)
    translate_indices(original, modified)
    kept = set(modified.labels)

    output = TreesBlock(rooted=block.rooted, partial=block.partial)
    progress.set_maximum(block.ntrees)
    for tree in block.trees:
        tree = copy.deepcopy(tree)
        leaves = tree.get_terminals()
        for leaf in leaves:
            if leaf.name is None or original.index_of(leaf.name) == -1:
                raise InconsistentTaxaError(f"Tree leaf '{leaf.name}' is not in the input taxa")
        remove = [leaf for leaf in leaves if leaf.name not in kept]
        if len(remove) < len(leaves):
            for leaf in remove:
                tree.prune(leaf)
            if len(leaves) - len(remove) < modified.ntax:
                output.partial = True
            output.add_tree(tree)
        progress.increment_progress()
    return output


def filter_splits(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> SplitsBlock:
    """Restrict splits to the kept taxa.

    Splits that lose one side entirely are dropped; splits that become
    identical are merged by summing their weights.
    """
    require_block(block, BlockKind.SPLITS)
    translate_indices(original, modified)
    for split in block.splits:
        if split.ntax != original.ntax:
            raise InconsistentTaxaError(
                f"Split defined on {split.ntax} taxa, input taxa has {original.ntax}"
            )
    index_map = original.index_map(modified)
    ntax = modified.ntax

    merged: dict[frozenset[int], ASplit] = {}
    progress.set_maximum(block.nsplits)
    for split in block.splits:
        side = frozenset(index_map[t] for t in split.side if t in index_map)
        other = frozenset(index_map[t] for t in split.other_side() if t in index_map)
        if side and other:
            restricted = ASplit(side, ntax, split.weight, split.confidence)
            if restricted.side in merged:
                previous = merged[restricted.side]
                merged[restricted.side] = previous.with_weight(previous.weight + split.weight)
            else:
                merged[restricted.side] = restricted
        progress.increment_progress()

    # restriction keeps compatible systems compatible
    compatibility = (
        Compatibility.COMPATIBLE
        if block.compatibility == Compatibility.COMPATIBLE
        else Compatibility.UNKNOWN
    )
    return SplitsBlock(merged.values(), compatibility)


# Per-kind filter registry
_FILTER_REGISTRY: dict[BlockKind, TaxaFilterFunction] = {
    BlockKind.DISTANCES: filter_distances,
    BlockKind.GENOMES: filter_genomes,
    BlockKind.CHARACTERS: filter_characters,
    BlockKind.NETWORK: filter_network,
    BlockKind.TREES: filter_trees,
    BlockKind.SPLITS: filter_splits,
}


def get_taxa_filter(kind: BlockKind) -> TaxaFilterFunction:
    """Get the filter function for a block kind.

    Raises:
        NoApplicableHandlerError: If no filter exists for the kind.
    """
    if kind not in _FILTER_REGISTRY:
        raise NoApplicableHandlerError(f"No taxa filter for block kind: {kind.value}")
    return _FILTER_REGISTRY[kind]


def filter_block(
    progress: ProgressListener, original: TaxaBlock, modified: TaxaBlock, block: DataBlock
) -> DataBlock:
    """Derive a copy of ``block`` that is valid against ``modified``.

    If both taxa blocks hold the same taxa in the same order the block is
    simply copied.

    Raises:
        InconsistentTaxaError: If a taxon of ``modified`` is absent from ``original``.
        NoApplicableHandlerError: If the block kind cannot be filtered.
    """
    unit = _UNITS.get(block.kind, "taxa")
    if original.same_sequence(modified):
        output = block.copy()
        output.short_description = f"using all {modified.ntax} {unit}"
        return output

    output = get_taxa_filter(block.kind)(progress, original, modified, block)
    output.short_description = f"using {modified.ntax} of {original.ntax} {unit}"
    logger.info("Filtered %s block: %s", block.kind.value, output.short_description)
    return output
