import numpy as np
import pytest
from Bio.Phylo.BaseTree import Clade, Tree

from phyloflow.blocks import (
    ASplit,
    BlockKind,
    CharactersBlock,
    Compatibility,
    DistancesBlock,
    Genome,
    GenomePart,
    GenomesBlock,
    NetworkBlock,
    SplitsBlock,
    TreesBlock,
    leaf_labels,
)
from phyloflow.exceptions import InconsistentTaxaError, NoApplicableHandlerError, WorkflowError
from phyloflow.filtering import (
    DataTaxaFilter,
    TaxaFilter,
    filter_block,
    get_taxa_filter,
    translate_indices,
)
from phyloflow.taxa import TaxaBlock


def _tree_abcd() -> Tree:
    def cherry(a: str, b: str) -> Clade:
        return Clade(
            branch_length=1.0,
            clades=[Clade(branch_length=1.0, name=a), Clade(branch_length=2.0, name=b)],
        )

    return Tree(root=Clade(clades=[cherry("A", "B"), cherry("C", "D")]))


def _network_abcd() -> NetworkBlock:
    network = NetworkBlock()
    hub = network.new_node(name="hub")
    for t, label in enumerate("ABCD", start=1):
        network.new_edge(network.new_node(label=label, taxon=t), hub, weight=float(t))
    return network


# One block per kind, each defined on the taxa A, B, C, D
BLOCKS_ABCD = {
    "distances": lambda: DistancesBlock(
        matrix=np.array(
            [
                [0.0, 1.0, 2.0, 3.0],
                [1.0, 0.0, 4.0, 5.0],
                [2.0, 4.0, 0.0, 6.0],
                [3.0, 5.0, 6.0, 0.0],
            ]
        )
    ),
    "genomes": lambda: GenomesBlock(
        [Genome(n, parts=[GenomePart(n, "ACGT" * 3 + n)]) for n in "ABCD"]
    ),
    "characters": lambda: CharactersBlock(["AAAA", "CCCC", "GGGG", "TTTT"]),
    "network": _network_abcd,
    "trees": lambda: TreesBlock([_tree_abcd()]),
    "splits": lambda: SplitsBlock(
        [
            ASplit(frozenset({3, 4}), 4, 2.0),
            ASplit(frozenset({4}), 4, 1.0),
            ASplit(frozenset({1}), 4, 0.5),
        ],
        Compatibility.COMPATIBLE,
    ),
}


@pytest.mark.parametrize("kind", sorted(BLOCKS_ABCD))
def test_identity_filter_returns_equal_copy(progress, taxa_abcd, kind):
    block = BLOCKS_ABCD[kind]()

    result = filter_block(progress, taxa_abcd, taxa_abcd, block)

    assert result == block
    assert result is not block
    assert result.short_description.startswith("using all 4 ")


def test_identity_filter_does_not_share_arrays(progress, taxa_abcd, distances_abcd):
    result = filter_block(progress, taxa_abcd, taxa_abcd, distances_abcd)
    result.set_both(1, 2, 99.0)
    assert distances_abcd.get(1, 2) == 1.0


def test_distances_reordered_subset(progress, taxa_abcd, distances_abcd):
    modified = TaxaBlock.from_names(["D", "B"])
    result = filter_block(progress, taxa_abcd, modified, distances_abcd)

    assert result.ntax == 2
    assert result.get(1, 2) == 5.0
    assert result.get(2, 1) == 5.0
    assert result.get(1, 1) == 0.0
    assert result.short_description == "using 2 of 4 taxa"


def test_distances_variances_follow_distances(progress, taxa_abcd, distances_abcd):
    distances_abcd.enable_variances()
    distances_abcd.variances[:] = distances_abcd.matrix * 10
    modified = TaxaBlock.from_names(["C", "A"])

    result = filter_block(progress, taxa_abcd, modified, distances_abcd)

    assert result.has_variances
    assert result.get(1, 2) == 2.0
    assert result.get_variance(1, 2) == 20.0


def test_genomes_follow_taxa_order(progress):
    original = TaxaBlock.from_names(["A", "B", "C"])
    genomes = GenomesBlock([Genome(n, parts=[GenomePart(n, "ACGT" * 3)]) for n in "ABC"])
    modified = TaxaBlock.from_names(["C", "A"])

    result = filter_block(progress, original, modified, genomes)

    assert [g.name for g in result.genomes] == ["C", "A"]
    assert result.short_description == "using 2 of 3 genomes"


def test_characters_rows_gathered(progress):
    original = TaxaBlock.from_names(["A", "B", "C"])
    block = CharactersBlock(["AAAA", "CCCC", "GGGG"])
    modified = TaxaBlock.from_names(["B", "C"])

    result = filter_block(progress, original, modified, block)

    assert result.rows == ["CCCC", "GGGG"]
    assert result.short_description == "using 2 of 3 sequences"


def _hub_network() -> NetworkBlock:
    network = NetworkBlock()
    n1 = network.new_node(label="A", taxon=1)
    n2 = network.new_node(label="B", taxon=2)
    n3 = network.new_node(name="hub")
    n4 = network.new_node(label="C", taxon=3)
    network.new_edge(n1, n3)
    network.new_edge(n2, n3)
    network.new_edge(n3, n4)
    return network


def test_network_structural_delete(progress):
    original = TaxaBlock.from_names(["A", "B", "C"])
    network = _hub_network()
    modified = TaxaBlock.from_names(["A", "C"])

    result = filter_block(progress, original, modified, network)

    assert sorted(result.graph.nodes) == [1, 3, 4]
    assert sorted(tuple(sorted(e)) for e in result.graph.edges) == [(1, 3), (3, 4)]
    assert result.node_data(3) == {"name": "hub"}
    assert result.taxon_of(4) == 2
    # input untouched
    assert network.num_nodes == 4
    assert network.num_edges == 3


def test_trees_pruned_to_working_taxa(progress, taxa_abcd, parse_tree):
    block = TreesBlock([parse_tree("((A:1,B:1):1,(C:1,D:1):1);")])
    modified = TaxaBlock.from_names(["A", "C", "D"])

    result = filter_block(progress, taxa_abcd, modified, block)

    assert sorted(leaf_labels(result.trees[0])) == ["A", "C", "D"]
    assert not result.partial
    assert sorted(leaf_labels(block.trees[0])) == ["A", "B", "C", "D"]


def test_trees_unknown_leaf_is_inconsistent(progress, parse_tree):
    original = TaxaBlock.from_names(["A", "B", "C"])
    block = TreesBlock([parse_tree("((A,B),X);")])
    with pytest.raises(InconsistentTaxaError):
        filter_block(progress, original, TaxaBlock.from_names(["A", "B"]), block)


def test_tree_without_kept_leaves_is_dropped(progress):
    original = TaxaBlock.from_names(["A", "B", "C"])
    tree = Tree(root=Clade(clades=[Clade(name="B"), Clade(name="C")]))
    result = filter_block(progress, original, TaxaBlock.from_names(["A"]), TreesBlock([tree]))
    assert result.ntrees == 0


def test_splits_restricted_and_merged(progress, taxa_abcd):
    block = SplitsBlock(
        [
            ASplit(frozenset({3, 4}), 4, 3.0),
            ASplit(frozenset({2, 4}), 4, 2.0),
            ASplit(frozenset({2}), 4, 1.0),
            ASplit(frozenset({4}), 4, 0.5),
        ],
        Compatibility.INCOMPATIBLE,
    )
    modified = TaxaBlock.from_names(["A", "B", "C"])

    result = filter_block(progress, taxa_abcd, modified, block)

    weights = {split.side: split.weight for split in result.splits}
    assert weights == {frozenset({3}): 3.0, frozenset({2}): 3.0}
    assert all(split.ntax == 3 for split in result.splits)
    assert result.compatibility == Compatibility.UNKNOWN


@pytest.mark.parametrize("kind", sorted(BLOCKS_ABCD))
def test_filter_is_idempotent(progress, taxa_abcd, kind):
    block = BLOCKS_ABCD[kind]()
    modified = TaxaBlock.from_names(["D", "A", "C"])

    once = filter_block(progress, taxa_abcd, modified, block)
    twice = filter_block(progress, modified, modified, once)

    assert twice == once
    assert twice is not once


def test_splits_on_other_taxa_count_rejected(progress, taxa_abcd):
    block = SplitsBlock([ASplit(frozenset({3, 4}), 4, 2.0), ASplit(frozenset({2}), 5, 1.0)])
    with pytest.raises(InconsistentTaxaError):
        filter_block(progress, taxa_abcd, TaxaBlock.from_names(["A", "B"]), block)


def test_filter_function_rejects_wrong_block_type(progress, taxa_abcd):
    characters = CharactersBlock(["AAAA", "CCCC", "GGGG", "TTTT"])
    with pytest.raises(WorkflowError, match="Expected a distances block"):
        get_taxa_filter(BlockKind.DISTANCES)(
            progress, taxa_abcd, TaxaBlock.from_names(["A"]), characters
        )


def test_unknown_working_taxon_fails_closed(progress, taxa_abcd, distances_abcd):
    modified = TaxaBlock.from_names(["A", "E"])
    with pytest.raises(InconsistentTaxaError):
        filter_block(progress, taxa_abcd, modified, distances_abcd)


def test_translate_indices(taxa_abcd):
    assert translate_indices(taxa_abcd, TaxaBlock.from_names(["D", "B"])) == [(4, 1), (2, 2)]


def test_no_filter_for_source_blocks():
    with pytest.raises(NoApplicableHandlerError):
        get_taxa_filter(BlockKind.SOURCE)


def test_taxa_filter_stage_applies_selection(progress, taxa_abcd):
    stage = TaxaFilter()
    stage.set_selection(disabled={"B"}, order=["D", "C", "B", "A"])

    result = stage.run(progress, [taxa_abcd])

    assert result.labels == ["D", "C", "A"]
    assert stage.short_description == "using 3 of 4 taxa"


def test_taxa_filter_stage_rejects_unknown_names(progress, taxa_abcd):
    stage = TaxaFilter(disabled={"Z"})
    with pytest.raises(InconsistentTaxaError):
        stage.run(progress, [taxa_abcd])


def test_data_taxa_filter_stage(progress, taxa_abcd, distances_abcd):
    stage = DataTaxaFilter(BlockKind.DISTANCES)
    modified = TaxaBlock.from_names(["B", "A"])

    result = stage.run(progress, [taxa_abcd, modified, distances_abcd])

    assert np.array_equal(result.matrix, [[0.0, 1.0], [1.0, 0.0]])
    assert stage.short_description == "using 2 of 4 taxa"
