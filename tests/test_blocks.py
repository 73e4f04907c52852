import numpy as np
import pytest

from phyloflow.blocks import (
    UNDEFINED,
    ASplit,
    CharactersBlock,
    Compatibility,
    DistancesBlock,
    NetworkBlock,
    SplitsBlock,
)


def test_distances_rejects_non_square():
    with pytest.raises(ValueError):
        DistancesBlock(matrix=np.zeros((2, 3)))


def test_distances_undefined_entries(distances_abcd):
    distances_abcd.set_both(1, 3, UNDEFINED)
    assert distances_abcd.is_undefined(3, 1)
    assert distances_abcd.count_undefined() == 2
    assert distances_abcd.max_defined() == 6.0


def test_distances_to_dataframe(distances_abcd):
    df = distances_abcd.to_dataframe(["A", "B", "C", "D"])
    assert df.loc["D", "B"] == 5.0


def test_characters_rows_must_align():
    with pytest.raises(ValueError):
        CharactersBlock(["ACGT", "ACG"])


def test_characters_accessors():
    block = CharactersBlock(["ACGT", "A-GT"])
    assert block.nchar == 4
    assert block.get(2, 2) == "-"
    assert block.column(1) == "AA"
    assert block.is_unknown("?")


def test_split_is_normalized():
    a = ASplit(frozenset({1, 2}), 4)
    b = ASplit(frozenset({3, 4}), 4)
    assert a.side == frozenset({3, 4})
    assert a.key == b.key
    assert str(a) == "1 2 | 3 4"


def test_split_range_checked():
    with pytest.raises(ValueError):
        ASplit(frozenset({5}), 4)


def test_split_compatibility():
    ab_cd = ASplit(frozenset({3, 4}), 4)
    ac_bd = ASplit(frozenset({2, 4}), 4)
    trivial = ASplit(frozenset({4}), 4)
    assert not ab_cd.is_compatible(ac_bd)
    assert ab_cd.is_compatible(trivial)
    assert trivial.is_trivial()
    assert ab_cd.size() == 2

    block = SplitsBlock([ab_cd, trivial])
    assert block.compute_compatibility() == Compatibility.COMPATIBLE
    block.add(ac_bd)
    assert block.compute_compatibility() == Compatibility.INCOMPATIBLE


def test_network_delete_cascades_edges():
    network = NetworkBlock()
    a = network.new_node(label="A", taxon=1)
    b = network.new_node(label="B", taxon=2)
    c = network.new_node()
    network.new_edge(a, c, weight=2.0)
    network.new_edge(b, c)

    network.delete_node(c)

    assert network.num_nodes == 2
    assert network.num_edges == 0
    assert network.nodes_with_taxa() == [a, b]


def test_network_copy_is_deep():
    network = NetworkBlock()
    a = network.new_node(label="A", taxon=1, color="red")
    copy = network.copy()
    copy.node_data(a)["color"] = "blue"
    copy.set_taxon(a, 5)
    assert network.node_data(a) == {"color": "red"}
    assert network.taxon_of(a) == 1
    assert copy.new_node() == 2


def test_network_rejects_duplicate_ids_and_dangling_edges():
    network = NetworkBlock()
    network.new_node(node_id=7)
    with pytest.raises(ValueError):
        network.new_node(node_id=7)
    with pytest.raises(KeyError):
        network.new_edge(7, 8)
