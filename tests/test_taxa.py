import pytest

from phyloflow.exceptions import InconsistentTaxaError, PhyloflowError
from phyloflow.taxa import TaxaBlock, Taxon


def test_add_is_idempotent():
    taxa = TaxaBlock()
    assert taxa.add("A") == 1
    assert taxa.add("B") == 2
    assert taxa.add("A") == 1
    assert taxa.ntax == 2


def test_index_and_label_lookup(taxa_abcd):
    assert taxa_abcd.index_of("C") == 3
    assert taxa_abcd.index_of(Taxon("D")) == 4
    assert taxa_abcd.index_of("X") == -1
    assert taxa_abcd.label_of(2) == "B"
    assert "A" in taxa_abcd
    assert "X" not in taxa_abcd


def test_get_out_of_range_raises(taxa_abcd):
    with pytest.raises(InconsistentTaxaError):
        taxa_abcd.get(0)
    with pytest.raises(InconsistentTaxaError):
        taxa_abcd.get(5)


def test_empty_taxon_name_rejected():
    with pytest.raises(ValueError):
        Taxon("")


def test_display_label():
    taxa = TaxaBlock.from_names(["A", "B"])
    taxa.set_display_label(2, "Bee")
    assert taxa.display_label_of(1) == "A"
    assert taxa.display_label_of(2) == "Bee"
    # display labels do not take part in identity
    assert Taxon("B", "Bee") == Taxon("B")


def test_frozen_block_rejects_new_taxa(taxa_abcd):
    taxa_abcd.freeze()
    assert taxa_abcd.add("A") == 1
    with pytest.raises(PhyloflowError):
        taxa_abcd.add("E")


def test_subset_keeps_requested_order(taxa_abcd):
    subset = taxa_abcd.subset(["D", "B"])
    assert subset.labels == ["D", "B"]
    assert not subset.frozen


def test_subset_unknown_name_raises(taxa_abcd):
    with pytest.raises(InconsistentTaxaError):
        taxa_abcd.subset(["A", "E"])


def test_sequence_equality_is_order_sensitive(taxa_abcd):
    assert taxa_abcd == TaxaBlock.from_names(["A", "B", "C", "D"])
    assert taxa_abcd != TaxaBlock.from_names(["B", "A", "C", "D"])
    assert taxa_abcd.same_sequence(taxa_abcd.copy())


def test_index_map(taxa_abcd):
    modified = TaxaBlock.from_names(["D", "B"])
    assert taxa_abcd.index_map(modified) == {2: 2, 4: 1}


def test_short_description(taxa_abcd):
    assert taxa_abcd.short_description == "4 taxa"
