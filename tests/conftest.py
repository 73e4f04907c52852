from io import StringIO

import numpy as np
import pytest
from Bio import Phylo

from phyloflow.blocks import DistancesBlock
from phyloflow.progress import ProgressSilent
from phyloflow.taxa import TaxaBlock


@pytest.fixture
def progress():
    return ProgressSilent()


@pytest.fixture
def taxa_abcd():
    return TaxaBlock.from_names(["A", "B", "C", "D"])


@pytest.fixture
def distances_abcd():
    # AB=1 AC=2 AD=3 BC=4 BD=5 CD=6
    return DistancesBlock(
        matrix=np.array(
            [
                [0.0, 1.0, 2.0, 3.0],
                [1.0, 0.0, 4.0, 5.0],
                [2.0, 4.0, 0.0, 6.0],
                [3.0, 5.0, 6.0, 0.0],
            ]
        )
    )


@pytest.fixture
def additive_distances():
    """Distances of the tree ((A:1,B:2):3,(C:4,D:5))."""
    return DistancesBlock(
        matrix=np.array(
            [
                [0.0, 3.0, 8.0, 9.0],
                [3.0, 0.0, 9.0, 10.0],
                [8.0, 9.0, 0.0, 9.0],
                [9.0, 10.0, 9.0, 0.0],
            ]
        )
    )


@pytest.fixture
def parse_tree():
    def parse(newick: str):
        return Phylo.read(StringIO(newick), "newick")

    return parse


@pytest.fixture
def distances_file(tmp_path):
    path = tmp_path / "example.dist"
    path.write_text(
        "4\n"
        "A 0 3 8 9\n"
        "B 3 0 9 10\n"
        "C 8 9 0 9\n"
        "D 9 10 9 0\n"
    )
    return path
