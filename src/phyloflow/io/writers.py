"""Writers serializing a data block (with its taxa) to text files."""

import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

import pandas as pd
from Bio import Phylo, SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from phyloflow.blocks import BlockKind, DataBlock, NetworkBlock, require_block
from phyloflow.taxa import TaxaBlock

from .readers import edges_path_for

logger = logging.getLogger(__name__)


class Writer(ABC):
    """Base class for file writers."""

    name: ClassVar[str]
    kind: ClassVar[BlockKind]
    extension: ClassVar[str]

    @abstractmethod
    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        """Write ``block`` to ``output``, creating parent directories."""

    def __str__(self) -> str:
        return self.name


class PhylipDistancesWriter(Writer):
    """Square PHYLIP matrix; undefined entries are written as -1."""

    name = "phylip-distances"
    kind = BlockKind.DISTANCES
    extension = ".dist"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            f.write(f"{block.ntax}\n")
            for i in range(1, block.ntax + 1):
                values = " ".join(f"{block.get(i, j):.8g}" for j in range(1, block.ntax + 1))
                f.write(f"{taxa.label_of(i)}\t{values}\n")


class FastaCharactersWriter(Writer):
    name = "fasta-characters"
    kind = BlockKind.CHARACTERS
    extension = ".fasta"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        output.parent.mkdir(parents=True, exist_ok=True)
        records = [
            SeqRecord(Seq(block.get_row(t)), id=taxa.label_of(t), description="")
            for t in range(1, block.ntax + 1)
        ]
        with open(output, "w", encoding="utf-8") as handle:
            SeqIO.write(records, handle, "fasta")


class FastaGenomesWriter(Writer):
    """One FASTA record per genome part, named ``genome`` or ``genome|part``."""

    name = "fasta-genomes"
    kind = BlockKind.GENOMES
    extension = ".fna"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        output.parent.mkdir(parents=True, exist_ok=True)
        records = []
        for t, genome in enumerate(block.genomes, start=1):
            name = taxa.label_of(t)
            for part in genome.parts:
                record_id = name if genome.num_parts == 1 else f"{name}|{part.name}"
                records.append(SeqRecord(Seq(part.sequence), id=record_id, description=""))
        with open(output, "w", encoding="utf-8") as handle:
            SeqIO.write(records, handle, "fasta")


class NewickTreesWriter(Writer):
    name = "newick"
    kind = BlockKind.TREES
    extension = ".tre"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as handle:
            Phylo.write(block.trees, handle, "newick")


class SplitsTsvWriter(Writer):
    """Splits as a TSV table: one row per split with the labels of its side."""

    name = "splits-tsv"
    kind = BlockKind.SPLITS
    extension = ".tsv"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        output.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(
            [
                {
                    "split": s,
                    "size": split.size(),
                    "weight": split.weight,
                    "confidence": split.confidence,
                    "side": ",".join(taxa.label_of(t) for t in sorted(split.side)),
                }
                for s, split in enumerate(block.splits, start=1)
            ],
            columns=["split", "size", "weight", "confidence", "side"],
        )
        df.to_csv(output, sep="\t", index=False)


class NetworkCsvWriter(Writer):
    """Network as ``<name>_nodes.csv`` plus ``<name>_edges.csv``.

    Annotation keys become extra columns.
    """

    name = "network-csv"
    kind = BlockKind.NETWORK
    extension = "_nodes.csv"

    def write(self, output: Path, taxa: TaxaBlock, block: DataBlock) -> None:
        require_block(block, self.kind)
        nodes_path = output
        if not output.name.endswith("nodes.csv"):
            nodes_path = output.with_name(f"{output.name}_nodes.csv")
        write_nodes(nodes_path, block)
        write_edges(edges_path_for(nodes_path), block)


def write_nodes(path: Path, network: NetworkBlock) -> None:
    """Write network nodes to CSV."""
    nodes = network.node_records()
    keys = sorted({k for node in nodes for k in node.annotations})
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["node_id", "label", "taxon", *keys])
        for node in nodes:
            w.writerow(
                [
                    node.node_id,
                    node.label or "",
                    node.taxon if node.taxon is not None else "",
                    *(node.annotations.get(k, "") for k in keys),
                ]
            )


def write_edges(path: Path, network: NetworkBlock) -> None:
    """Write network edges to CSV."""
    edges = network.edge_records()
    keys = sorted({k for edge in edges for k in edge.annotations})
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["source", "target", "weight", *keys])
        for edge in edges:
            extra = (edge.annotations.get(k, "") for k in keys)
            w.writerow([edge.source, edge.target, edge.weight, *extra])


# Static writer table; the first writer of a kind is its default
WRITERS: tuple[Writer, ...] = (
    PhylipDistancesWriter(),
    FastaCharactersWriter(),
    FastaGenomesWriter(),
    NewickTreesWriter(),
    SplitsTsvWriter(),
    NetworkCsvWriter(),
)
