"""Readers turning input files into a taxa block plus one data block.

Each reader declares the file extensions it handles and a cheap
``accepts_first_line`` test on the first non-blank line; the loader uses
both to pick a reader. ``read`` builds fresh blocks and never touches
blocks owned by anybody else.
"""

import csv
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

import numpy as np
from Bio import Phylo, SeqIO

from phyloflow.blocks import (
    UNDEFINED,
    BlockKind,
    CharactersBlock,
    DataBlock,
    DistancesBlock,
    Genome,
    GenomePart,
    GenomesBlock,
    NetworkBlock,
    TreesBlock,
)
from phyloflow.exceptions import CodecError, InconsistentTaxaError, UnlabeledLeafError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

logger = logging.getLogger(__name__)

_UNDEFINED_TOKENS = {"?", "-1", "-1.0", "NaN", "nan"}
_DNA_SYMBOLS = set("ACGTUNRYKMSWBDHV-?.")
_NODE_COLUMNS = ("node_id", "label", "taxon")
_EDGE_COLUMNS = ("source", "target", "weight")


def read_first_line(path: Path) -> str:
    """First non-blank line of a text file, stripped; empty if there is none."""
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.strip():
                return line.strip()
    return ""


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def _guess_data_type(rows: Sequence[str]) -> str:
    symbols = set("".join(rows).upper())
    return "dna" if symbols <= _DNA_SYMBOLS else "protein"


class Reader(ABC):
    """Base class for file readers."""

    name: ClassVar[str]
    kind: ClassVar[BlockKind]
    extensions: ClassVar[tuple[str, ...]]

    def accepts_extension(self, path: Path) -> bool:
        return path.name.lower().endswith(self.extensions)

    @abstractmethod
    def accepts_first_line(self, line: str) -> bool:
        """Whether the first non-blank line looks like this format."""

    def accepts_file(self, path: Path) -> bool:
        if not self.accepts_extension(path):
            return False
        try:
            first_line = read_first_line(path)
        except UnicodeDecodeError:
            return False
        return self.accepts_first_line(first_line)

    @abstractmethod
    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        """Parse the given files into a new taxa block and data block."""

    def __str__(self) -> str:
        return self.name


class PhylipDistancesReader(Reader):
    """PHYLIP distance matrix: square, or lower triangle with or without diagonal.

    The first line holds the number of taxa; each following line holds a
    taxon name and its row. ``?`` and ``-1`` mark undefined distances.
    """

    name = "phylip-distances"
    kind = BlockKind.DISTANCES
    extensions = (".dist", ".phydist", ".dst")

    def accepts_first_line(self, line: str) -> bool:
        tokens = line.split()
        return len(tokens) == 1 and _is_int(tokens[0])

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        path = paths[0]
        with open(path, encoding="utf-8") as f:
            lines = [line.split() for line in f if line.strip()]
        if not lines:
            raise CodecError(path, "empty file")

        ntax = int(lines[0][0])
        rows = lines[1:]
        if len(rows) != ntax:
            raise CodecError(path, f"expected {ntax} rows, found {len(rows)}")
        triangular = ntax > 1 and len(rows[0]) - 1 < ntax

        taxa = TaxaBlock()
        distances = DistancesBlock(ntax)
        progress.set_maximum(ntax)
        for i, row in enumerate(rows):
            name, values = row[0], row[1:]
            if taxa.index_of(name) != -1:
                raise InconsistentTaxaError(f"Duplicate taxon '{name}' in {path.name}")
            taxa.add(name)
            expected = (i, i + 1) if triangular else (ntax,)
            if len(values) not in expected:
                raise CodecError(
                    path,
                    f"row {i + 1} ({name}): expected {expected[-1]} values, found {len(values)}",
                )
            for j, token in enumerate(values):
                value = UNDEFINED if token in _UNDEFINED_TOKENS else float(token)
                distances.matrix[i, j] = value
                if triangular:
                    distances.matrix[j, i] = value
            progress.increment_progress()

        np.fill_diagonal(distances.matrix, 0.0)
        return taxa, distances


class PhylipCharactersReader(Reader):
    """PHYLIP alignment, sequential (one line per taxon) or interleaved."""

    name = "phylip-characters"
    kind = BlockKind.CHARACTERS
    extensions = (".phy", ".phylip")

    def accepts_first_line(self, line: str) -> bool:
        tokens = line.split()
        return len(tokens) == 2 and all(_is_int(t) for t in tokens)  # noqa: PLR2004

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        path = paths[0]
        with open(path, encoding="utf-8") as f:
            lines = [line.strip() for line in f if line.strip()]
        if not lines:
            raise CodecError(path, "empty file")
        ntax, nchar = (int(t) for t in lines[0].split())

        taxa = TaxaBlock()
        rows: list[str] = []
        progress.set_maximum(len(lines) - 1)
        for k, line in enumerate(lines[1:]):
            if k < ntax:
                name, *rest = line.split(maxsplit=1)
                sequence = rest[0] if rest else ""
                if taxa.index_of(name) != -1:
                    raise InconsistentTaxaError(f"Duplicate taxon '{name}' in {path.name}")
                taxa.add(name)
                rows.append("".join(sequence.split()))
            else:
                rows[k % ntax] += "".join(line.split())
            progress.increment_progress()

        if len(rows) != ntax:
            raise CodecError(path, f"expected {ntax} sequences, found {len(rows)}")
        for name, row in zip(taxa.labels, rows, strict=True):
            if len(row) != nchar:
                raise CodecError(
                    path, f"sequence '{name}' has {len(row)} characters, expected {nchar}"
                )
        return taxa, CharactersBlock(rows, data_type=_guess_data_type(rows))


class FastaCharactersReader(Reader):
    """Aligned FASTA; all sequences must have the same length."""

    name = "fasta-characters"
    kind = BlockKind.CHARACTERS
    extensions = (".fasta", ".fas", ".fa", ".aln")

    def accepts_first_line(self, line: str) -> bool:
        return line.startswith(">")

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        path = paths[0]
        taxa = TaxaBlock()
        rows: list[str] = []
        with open(path, encoding="utf-8") as handle:
            for record in SeqIO.parse(handle, "fasta"):
                if taxa.index_of(record.id) != -1:
                    raise InconsistentTaxaError(f"Duplicate taxon '{record.id}' in {path.name}")
                taxa.add(record.id)
                rows.append(str(record.seq))
                progress.check_for_cancel()
        if not rows:
            raise CodecError(path, "no sequences found")
        if len({len(r) for r in rows}) > 1:
            raise CodecError(path, "sequences are not aligned (lengths differ)")
        return taxa, CharactersBlock(rows, data_type=_guess_data_type(rows))


class FastaGenomesReader(Reader):
    """Genomes from FASTA.

    Several files give one genome per file (named by file stem, one part per
    record); a single file gives one genome per record.
    """

    name = "fasta-genomes"
    kind = BlockKind.GENOMES
    extensions = (".fna", ".fasta", ".fa", ".fas", ".ffn")

    def accepts_first_line(self, line: str) -> bool:
        return line.startswith(">")

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        taxa = TaxaBlock()
        genomes = GenomesBlock()
        progress.set_maximum(len(paths))
        if len(paths) > 1:
            for path in paths:
                with open(path, encoding="utf-8") as handle:
                    parts = [GenomePart(r.id, str(r.seq)) for r in SeqIO.parse(handle, "fasta")]
                self._add(taxa, genomes, Genome(path.stem, parts=parts), path)
                progress.increment_progress()
        else:
            path = paths[0]
            with open(path, encoding="utf-8") as handle:
                for record in SeqIO.parse(handle, "fasta"):
                    part = GenomePart(record.id, str(record.seq))
                    genome = Genome(record.id, accession=record.id, parts=[part])
                    self._add(taxa, genomes, genome, path)
                    progress.check_for_cancel()
            progress.increment_progress()

        if genomes.n_genomes == 0:
            raise CodecError(paths[0], "no genomes found")
        return taxa, genomes

    @staticmethod
    def _add(taxa: TaxaBlock, genomes: GenomesBlock, genome: Genome, path: Path) -> None:
        if taxa.index_of(genome.name) != -1:
            raise InconsistentTaxaError(f"Duplicate genome '{genome.name}' in {path.name}")
        taxa.add(genome.name)
        genomes.add_genome(genome)


class NewickTreesReader(Reader):
    """One or more Newick trees; taxa are the leaf labels in order of appearance."""

    name = "newick"
    kind = BlockKind.TREES
    extensions = (".tre", ".tree", ".trees", ".nwk", ".newick")

    def accepts_first_line(self, line: str) -> bool:
        return line.startswith("(") or line.startswith("[")

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        path = paths[0]
        taxa = TaxaBlock()
        block = TreesBlock()
        with open(path, encoding="utf-8") as handle:
            for number, tree in enumerate(Phylo.parse(handle, "newick"), start=1):
                seen: set[str] = set()
                for leaf in tree.get_terminals():
                    if not leaf.name:
                        raise UnlabeledLeafError(f"Tree {number} has a leaf without label", path)
                    if leaf.name in seen:
                        raise InconsistentTaxaError(
                            f"Tree {number} in {path.name} has duplicate leaf label '{leaf.name}'"
                        )
                    seen.add(leaf.name)
                    taxa.add(leaf.name)
                block.add_tree(tree)
                progress.check_for_cancel()

        if block.ntrees == 0:
            raise CodecError(path, "no trees found")
        block.rooted = all(tree.rooted for tree in block.trees)
        block.partial = any(len(tree.get_terminals()) < taxa.ntax for tree in block.trees)
        return taxa, block


class NetworkCsvReader(Reader):
    """Network from a ``*nodes.csv`` file and its ``*edges.csv`` sibling.

    Node columns: ``node_id``, ``label``, ``taxon`` (optional), other columns
    become annotations. Labeled nodes are taxa; ``taxon`` fixes their order.
    """

    name = "network-csv"
    kind = BlockKind.NETWORK
    extensions = ("nodes.csv",)

    def accepts_first_line(self, line: str) -> bool:
        return "node_id" in line.split(",")

    def read(
        self, progress: ProgressListener, paths: Sequence[Path]
    ) -> tuple[TaxaBlock, DataBlock]:
        nodes_path = paths[0]
        edges_path = edges_path_for(nodes_path)
        if not edges_path.exists():
            raise CodecError(nodes_path, f"missing edges file {edges_path.name}")

        with open(nodes_path, encoding="utf-8") as f:
            node_rows = list(csv.DictReader(f))
        with open(edges_path, encoding="utf-8") as f:
            edge_rows = list(csv.DictReader(f))

        labeled = [row for row in node_rows if row.get("label")]
        labeled.sort(key=lambda row: int(row["taxon"]) if row.get("taxon") else len(node_rows) + 1)
        taxa = TaxaBlock()
        for row in labeled:
            if taxa.index_of(row["label"]) != -1:
                raise InconsistentTaxaError(
                    f"Duplicate node label '{row['label']}' in {nodes_path.name}"
                )
            taxa.add(row["label"])

        network = NetworkBlock(name=nodes_path.stem.removesuffix("nodes").rstrip("_-") or "Network")
        progress.set_maximum(len(node_rows) + len(edge_rows))
        for row in node_rows:
            label = row.get("label") or None
            annotations = {k: v for k, v in row.items() if k not in _NODE_COLUMNS and v}
            network.new_node(
                label=label,
                taxon=taxa.index_of(label) if label else None,
                node_id=int(row["node_id"]),
                **annotations,
            )
            progress.increment_progress()
        for row in edge_rows:
            annotations = {k: v for k, v in row.items() if k not in _EDGE_COLUMNS and v}
            weight = float(row["weight"]) if row.get("weight") else 1.0
            network.new_edge(int(row["source"]), int(row["target"]), weight=weight, **annotations)
            progress.increment_progress()
        return taxa, network


def edges_path_for(nodes_path: Path) -> Path:
    stem, _, _ = nodes_path.name.rpartition("nodes")
    return nodes_path.with_name(f"{stem}edges.csv")


# Static reader table; order breaks ties between readers accepting the same file
READERS: tuple[Reader, ...] = (
    PhylipDistancesReader(),
    PhylipCharactersReader(),
    FastaCharactersReader(),
    FastaGenomesReader(),
    NewickTreesReader(),
    NetworkCsvReader(),
)
