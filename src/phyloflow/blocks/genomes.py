"""Data models for genome collections."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .base import BlockKind, DataBlock


@dataclass
class GenomePart:
    """One contig, chromosome or plasmid of a genome."""

    name: str
    sequence: str = ""
    length: int = 0

    def __post_init__(self) -> None:
        if self.sequence and not self.length:
            self.length = len(self.sequence)


@dataclass
class Genome:
    """A named genome made of one or more parts."""

    name: str
    accession: str = ""
    parts: list[GenomePart] = field(default_factory=list)
    additional_fields: dict[str, Any] = field(default_factory=dict)

    @property
    def length(self) -> int:
        return sum(p.length for p in self.parts)

    @property
    def num_parts(self) -> int:
        return len(self.parts)

    def iter_sequences(self) -> Iterator[str]:
        for part in self.parts:
            yield part.sequence

    def copy(self) -> "Genome":
        """Copy the record; sequence strings are immutable and shared."""
        return Genome(
            name=self.name,
            accession=self.accession,
            parts=[GenomePart(p.name, p.sequence, p.length) for p in self.parts],
            additional_fields=dict(self.additional_fields),
        )


class GenomesBlock(DataBlock):
    """Ordered genomes; position i holds the genome of taxon i (1-based)."""

    kind = BlockKind.GENOMES

    def __init__(self, genomes: list[Genome] | None = None) -> None:
        self.genomes: list[Genome] = list(genomes) if genomes else []

    @property
    def n_genomes(self) -> int:
        return len(self.genomes)

    def size(self) -> int:
        return len(self.genomes)

    def get_genome(self, t: int) -> Genome:
        return self.genomes[t - 1]

    def add_genome(self, genome: Genome) -> int:
        self.genomes.append(genome)
        return len(self.genomes)

    def copy(self) -> "GenomesBlock":
        result = GenomesBlock([g.copy() for g in self.genomes])
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenomesBlock):
            return NotImplemented
        return self.genomes == other.genomes
