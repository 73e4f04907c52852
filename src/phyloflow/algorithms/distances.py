"""Algorithms producing or repairing distance matrices."""

import hashlib
import heapq
import logging
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

import numpy as np

from phyloflow.blocks import UNDEFINED, BlockKind, CharactersBlock, DistancesBlock, GenomesBlock
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .base import Algorithm

logger = logging.getLogger(__name__)

# Distance reported when two sketches share no hash
MASH_NO_OVERLAP_DISTANCE: float = 0.75

_COMPLEMENT = str.maketrans("ACGT", "TGCA")
_NON_ACGT = re.compile(r"[^ACGT]+")


# ---------------------------------------------------------------------------
# Undefined-distance repair


def compute_large_value(max_value: float) -> float:
    """Smallest clean figure (leading digit times a power of ten) >= 1.1 * max_value.

    Examples: 8.7 -> 10, 0.0257 -> 0.03, 45 -> 50. Returns 1.0 when there is
    no positive maximum to scale from.
    """
    target = 1.1 * max_value
    if target <= 0:
        return 1.0
    exponent = math.floor(math.log10(target))
    scale = 10.0**exponent
    digit = math.ceil(round(target / scale, 9))
    return round(digit * scale, max(0, -exponent))


def fill_undefined_distances(block: DistancesBlock) -> tuple[DistancesBlock, int, float]:
    """Return a copy with every undefined off-diagonal entry set to one large value.

    Returns:
        Tuple of (repaired copy, number of replaced entries, value used).
        The value is 0.0 if nothing needed replacing.
    """
    result = block.copy()
    mask = result.undefined_mask()
    count = int(mask.sum())
    if count == 0:
        return result, 0, 0.0

    value = compute_large_value(block.max_defined())
    result.matrix[mask] = value
    logger.warning("Replaced %d undefined distances by %s", count, value)
    return result, count, value


@dataclass
class FillUndefinedDistances(Algorithm[DistancesBlock, DistancesBlock]):
    """Replace undefined distances by a value just above the largest defined one."""

    name: ClassVar[str] = "FillUndefinedDistances"
    from_kind: ClassVar[BlockKind] = BlockKind.DISTANCES
    to_kind: ClassVar[BlockKind] = BlockKind.DISTANCES

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: DistancesBlock
    ) -> DistancesBlock:
        progress.set_maximum(1)
        result, count, value = fill_undefined_distances(block)
        progress.increment_progress()
        result.short_description = (
            f"replaced {count} undefined distances by {value}" if count else "no undefined distances"
        )
        return result


# ---------------------------------------------------------------------------
# Hamming distances


@dataclass
class HammingDistances(Algorithm[CharactersBlock, DistancesBlock]):
    """Proportion of differing sites between aligned sequences.

    Sites where either sequence has a gap or missing symbol are ignored; a
    pair without any comparable site gets the undefined distance.
    """

    name: ClassVar[str] = "HammingDistances"
    from_kind: ClassVar[BlockKind] = BlockKind.CHARACTERS
    to_kind: ClassVar[BlockKind] = BlockKind.DISTANCES

    ignore_case: bool = True

    def is_applicable(self, taxa: TaxaBlock, block: CharactersBlock) -> bool:
        return block.ntax == taxa.ntax and block.nchar > 0

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: CharactersBlock
    ) -> DistancesBlock:
        rows = [r.upper() for r in block.rows] if self.ignore_case else block.rows
        codes = np.array([np.frombuffer(r.encode("ascii"), dtype=np.uint8) for r in rows])
        unknown = np.isin(codes, [ord(block.gap_char), ord(block.missing_char)])

        ntax = block.ntax
        result = DistancesBlock(ntax)
        undefined = 0
        progress.set_maximum(ntax)
        for i in range(ntax):
            for j in range(i + 1, ntax):
                comparable = ~(unknown[i] | unknown[j])
                n = int(comparable.sum())
                if n == 0:
                    distance = UNDEFINED
                    undefined += 1
                else:
                    distance = float((codes[i][comparable] != codes[j][comparable]).sum()) / n
                result.set_both(i + 1, j + 1, distance)
            progress.increment_progress()

        if undefined:
            logger.warning("%d pairs of sequences have no comparable sites", undefined)
        result.short_description = f"hamming distances on {block.nchar} sites"
        return result


# ---------------------------------------------------------------------------
# Mash


class GenomeDistanceType(str, Enum):
    MASH = "mash"
    JACCARD = "jaccard"


def _hash_kmer(kmer: str, seed: int) -> int:
    digest = hashlib.blake2b(kmer.encode("ascii"), digest_size=8, salt=seed.to_bytes(16, "little"))
    return int.from_bytes(digest.digest(), "little")


def _iter_kmers(sequence: str, kmer_size: int, nucleotide: bool) -> Iterable[str]:
    sequence = sequence.upper()
    fragments = _NON_ACGT.split(sequence) if nucleotide else [sequence]
    for fragment in fragments:
        for i in range(len(fragment) - kmer_size + 1):
            kmer = fragment[i : i + kmer_size]
            if nucleotide:
                reverse = kmer.translate(_COMPLEMENT)[::-1]
                yield min(kmer, reverse)
            else:
                yield kmer


def compute_sketch(
    sequences: Iterable[str],
    kmer_size: int,
    sketch_size: int,
    seed: int = 42,
    nucleotide: bool = True,
    ignore_unique_kmers: bool = False,
) -> list[int]:
    """Bottom-s MinHash sketch of all k-mers of the given sequences.

    DNA k-mers are canonicalized with their reverse complement. With
    ``ignore_unique_kmers`` a k-mer enters the sketch only once seen twice.

    Returns:
        Sorted list of at most ``sketch_size`` hash values.
    """
    heap: list[int] = []  # max-heap of negated hashes
    members: set[int] = set()
    seen_once: set[int] = set()
    for sequence in sequences:
        for kmer in _iter_kmers(sequence, kmer_size, nucleotide):
            value = _hash_kmer(kmer, seed)
            if value in members:
                continue
            if ignore_unique_kmers and value not in seen_once:
                seen_once.add(value)
                continue
            if len(heap) < sketch_size:
                heapq.heappush(heap, -value)
                members.add(value)
            elif value < -heap[0]:
                removed = -heapq.heapreplace(heap, -value)
                members.discard(removed)
                members.add(value)
    return sorted(members)


def estimate_jaccard(sketch_a: list[int], sketch_b: list[int], sketch_size: int) -> float:
    """Jaccard index estimated from the bottom ``sketch_size`` hashes of the union."""
    union = sorted(set(sketch_a) | set(sketch_b))[:sketch_size]
    if not union:
        return 0.0
    shared = set(sketch_a) & set(sketch_b)
    return sum(1 for value in union if value in shared) / len(union)


def mash_distance(jaccard: float, kmer_size: int) -> float:
    if jaccard <= 0:
        return MASH_NO_OVERLAP_DISTANCE
    if jaccard >= 1:
        return 0.0
    return -math.log(2 * jaccard / (1 + jaccard)) / kmer_size


@dataclass
class MashDistances(Algorithm[GenomesBlock, DistancesBlock]):
    """Genome distances estimated from k-mer MinHash sketches."""

    name: ClassVar[str] = "MashDistances"
    from_kind: ClassVar[BlockKind] = BlockKind.GENOMES
    to_kind: ClassVar[BlockKind] = BlockKind.DISTANCES
    citation: ClassVar[str] = (
        "Ondov et al 2016; Mash: fast genome and metagenome distance estimation using MinHash. "
        "Genome Biol 17, 132 (2016)."
    )

    kmer_size: int = 15
    sketch_size: int = 10000
    hash_seed: int = 42
    distance_type: GenomeDistanceType = GenomeDistanceType.MASH
    nucleotide: bool = True
    ignore_unique_kmers: bool = False

    def is_applicable(self, taxa: TaxaBlock, block: GenomesBlock) -> bool:
        return block.n_genomes == taxa.ntax and block.n_genomes > 0

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: GenomesBlock
    ) -> DistancesBlock:
        progress.set_subtask("sketching")
        progress.set_maximum(block.n_genomes)
        sketches = []
        for genome in block.genomes:
            sketches.append(
                compute_sketch(
                    genome.iter_sequences(),
                    self.kmer_size,
                    self.sketch_size,
                    self.hash_seed,
                    self.nucleotide,
                    self.ignore_unique_kmers,
                )
            )
            progress.increment_progress()

        too_small = sum(1 for s in sketches if len(s) < self.sketch_size)
        if too_small:
            logger.warning("Too few k-mers for %d genomes, rerun with smaller sketch size", too_small)

        ntax = block.n_genomes
        result = DistancesBlock(ntax)
        no_overlap = 0
        progress.set_subtask("distances")
        progress.set_maximum(ntax * (ntax - 1) // 2)
        for i in range(ntax):
            for j in range(i + 1, ntax):
                jaccard = estimate_jaccard(sketches[i], sketches[j], self.sketch_size)
                if self.distance_type == GenomeDistanceType.JACCARD:
                    distance = 1.0 - jaccard
                else:
                    distance = mash_distance(jaccard, self.kmer_size)
                    if jaccard <= 0:
                        no_overlap += 1
                result.set_both(i + 1, j + 1, distance)
                progress.increment_progress()

        if no_overlap:
            logger.warning(
                "Failed to estimate distance for %d pairs (distances set to %s), "
                "increase sketch size or decrease k",
                no_overlap,
                MASH_NO_OVERLAP_DISTANCE,
            )
        result.short_description = (
            f"{self.distance_type.value} distances, k={self.kmer_size}, s={self.sketch_size}"
        )
        return result
