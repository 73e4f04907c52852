"""Split systems: weighted bipartitions of the taxon set."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from .base import BlockKind, DataBlock


class Compatibility(str, Enum):
    """Pairwise compatibility status of a split system."""

    COMPATIBLE = "compatible"
    INCOMPATIBLE = "incompatible"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ASplit:
    """Bipartition of taxa ``1..ntax``.

    ``side`` is stored normalized as the part NOT containing taxon 1, so two
    splits describing the same bipartition compare equal.

    Attributes:
        side: One part of the bipartition, as 1-based taxon indices.
        ntax: Number of taxa the split is defined on.
        weight: Split weight (edge length in a tree).
        confidence: Support value, or -1 if unknown.
    """

    side: frozenset[int]
    ntax: int
    weight: float = 1.0
    confidence: float = field(default=-1.0)

    def __post_init__(self) -> None:
        side = frozenset(self.side)
        if any(t < 1 or t > self.ntax for t in side):
            raise ValueError(f"Split side {sorted(side)} not within taxa 1..{self.ntax}")
        if 1 in side:
            side = frozenset(range(1, self.ntax + 1)) - side
        object.__setattr__(self, "side", side)

    @classmethod
    def from_part(
        cls, part: Iterable[int], ntax: int, weight: float = 1.0, confidence: float = -1.0
    ) -> "ASplit":
        return cls(frozenset(part), ntax, weight, confidence)

    @property
    def key(self) -> tuple[frozenset[int], int]:
        """Identity of the bipartition, ignoring weight and confidence."""
        return self.side, self.ntax

    def other_side(self) -> frozenset[int]:
        return frozenset(range(1, self.ntax + 1)) - self.side

    def part_containing(self, t: int) -> frozenset[int]:
        return self.side if t in self.side else self.other_side()

    def part_not_containing(self, t: int) -> frozenset[int]:
        return self.other_side() if t in self.side else self.side

    def size(self) -> int:
        """Size of the smaller part."""
        return min(len(self.side), self.ntax - len(self.side))

    def is_trivial(self) -> bool:
        return self.size() <= 1

    def is_empty(self) -> bool:
        return not self.side

    def is_compatible(self, other: "ASplit") -> bool:
        """Two splits are compatible if one of the four part intersections is empty."""
        a, b = self.side, self.other_side()
        c, d = other.side, other.other_side()
        return not (a & c) or not (a & d) or not (b & c) or not (b & d)

    def with_weight(self, weight: float) -> "ASplit":
        return ASplit(self.side, self.ntax, weight, self.confidence)

    def __str__(self) -> str:
        side = " ".join(str(t) for t in sorted(self.side))
        other = " ".join(str(t) for t in sorted(self.other_side()))
        return f"{other} | {side}"


class SplitsBlock(DataBlock):
    """Ordered list of splits plus their overall compatibility."""

    kind = BlockKind.SPLITS

    def __init__(
        self,
        splits: Iterable[ASplit] = (),
        compatibility: Compatibility = Compatibility.UNKNOWN,
    ) -> None:
        self.splits: list[ASplit] = list(splits)
        self.compatibility = compatibility

    @property
    def nsplits(self) -> int:
        return len(self.splits)

    def size(self) -> int:
        return len(self.splits)

    def get(self, s: int) -> ASplit:
        """Split at 1-based position ``s``."""
        return self.splits[s - 1]

    def add(self, split: ASplit) -> int:
        self.splits.append(split)
        return len(self.splits)

    def compute_compatibility(self) -> Compatibility:
        for i, a in enumerate(self.splits):
            for b in self.splits[i + 1 :]:
                if not a.is_compatible(b):
                    return Compatibility.INCOMPATIBLE
        return Compatibility.COMPATIBLE

    def copy(self) -> "SplitsBlock":
        result = SplitsBlock(self.splits, self.compatibility)
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SplitsBlock):
            return NotImplemented
        return self.splits == other.splits and self.compatibility == other.compatibility
