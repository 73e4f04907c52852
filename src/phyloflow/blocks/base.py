"""Common base for data blocks and the block-kind tag."""

from abc import ABC, abstractmethod
from enum import Enum


class BlockKind(str, Enum):
    """Kind of data held by a block.

    The taxa filter and the workflow branch on this tag instead of on the
    concrete block class.
    """

    TAXA = "taxa"
    SOURCE = "source"
    DISTANCES = "distances"
    GENOMES = "genomes"
    CHARACTERS = "characters"
    SPLITS = "splits"
    TREES = "trees"
    NETWORK = "network"


class DataBlock(ABC):
    """A typed container of phylogenetic data indexed against a taxa block.

    Subclasses set ``kind`` and implement value equality, ``copy`` and
    ``size``. ``short_description`` is filled in by whoever computes the block.
    """

    kind: BlockKind
    short_description: str = ""

    @abstractmethod
    def copy(self) -> "DataBlock":
        """Return a deep value copy of this block."""

    @abstractmethod
    def size(self) -> int:
        """Number of top-level items (rows, trees, splits, nodes)."""

    def is_empty(self) -> bool:
        return self.size() == 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self.size()})"
