"""Tree set block backed by Bio.Phylo trees."""

import copy
from io import StringIO

from Bio import Phylo
from Bio.Phylo.BaseTree import Tree

from .base import BlockKind, DataBlock


def tree_to_newick(tree: Tree) -> str:
    """Serialize one tree to a single-line Newick string."""
    handle = StringIO()
    Phylo.write(tree, handle, "newick")
    return handle.getvalue().strip()


def leaf_labels(tree: Tree) -> list[str | None]:
    return [leaf.name for leaf in tree.get_terminals()]


class TreesBlock(DataBlock):
    """List of phylogenetic trees whose leaf names are taxon labels.

    Attributes:
        trees: The trees, in input order.
        rooted: Whether the trees are to be interpreted as rooted.
        partial: True if some tree does not contain all taxa.
    """

    kind = BlockKind.TREES

    def __init__(
        self, trees: list[Tree] | None = None, rooted: bool = False, partial: bool = False
    ) -> None:
        self.trees: list[Tree] = list(trees) if trees else []
        self.rooted = rooted
        self.partial = partial

    @property
    def ntrees(self) -> int:
        return len(self.trees)

    def size(self) -> int:
        return len(self.trees)

    def get_tree(self, t: int) -> Tree:
        """Tree at 1-based position ``t``."""
        return self.trees[t - 1]

    def add_tree(self, tree: Tree) -> int:
        self.trees.append(tree)
        return len(self.trees)

    def copy(self) -> "TreesBlock":
        result = TreesBlock(copy.deepcopy(self.trees), self.rooted, self.partial)
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TreesBlock):
            return NotImplemented
        return (
            self.rooted == other.rooted
            and self.partial == other.partial
            and [tree_to_newick(t) for t in self.trees] == [tree_to_newick(t) for t in other.trees]
        )
