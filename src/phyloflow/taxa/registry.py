"""Taxon and taxon registry (TaxaBlock).

The registry is the coordinate system of every other data block: taxon
indices are 1-based and run from 1 to ``ntax``.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from phyloflow.blocks.base import BlockKind
from phyloflow.exceptions import InconsistentTaxaError, PhyloflowError

logger = logging.getLogger(__name__)


@dataclass(unsafe_hash=True)
class Taxon:
    """A named entity under study.

    Identity is the name; the display label and info do not take part in
    equality or hashing. Only ``display_label`` may change after creation.
    """

    name: str
    display_label: str | None = field(default=None, compare=False)
    info: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Taxon name must be non-empty")

    @property
    def display_label_or_name(self) -> str:
        return self.display_label if self.display_label else self.name


class TaxaBlock:
    """Ordered, deduplicated sequence of taxa.

    The block is writable while it is being built (by a loader or the taxa
    filter) and becomes read-only once :meth:`freeze` is called, which the
    workflow does before publishing it to other nodes.
    """

    kind = BlockKind.TAXA

    def __init__(self, taxa: Iterable[Taxon | str] = (), name: str = "Taxa") -> None:
        self.name = name
        self._taxa: list[Taxon] = []
        self._index: dict[str, int] = {}
        self._frozen = False
        for taxon in taxa:
            self.add_taxon(taxon if isinstance(taxon, Taxon) else Taxon(taxon))

    @classmethod
    def from_names(cls, names: Iterable[str], name: str = "Taxa") -> "TaxaBlock":
        return cls((Taxon(n) for n in names), name=name)

    # ------------------------------------------------------------------
    # Queries

    @property
    def ntax(self) -> int:
        return len(self._taxa)

    def __len__(self) -> int:
        return len(self._taxa)

    def __iter__(self) -> Iterator[Taxon]:
        return iter(self._taxa)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Taxon):
            return item.name in self._index
        if isinstance(item, str):
            return item in self._index
        return False

    @property
    def taxa(self) -> tuple[Taxon, ...]:
        return tuple(self._taxa)

    @property
    def labels(self) -> list[str]:
        """Taxon names in index order."""
        return [t.name for t in self._taxa]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, index: int) -> Taxon:
        """Return the taxon at a 1-based index.

        Raises:
            InconsistentTaxaError: If the index is outside ``1..ntax``.
        """
        if not 1 <= index <= len(self._taxa):
            raise InconsistentTaxaError(f"Taxon index {index} out of range 1..{len(self._taxa)}")
        return self._taxa[index - 1]

    def get_by_name(self, name: str) -> Taxon | None:
        index = self._index.get(name)
        return self._taxa[index - 1] if index is not None else None

    def index_of(self, taxon: Taxon | str) -> int:
        """Return the 1-based index of a taxon (or name), or -1 if absent."""
        name = taxon.name if isinstance(taxon, Taxon) else taxon
        return self._index.get(name, -1)

    def label_of(self, index: int) -> str:
        return self.get(index).name

    def display_label_of(self, index: int) -> str:
        return self.get(index).display_label_or_name

    # ------------------------------------------------------------------
    # Mutation

    def add(self, name: str) -> int:
        """Add a taxon by name and return its index.

        Adding a name that is already present returns the existing index.
        """
        return self.add_taxon(Taxon(name))

    def add_taxon(self, taxon: Taxon) -> int:
        existing = self._index.get(taxon.name)
        if existing is not None:
            return existing
        if self._frozen:
            raise PhyloflowError(f"Cannot add taxon '{taxon.name}': registry '{self.name}' is frozen")
        self._taxa.append(taxon)
        self._index[taxon.name] = len(self._taxa)
        return len(self._taxa)

    def set_display_label(self, index: int, label: str | None) -> None:
        self.get(index).display_label = label

    def freeze(self) -> "TaxaBlock":
        self._frozen = True
        return self

    # ------------------------------------------------------------------
    # Derived registries

    def copy(self) -> "TaxaBlock":
        """Return an unfrozen copy sharing no taxon objects with this one."""
        return TaxaBlock(
            (Taxon(t.name, t.display_label, t.info) for t in self._taxa),
            name=self.name,
        )

    def subset(self, names: Iterable[str]) -> "TaxaBlock":
        """Return a new registry holding the given taxa in the given order.

        Raises:
            InconsistentTaxaError: If a name is not in this registry.
        """
        result = TaxaBlock(name=self.name)
        for name in names:
            taxon = self.get_by_name(name)
            if taxon is None:
                raise InconsistentTaxaError(f"Taxon '{name}' not found in registry '{self.name}'")
            result.add_taxon(Taxon(taxon.name, taxon.display_label, taxon.info))
        return result

    def index_map(self, modified: "TaxaBlock") -> dict[int, int]:
        """Map indices of this registry to indices in ``modified``.

        Taxa missing from ``modified`` are left out of the map.
        """
        mapping: dict[int, int] = {}
        for index, taxon in enumerate(self._taxa, start=1):
            target = modified.index_of(taxon)
            if target != -1:
                mapping[index] = target
        return mapping

    # ------------------------------------------------------------------

    def same_sequence(self, other: "TaxaBlock") -> bool:
        """True if both registries hold the same taxa in the same order."""
        return self.labels == other.labels

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TaxaBlock):
            return NotImplemented
        return self.same_sequence(other)

    @property
    def short_description(self) -> str:
        return f"{self.ntax} taxa"

    def __repr__(self) -> str:
        preview = ", ".join(self.labels[:5])
        more = ", ..." if self.ntax > 5 else ""  # noqa: PLR2004
        return f"TaxaBlock({self.name!r}, [{preview}{more}])"
