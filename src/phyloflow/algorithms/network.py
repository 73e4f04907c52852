"""Minimum spanning network from distances."""

import itertools
import logging
from dataclasses import dataclass
from typing import ClassVar

from phyloflow.blocks import BlockKind, DistancesBlock, NetworkBlock, NetworkType
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .base import Algorithm

logger = logging.getLogger(__name__)


@dataclass
class MinSpanningNetwork(Algorithm[DistancesBlock, NetworkBlock]):
    """Minimum spanning network (Excoffier & Smouse 1994).

    Taxon pairs are processed in groups of equal distance, in ascending
    order. For the network, a pair is connected if its taxa lie in
    different components before the group is processed, which yields the
    union of all minimum spanning trees; once everything is connected, all
    pairs up to ``epsilon`` above the connecting distance are added too.
    With ``min_spanning_tree`` only pairs joining two components are
    connected, giving a single minimum spanning tree.
    """

    name: ClassVar[str] = "MinSpanningNetwork"
    from_kind: ClassVar[BlockKind] = BlockKind.DISTANCES
    to_kind: ClassVar[BlockKind] = BlockKind.NETWORK
    citation: ClassVar[str] = (
        "Excoffier & Smouse 1994; L. Excoffier and P. E. Smouse, Using allele frequencies and "
        "geographic subdivision to reconstruct gene trees within a species. Genetics 136, 1994."
    )

    epsilon: float = 0.0
    min_spanning_tree: bool = False

    def is_applicable(self, taxa: TaxaBlock, block: DistancesBlock) -> bool:
        return block.ntax == taxa.ntax and block.ntax > 0 and block.count_undefined() == 0

    def compute(
        self, progress: ProgressListener, taxa: TaxaBlock, block: DistancesBlock
    ) -> NetworkBlock:
        ntax = taxa.ntax
        network = NetworkBlock(name="MinSpanningNetwork", network_type=NetworkType.HAPLOTYPE_NETWORK)

        node = {}
        component = {}
        for t in range(1, ntax + 1):
            node[t] = network.new_node(label=taxa.display_label_of(t), taxon=t)
            component[t] = t
        num_components = ntax

        pairs = sorted(
            ((block.get(a, b), a, b) for a, b in itertools.combinations(range(1, ntax + 1), 2)),
            key=lambda p: p[0],
        )
        groups = [(value, list(g)) for value, g in itertools.groupby(pairs, key=lambda p: p[0])]

        max_value = float("inf")
        connected_at: float | None = None
        progress.set_maximum(len(groups))
        for value, group in groups:
            progress.increment_progress()
            if value > max_value:
                break

            for _, a, b in group:
                if self.min_spanning_tree:
                    if component[a] != component[b]:
                        network.new_edge(node[a], node[b], weight=value)
                        num_components -= self._merge(component, a, b)
                elif connected_at is not None or component[a] != component[b]:
                    network.new_edge(node[a], node[b], weight=value)

            if not self.min_spanning_tree:
                for _, a, b in group:
                    num_components -= self._merge(component, a, b)

            if num_components == 1:
                if self.min_spanning_tree:
                    break
                if connected_at is None:
                    connected_at = value
                    max_value = value + self.epsilon

        kind = "tree" if self.min_spanning_tree else "network"
        network.short_description = (
            f"minimum spanning {kind} with {network.num_nodes} nodes and {network.num_edges} edges"
        )
        logger.debug("Computed %s", network.short_description)
        return network

    @staticmethod
    def _merge(component: dict[int, int], a: int, b: int) -> int:
        """Merge the components of a and b; return 1 if they were different."""
        old, new = component[a], component[b]
        if old == new:
            return 0
        for t, c in component.items():
            if c == old:
                component[t] = new
        return 1
