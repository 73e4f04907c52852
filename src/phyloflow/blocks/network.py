"""Network block: an arena graph whose nodes may carry taxa."""

import copy
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

from .base import BlockKind, DataBlock


class NetworkType(str, Enum):
    """What kind of network a block holds."""

    POINTS = "points"
    HAPLOTYPE_NETWORK = "haplotype_network"
    OTHER = "other"


@dataclass
class NetworkNode:
    """Flat record of one network node (used by the CSV codecs)."""

    node_id: int
    label: str | None = None
    taxon: int | None = None  # 1-based taxon index, if the node carries one
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class NetworkEdge:
    """Flat record of one network edge."""

    source: int
    target: int
    weight: float = 1.0
    annotations: dict[str, str] = field(default_factory=dict)


class NetworkBlock(DataBlock):
    """Undirected graph with integer node handles.

    Node attributes: ``label`` (str or None), ``taxon`` (1-based index or None)
    and ``data`` (annotation dict). Edge attributes: ``weight`` and ``data``.
    Deleting a node removes every edge incident to it.
    """

    kind = BlockKind.NETWORK

    def __init__(self, name: str = "Network", network_type: NetworkType = NetworkType.OTHER) -> None:
        self.name = name
        self.network_type = network_type
        self.graph: nx.Graph = nx.Graph()
        self._next_id = 1

    # ------------------------------------------------------------------
    # Construction

    def new_node(
        self,
        label: str | None = None,
        taxon: int | None = None,
        node_id: int | None = None,
        **annotations: str,
    ) -> int:
        """Create a node and return its handle.

        Handles are allocated increasingly unless ``node_id`` is given.
        """
        if node_id is None:
            node_id = self._next_id
        elif node_id in self.graph:
            raise ValueError(f"Duplicate node id: {node_id}")
        self._next_id = max(self._next_id, node_id + 1)
        self.graph.add_node(node_id, label=label, taxon=taxon, data=dict(annotations))
        return node_id

    def new_edge(self, u: int, v: int, weight: float = 1.0, **annotations: str) -> None:
        if u not in self.graph or v not in self.graph:
            raise KeyError(f"Edge endpoints must exist: {u}, {v}")
        self.graph.add_edge(u, v, weight=weight, data=dict(annotations))

    def delete_node(self, v: int) -> None:
        self.graph.remove_node(v)

    # ------------------------------------------------------------------
    # Queries

    @property
    def num_nodes(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def num_edges(self) -> int:
        return self.graph.number_of_edges()

    def size(self) -> int:
        return self.num_nodes

    def label_of(self, v: int) -> str | None:
        return self.graph.nodes[v]["label"]

    def taxon_of(self, v: int) -> int | None:
        return self.graph.nodes[v]["taxon"]

    def set_taxon(self, v: int, taxon: int | None) -> None:
        self.graph.nodes[v]["taxon"] = taxon

    def node_data(self, v: int) -> dict[str, str]:
        return self.graph.nodes[v]["data"]

    def edge_data(self, u: int, v: int) -> dict[str, str]:
        return self.graph.edges[u, v]["data"]

    def weight(self, u: int, v: int) -> float:
        return self.graph.edges[u, v]["weight"]

    def nodes_with_taxa(self) -> list[int]:
        return [v for v, taxon in self.graph.nodes(data="taxon") if taxon is not None]

    def node_records(self) -> list[NetworkNode]:
        return [
            NetworkNode(v, attrs["label"], attrs["taxon"], dict(attrs["data"]))
            for v, attrs in sorted(self.graph.nodes(data=True))
        ]

    def edge_records(self) -> list[NetworkEdge]:
        records = [
            NetworkEdge(min(u, v), max(u, v), attrs["weight"], dict(attrs["data"]))
            for u, v, attrs in self.graph.edges(data=True)
        ]
        return sorted(records, key=lambda e: (e.source, e.target))

    # ------------------------------------------------------------------

    def copy(self) -> "NetworkBlock":
        """Deep copy of nodes, edges and annotations; handles are preserved."""
        result = NetworkBlock(self.name, self.network_type)
        result.graph = copy.deepcopy(self.graph)
        result._next_id = self._next_id
        result.short_description = self.short_description
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NetworkBlock):
            return NotImplemented
        return (
            self.name == other.name
            and self.network_type == other.network_type
            and self.node_records() == other.node_records()
            and self.edge_records() == other.edge_records()
        )
