"""The workflow DAG and its invalidation rules."""

import itertools
import logging
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

import networkx as nx

from phyloflow.algorithms.base import Algorithm
from phyloflow.blocks import BlockKind, DataBlock, SourceBlock
from phyloflow.exceptions import WorkflowError
from phyloflow.filtering import DataTaxaFilter, TaxaFilter
from phyloflow.io import Loader
from phyloflow.taxa import TaxaBlock

from .events import NodeRemoved, RerunRequested, TaxaChanged, WorkflowEvent
from .loader import LoadSource
from .nodes import AlgorithmNode, DataNode, NodeState

logger = logging.getLogger(__name__)

Node = AlgorithmNode | DataNode


class Workflow:
    """Data nodes and algorithm nodes wired as a directed acyclic graph.

    Edges run from a data node to the algorithm nodes reading it and from
    an algorithm node to the data nodes it produces. The standard setup is::

        source -> Loader -> input taxa, input data
        input taxa -> TaxaFilter -> working taxa
        input taxa, working taxa, input data -> DataTaxaFilter -> working data

    and further algorithms hang off the working data with the working taxa
    as their taxa input.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

        self.source_node: DataNode | None = None
        self.input_taxa_node: DataNode | None = None
        self.input_data_node: DataNode | None = None
        self.working_taxa_node: DataNode | None = None
        self.working_data_node: DataNode | None = None
        self.taxa_filter: TaxaFilter | None = None

    # ------------------------------------------------------------------
    # construction

    def new_data_node(
        self, kind: BlockKind, name: str = "", block: DataBlock | TaxaBlock | None = None
    ) -> DataNode:
        with self._lock:
            node = DataNode(next(self._ids), kind, name=name, block=block)
            self.graph.add_node(node)
            return node

    def new_algorithm_node(
        self,
        algorithm: Algorithm,
        parents: Sequence[DataNode],
        children: Sequence[DataNode],
    ) -> AlgorithmNode:
        """Add an algorithm node between existing data nodes.

        Raises:
            WorkflowError: If a data node is not part of this workflow or
                the new edges would create a cycle.
        """
        with self._lock:
            for data_node in (*parents, *children):
                self._check_member(data_node)
            for child in children:
                if child.producer is not None:
                    raise WorkflowError(f"{child} already has a producer: {child.producer}")

            node = AlgorithmNode(next(self._ids), algorithm, parents, children)
            self.graph.add_node(node)
            self.graph.add_edges_from((parent, node) for parent in parents)
            self.graph.add_edges_from((node, child) for child in children)
            if not nx.is_directed_acyclic_graph(self.graph):
                self.graph.remove_node(node)
                for child in children:
                    child.producer = None
                raise WorkflowError(f"Adding {algorithm.name} would create a cycle")
            logger.debug("Added %s", node)
            return node

    def setup_input_and_working_nodes(
        self,
        source: SourceBlock | Iterable[Path | str],
        loader: Loader | None = None,
        kind: BlockKind | None = None,
        format_name: str | None = None,
    ) -> DataNode:
        """Build the loader, taxa filter and data filter stages; return the working data node.

        The reader is chosen here, so an unrecognized input fails before
        anything is computed.
        """
        if self.source_node is not None:
            raise WorkflowError("Input and working nodes are already set up")
        if not isinstance(source, SourceBlock):
            source = SourceBlock(list(source))
        load = LoadSource(loader, kind=kind, format_name=format_name)
        data_kind = load.resolve(source)

        with self._lock:
            self.source_node = self.new_data_node(BlockKind.SOURCE, "Source", source)
            self.input_taxa_node = self.new_data_node(BlockKind.TAXA, "Input Taxa")
            self.input_data_node = self.new_data_node(data_kind, f"Input {data_kind.value}")
            self.new_algorithm_node(
                load, [self.source_node], [self.input_taxa_node, self.input_data_node]
            )

            self.taxa_filter = TaxaFilter()
            self.working_taxa_node = self.new_data_node(BlockKind.TAXA, "Working Taxa")
            self.new_algorithm_node(
                self.taxa_filter, [self.input_taxa_node], [self.working_taxa_node]
            )

            self.working_data_node = self.new_data_node(data_kind, f"Working {data_kind.value}")
            self.new_algorithm_node(
                DataTaxaFilter(data_kind),
                [self.input_taxa_node, self.working_taxa_node, self.input_data_node],
                [self.working_data_node],
            )
        logger.info(
            f"Workflow set up for {len(source.sources)} source file(s) of {data_kind.value}"
        )
        return self.working_data_node

    def add_algorithm(self, algorithm: Algorithm, input_node: DataNode) -> DataNode:
        """Attach ``algorithm`` to ``input_node`` and return its output data node.

        The working taxa are the algorithm's taxa input.

        Raises:
            WorkflowError: If the workflow is not set up, the node is unknown
                or its kind does not match the algorithm's input kind.
        """
        if self.working_taxa_node is None:
            raise WorkflowError("Call setup_input_and_working_nodes() first")
        self._check_member(input_node)
        if input_node.kind != algorithm.from_kind:
            raise WorkflowError(
                f"{algorithm.name} expects {algorithm.from_kind.value} input, "
                f"got {input_node.kind.value}"
            )
        with self._lock:
            output = self.new_data_node(algorithm.to_kind, algorithm.name)
            self.new_algorithm_node(algorithm, [self.working_taxa_node, input_node], [output])
        return output

    # ------------------------------------------------------------------
    # events

    def post(self, event: WorkflowEvent) -> list[AlgorithmNode]:
        """Apply an event and return the algorithm nodes put back to pending."""
        if isinstance(event, TaxaChanged):
            if self.taxa_filter is None:
                raise WorkflowError("No taxa filter; call setup_input_and_working_nodes() first")
            self.taxa_filter.set_selection(event.disabled, event.order)
            logger.info(
                f"Taxa selection changed: {len(event.disabled)} disabled"
                + (f", order of {len(event.order)}" if event.order is not None else "")
            )
            return self.invalidate(self.working_taxa_node.producer)
        if isinstance(event, RerunRequested):
            return self.invalidate(event.node)
        if isinstance(event, NodeRemoved):
            return self.remove(event.node)
        raise WorkflowError(f"Unknown workflow event: {event!r}")

    def invalidate(self, node: Node) -> list[AlgorithmNode]:
        """Mark the node's producer and every algorithm node below it pending."""
        with self._lock:
            self._check_member(node)
            start = node.producer if isinstance(node, DataNode) else node
            if start is None:
                affected = nx.descendants(self.graph, node)
            else:
                affected = {start} | nx.descendants(self.graph, start)
            invalidated = [n for n in self._topological(affected) if isinstance(n, AlgorithmNode)]
            for algorithm_node in invalidated:
                algorithm_node.invalidate()
        logger.debug("Invalidated %d node(s) from %s", len(invalidated), node)
        return invalidated

    def remove(self, node: Node) -> list[AlgorithmNode]:
        """Remove ``node``, the data it produces and everything downstream.

        Removing a data node removes its producer as well. Nothing is left
        downstream to recompute, so the returned list is always empty.
        """
        with self._lock:
            self._check_member(node)
            start = node.producer if isinstance(node, DataNode) and node.producer else node
            doomed = {start} | nx.descendants(self.graph, start)
            for core in (self.source_node, self.input_taxa_node, self.working_taxa_node):
                if core in doomed:
                    raise WorkflowError(f"Cannot remove {node}: it feeds {core}")
            self.graph.remove_nodes_from(doomed)
            for n in doomed:
                if isinstance(n, AlgorithmNode):
                    n.cancel()
            if self.input_data_node in doomed:
                self.input_data_node = None
            if self.working_data_node in doomed:
                self.working_data_node = None
        logger.info(f"Removed {len(doomed)} node(s) starting at {node}")
        return []

    # ------------------------------------------------------------------
    # queries

    @property
    def algorithm_nodes(self) -> list[AlgorithmNode]:
        return [n for n in self._topological(self.graph.nodes) if isinstance(n, AlgorithmNode)]

    @property
    def data_nodes(self) -> list[DataNode]:
        return [n for n in self._topological(self.graph.nodes) if isinstance(n, DataNode)]

    def runnable_nodes(self) -> list[AlgorithmNode]:
        """Pending nodes whose parents all hold valid blocks, in topological order."""
        with self._lock:
            return [n for n in self.algorithm_nodes if n.is_runnable()]

    def running_nodes(self) -> list[AlgorithmNode]:
        return [n for n in self.algorithm_nodes if n.state is NodeState.RUNNING]

    def failed_nodes(self) -> list[AlgorithmNode]:
        return [n for n in self.algorithm_nodes if n.state is NodeState.FAILED]

    def is_up_to_date(self) -> bool:
        return all(n.state is NodeState.VALID for n in self.algorithm_nodes)

    @property
    def working_taxa(self) -> TaxaBlock | None:
        node = self.working_taxa_node
        return node.block if node else None  # type: ignore[return-value]

    @property
    def input_taxa(self) -> TaxaBlock | None:
        node = self.input_taxa_node
        return node.block if node else None  # type: ignore[return-value]

    def _check_member(self, node: Node | None) -> None:
        if node is None or node not in self.graph:
            raise WorkflowError(f"Unknown node: {node}")

    def _topological(self, nodes: Iterable[Node]) -> list[Node]:
        selected = set(nodes)
        return [n for n in nx.topological_sort(self.graph) if n in selected]

    def __repr__(self) -> str:
        return (
            f"Workflow({len(self.algorithm_nodes)} algorithm nodes, "
            f"{len(self.data_nodes)} data nodes)"
        )
