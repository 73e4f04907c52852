"""Messages posted to a workflow to trigger invalidation."""

from dataclasses import dataclass, field

from .nodes import AlgorithmNode, DataNode


@dataclass(frozen=True)
class TaxaChanged:
    """The user changed the working taxa selection."""

    disabled: frozenset[str] = field(default_factory=frozenset)
    order: tuple[str, ...] | None = None


@dataclass(frozen=True)
class RerunRequested:
    node: AlgorithmNode | DataNode


@dataclass(frozen=True)
class NodeRemoved:
    """Remove a node together with everything computed from it."""

    node: AlgorithmNode | DataNode


WorkflowEvent = TaxaChanged | RerunRequested | NodeRemoved
