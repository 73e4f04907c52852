from .events import NodeRemoved, RerunRequested, TaxaChanged, WorkflowEvent
from .graph import Workflow
from .loader import LoadSource
from .nodes import AlgorithmNode, DataNode, NodeState
from .scheduler import Scheduler

__all__ = [
    "AlgorithmNode",
    "DataNode",
    "LoadSource",
    "NodeRemoved",
    "NodeState",
    "RerunRequested",
    "Scheduler",
    "TaxaChanged",
    "Workflow",
    "WorkflowEvent",
]
