"""Workflow nodes: data nodes hold blocks, algorithm nodes compute them."""

import logging
import threading
import time
from collections.abc import Sequence
from enum import Enum

from phyloflow.algorithms.base import Algorithm
from phyloflow.blocks import BlockKind, DataBlock
from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import CanceledError, WorkflowError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

logger = logging.getLogger(__name__)


class NodeState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    VALID = "valid"
    FAILED = "failed"


class DataNode:
    """Holds the current block of one kind.

    The block is replaced, never modified, when the producing node
    publishes a new result. Published taxa blocks are frozen.
    """

    def __init__(
        self,
        node_id: int,
        kind: BlockKind,
        name: str = "",
        block: DataBlock | TaxaBlock | None = None,
    ) -> None:
        self.node_id = node_id
        self.kind = kind
        self.name = name or kind.value
        self.producer: AlgorithmNode | None = None
        self._block = block

    @property
    def block(self) -> DataBlock | TaxaBlock | None:
        return self._block

    @property
    def is_valid(self) -> bool:
        if self.producer is None:
            return self._block is not None
        return self.producer.state is NodeState.VALID

    def publish(self, block: DataBlock | TaxaBlock) -> None:
        if block.kind != self.kind:
            raise WorkflowError(
                f"Cannot publish a {block.kind.value} block on {self.kind.value} node {self}"
            )
        if isinstance(block, TaxaBlock):
            block.freeze()
        self._block = block

    def __repr__(self) -> str:
        return f"DataNode({self.node_id}, {self.name!r})"


class AlgorithmNode:
    """Runs one algorithm on its parents' blocks and publishes to its children.

    At most one compute runs at a time per node. If the node is invalidated
    while computing, the result is discarded and the node stays pending.
    """

    def __init__(
        self,
        node_id: int,
        algorithm: Algorithm,
        parents: Sequence[DataNode],
        children: Sequence[DataNode],
    ) -> None:
        self.node_id = node_id
        self.algorithm = algorithm
        self.parents = list(parents)
        self.children = list(children)
        self.state = NodeState.PENDING
        self.error: Exception | None = None
        self.elapsed = 0.0
        for child in self.children:
            child.producer = self

        self._compute_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._generation = 0

    @property
    def name(self) -> str:
        return self.algorithm.name

    @property
    def short_description(self) -> str:
        return self.algorithm.short_description

    def is_runnable(self) -> bool:
        return self.state is NodeState.PENDING and all(p.is_valid for p in self.parents)

    def invalidate(self) -> None:
        """Put the node back to pending; a running compute will be discarded."""
        with self._state_lock:
            self._generation += 1
            if self.state is not NodeState.PENDING:
                logger.debug("%s: %s -> pending", self, self.state.value)
            self.state = NodeState.PENDING
            self.error = None

    def cancel(self) -> None:
        self._cancel_event.set()

    def reset_cancel(self) -> None:
        self._cancel_event.clear()

    def execute(self, config: WorkflowConfig | None = None) -> NodeState:
        """Compute and publish the outputs; returns the resulting state.

        Cancellation leaves the node pending with its previous outputs;
        any other error marks it failed and is kept in ``error``.
        """
        config = config or WorkflowConfig()
        with self._compute_lock:
            with self._state_lock:
                if self.state is not NodeState.PENDING:
                    return self.state
                self.state = NodeState.RUNNING
                generation = self._generation
                inputs = [parent.block for parent in self.parents]
            logger.debug("%s: pending -> running", self)

            progress = ProgressListener(
                desc=self.name,
                cancel_event=self._cancel_event,
                show_progress=config.show_progress,
                check_interval=config.progress_step,
            )
            start = time.perf_counter()
            try:
                progress.check_for_cancel()
                result = self.algorithm.run(progress, inputs)
            except CanceledError:
                with self._state_lock:
                    if self.state is NodeState.RUNNING:
                        self.state = NodeState.PENDING
                logger.info(f"{self} canceled")
                return self.state
            except Exception as e:
                with self._state_lock:
                    if generation == self._generation:
                        self.state = NodeState.FAILED
                        self.error = e
                logger.error(f"{self} failed: {e}")
                return self.state
            finally:
                progress.close()
                self.elapsed = time.perf_counter() - start

            outputs = result if isinstance(result, tuple) else (result,)
            with self._state_lock:
                if generation != self._generation:
                    logger.debug("%s: invalidated while running, result discarded", self)
                    return self.state
                if len(outputs) != len(self.children):
                    self.state = NodeState.FAILED
                    self.error = WorkflowError(
                        f"{self.name} produced {len(outputs)} blocks "
                        f"for {len(self.children)} outputs"
                    )
                    logger.error(f"{self} failed: {self.error}")
                    return self.state
                for child, block in zip(self.children, outputs, strict=True):
                    child.publish(block)
                self.state = NodeState.VALID
                self.error = None

        description = f": {self.short_description}" if self.short_description else ""
        logger.info(f"{self.name} finished in {self.elapsed:.3f}s{description}")
        return NodeState.VALID

    def __repr__(self) -> str:
        return f"AlgorithmNode({self.node_id}, {self.name!r}, {self.state.value})"
