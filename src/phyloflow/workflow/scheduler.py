"""Run pending workflow nodes on a thread pool."""

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait

from phyloflow.config import WorkflowConfig

from .graph import Workflow
from .nodes import AlgorithmNode, NodeState

logger = logging.getLogger(__name__)


class Scheduler:
    """Executes a workflow in topological waves.

    Each wave submits every node that is pending and whose parents are all
    valid, then waits for the wave to finish before looking again. A failed
    node leaves its descendants pending; unrelated branches keep running.
    """

    def __init__(self, workflow: Workflow, config: WorkflowConfig | None = None) -> None:
        self.workflow = workflow
        self.config = config or WorkflowConfig()
        self._canceled = threading.Event()
        self._wave: list[AlgorithmNode] = []
        self._lock = threading.Lock()

    def run(self) -> Counter:
        """Run until nothing is runnable or the run is canceled.

        Returns:
            Number of algorithm nodes per final state.
        """
        self._canceled.clear()
        waves = 0
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            while not self._canceled.is_set():
                ready = self.workflow.runnable_nodes()
                if not ready:
                    break
                waves += 1
                logger.debug("Wave %d: %s", waves, ", ".join(n.name for n in ready))
                with self._lock:
                    self._wave = ready
                    for node in ready:
                        node.reset_cancel()
                futures = [pool.submit(node.execute, self.config) for node in ready]
                wait(futures)
                for future in futures:
                    # execute() records failures on the node; this only surfaces bugs
                    future.result()
                with self._lock:
                    self._wave = []

        summary = Counter(node.state for node in self.workflow.algorithm_nodes)
        for node in self.workflow.failed_nodes():
            logger.warning(f"{node.name} failed: {node.error}")
        if self._canceled.is_set():
            logger.info("Workflow run canceled")
        else:
            logger.info(
                f"Workflow run finished in {waves} wave(s): "
                f"{summary[NodeState.VALID]} valid, {summary[NodeState.FAILED]} failed, "
                f"{summary[NodeState.PENDING]} pending"
            )
        return summary

    def cancel(self) -> None:
        """Stop after the current wave and cancel the nodes computing in it."""
        self._canceled.set()
        with self._lock:
            for node in self._wave:
                node.cancel()

    @property
    def is_canceled(self) -> bool:
        return self._canceled.is_set()
