import threading
import time
from dataclasses import dataclass
from typing import ClassVar

import pytest

from phyloflow.algorithms import (
    Algorithm,
    ConsensusSplits,
    MinSpanningNetwork,
    NeighborJoining,
)
from phyloflow.blocks import BlockKind, DistancesBlock
from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import (
    InconsistentTaxaError,
    NoApplicableHandlerError,
    WorkflowError,
)
from phyloflow.workflow import (
    NodeRemoved,
    NodeState,
    RerunRequested,
    Scheduler,
    TaxaChanged,
    Workflow,
)

CONFIG = WorkflowConfig(max_workers=2, show_progress=False)


@dataclass
class SlowCopy(Algorithm[DistancesBlock, DistancesBlock]):
    """Copies its input after waiting for ``release`` or cancellation."""

    name: ClassVar[str] = "SlowCopy"
    from_kind: ClassVar[BlockKind] = BlockKind.DISTANCES
    to_kind: ClassVar[BlockKind] = BlockKind.DISTANCES

    started: threading.Event = None
    release: threading.Event = None

    def __post_init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def compute(self, progress, taxa, block):
        self.started.set()
        progress.set_maximum(500)
        for _ in range(500):
            if self.release.wait(0.01):
                break
            progress.increment_progress()
        return block.copy()


@pytest.fixture
def workflow(distances_file):
    workflow = Workflow()
    workflow.setup_input_and_working_nodes([distances_file])
    return workflow


def test_setup_builds_input_and_working_nodes(workflow):
    assert workflow.input_data_node.kind == BlockKind.DISTANCES
    assert workflow.working_data_node.kind == BlockKind.DISTANCES
    assert [n.name for n in workflow.algorithm_nodes] == ["Loader", "TaxaFilter", "DataTaxaFilter"]
    assert all(n.state == NodeState.PENDING for n in workflow.algorithm_nodes)


def test_setup_rejects_unknown_input(tmp_path):
    path = tmp_path / "unknown.xyz"
    path.write_text("nothing\n")
    with pytest.raises(NoApplicableHandlerError):
        Workflow().setup_input_and_working_nodes([path])


def test_run_computes_everything(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)

    summary = Scheduler(workflow, CONFIG).run()

    assert summary[NodeState.VALID] == 4
    assert workflow.is_up_to_date()
    assert workflow.working_taxa.labels == ["A", "B", "C", "D"]
    assert workflow.working_taxa.frozen
    assert workflow.working_data_node.block.short_description == "using all 4 taxa"
    assert tree_node.block.ntrees == 1


def test_taxa_change_invalidates_downstream_only(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    Scheduler(workflow, CONFIG).run()
    input_block = workflow.input_data_node.block

    invalidated = workflow.post(TaxaChanged(disabled=frozenset({"A"})))

    assert [n.name for n in invalidated] == ["TaxaFilter", "DataTaxaFilter", "NeighborJoining"]
    loader = workflow.input_taxa_node.producer
    assert loader.state == NodeState.VALID

    Scheduler(workflow, CONFIG).run()

    assert workflow.working_taxa.labels == ["B", "C", "D"]
    assert workflow.working_data_node.block.ntax == 3
    assert workflow.working_data_node.block.short_description == "using 3 of 4 taxa"
    assert tree_node.block.short_description == "BioNJ tree on 3 taxa"
    # input block never replaced by filtering
    assert workflow.input_data_node.block is input_block


def test_taxa_order_applied(workflow):
    workflow.post(TaxaChanged(order=("D", "B")))
    Scheduler(workflow, CONFIG).run()
    block = workflow.working_data_node.block
    assert workflow.working_taxa.labels == ["D", "B"]
    assert block.get(1, 2) == 10.0


def test_failure_is_isolated(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    splits_node = workflow.add_algorithm(ConsensusSplits(), tree_node)
    network_node = workflow.add_algorithm(MinSpanningNetwork(), workflow.working_data_node)
    workflow.post(TaxaChanged(disabled=frozenset({"A", "B"})))

    summary = Scheduler(workflow, CONFIG).run()

    assert tree_node.producer.state == NodeState.FAILED
    assert isinstance(tree_node.producer.error, NoApplicableHandlerError)
    assert splits_node.producer.state == NodeState.PENDING
    assert network_node.producer.state == NodeState.VALID
    assert network_node.block.num_nodes == 2
    assert summary[NodeState.FAILED] == 1


def test_inconsistent_selection_fails_taxa_filter(workflow):
    workflow.post(TaxaChanged(disabled=frozenset({"Z"})))
    Scheduler(workflow, CONFIG).run()

    taxa_filter = workflow.working_taxa_node.producer
    assert taxa_filter.state == NodeState.FAILED
    assert isinstance(taxa_filter.error, InconsistentTaxaError)
    assert workflow.input_taxa_node.producer.state == NodeState.VALID
    assert workflow.working_data_node.producer.state == NodeState.PENDING


def test_rerun_request(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    Scheduler(workflow, CONFIG).run()
    first = tree_node.block

    invalidated = workflow.post(RerunRequested(tree_node))
    assert [n.name for n in invalidated] == ["NeighborJoining"]
    Scheduler(workflow, CONFIG).run()

    assert tree_node.block is not first
    assert tree_node.block == first


def test_canceled_node_keeps_previous_output(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    Scheduler(workflow, CONFIG).run()
    previous = tree_node.block
    node = tree_node.producer

    workflow.post(RerunRequested(node))
    node.cancel()
    state = node.execute(CONFIG)

    assert state == NodeState.PENDING
    assert tree_node.block is previous


def test_scheduler_cancel(workflow):
    slow = SlowCopy()
    output = workflow.add_algorithm(slow, workflow.working_data_node)
    scheduler = Scheduler(workflow, CONFIG)
    results = []

    thread = threading.Thread(target=lambda: results.append(scheduler.run()))
    thread.start()
    assert slow.started.wait(5)
    scheduler.cancel()
    thread.join(5)

    assert not thread.is_alive()
    assert scheduler.is_canceled
    assert output.producer.state == NodeState.PENDING
    assert output.block is None
    assert results[0][NodeState.PENDING] == 1


def test_invalidated_while_running_result_discarded(workflow):
    slow = SlowCopy()
    output = workflow.add_algorithm(slow, workflow.working_data_node)
    for node in workflow.algorithm_nodes:
        if node.name != "SlowCopy":
            node.execute(CONFIG)
    node = output.producer

    thread = threading.Thread(target=node.execute, args=(CONFIG,))
    thread.start()
    assert slow.started.wait(5)
    workflow.post(RerunRequested(node))
    slow.release.set()
    thread.join(5)

    assert node.state == NodeState.PENDING
    assert output.block is None


def test_add_algorithm_checks_kind(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    with pytest.raises(WorkflowError):
        workflow.add_algorithm(MinSpanningNetwork(), tree_node)


def test_add_algorithm_before_setup():
    with pytest.raises(WorkflowError):
        Workflow().add_algorithm(NeighborJoining(), None)


def test_cycle_rejected(workflow):
    with pytest.raises(WorkflowError):
        workflow.new_algorithm_node(
            SlowCopy(), [workflow.working_data_node], [workflow.source_node]
        )
    assert workflow.source_node.producer is None
    assert len(workflow.algorithm_nodes) == 3


def test_remove_node(workflow):
    tree_node = workflow.add_algorithm(NeighborJoining(), workflow.working_data_node)
    splits_node = workflow.add_algorithm(ConsensusSplits(), tree_node)

    workflow.post(NodeRemoved(tree_node))

    assert tree_node not in workflow.graph
    assert splits_node not in workflow.graph
    assert len(workflow.algorithm_nodes) == 3


def test_core_nodes_cannot_be_removed(workflow):
    with pytest.raises(WorkflowError):
        workflow.post(NodeRemoved(workflow.working_taxa_node))


def test_one_compute_at_a_time(workflow):
    for node in workflow.algorithm_nodes:
        node.execute(CONFIG)
    slow = SlowCopy()
    node = workflow.add_algorithm(slow, workflow.working_data_node).producer

    first = threading.Thread(target=node.execute, args=(CONFIG,))
    first.start()
    assert slow.started.wait(5)
    # a second call waits for the first and then finds the node valid
    second_result = []
    second = threading.Thread(target=lambda: second_result.append(node.execute(CONFIG)))
    second.start()
    time.sleep(0.05)
    slow.release.set()
    first.join(5)
    second.join(5)

    assert node.state == NodeState.VALID
    assert second_result == [NodeState.VALID]
