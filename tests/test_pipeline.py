import pytest

from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import WorkflowError
from phyloflow.io import load
from phyloflow.pipeline import PhyloPipeline

CONFIG = WorkflowConfig(max_workers=2, show_progress=False)


def test_pipeline_runs_chain_and_writes_outputs(progress, distances_file, tmp_path):
    pipeline = PhyloPipeline(
        inputs=[distances_file],
        output_dir=tmp_path / "out",
        algorithms=["NeighborJoining", "ConsensusSplits"],
        disabled=["D"],
        config=CONFIG,
    )

    written = pipeline.run()

    assert [p.name for p in written] == [
        "00_working_distances.dist",
        "01_neighborjoining.tre",
        "02_consensussplits.tsv",
    ]
    assert all(p.exists() for p in written)
    taxa, block = load(progress, written[0])
    assert taxa.labels == ["A", "B", "C"]
    assert block.get(1, 3) == 8.0
    assert any(step.endswith("_NeighborJoining") for step in pipeline.timings)


def test_pipeline_network_output(distances_file, tmp_path):
    pipeline = PhyloPipeline(
        inputs=[distances_file],
        output_dir=tmp_path,
        algorithms=["MinSpanningNetwork"],
        config=CONFIG,
    )
    written = pipeline.run()
    assert written[-1].name == "01_minspanningnetwork_nodes.csv"
    assert (tmp_path / "01_minspanningnetwork_edges.csv").exists()


def test_pipeline_fails_when_a_node_fails(distances_file, tmp_path):
    pipeline = PhyloPipeline(
        inputs=[distances_file],
        output_dir=tmp_path,
        algorithms=["NeighborJoining"],
        order=["A", "B"],
        config=CONFIG,
    )
    with pytest.raises(WorkflowError, match="NeighborJoining failed"):
        pipeline.run()


def test_pipeline_times_repeated_algorithms_separately(distances_file, tmp_path):
    pipeline = PhyloPipeline(
        inputs=[distances_file],
        output_dir=tmp_path,
        algorithms=["FillUndefinedDistances", "FillUndefinedDistances"],
        config=CONFIG,
    )
    written = pipeline.run()

    repeated = [step for step in pipeline.timings if step.endswith("_FillUndefinedDistances")]
    assert len(repeated) == 2
    assert written[-1].name == "02_fillundefineddistances.dist"
