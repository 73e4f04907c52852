import logging
import time
from collections.abc import Iterable, Sequence
from pathlib import Path

from phyloflow.algorithms import Algorithm, get_algorithm
from phyloflow.blocks import BlockKind
from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import WorkflowError
from phyloflow.io import Exporter, Loader
from phyloflow.workflow import DataNode, Scheduler, TaxaChanged, Workflow

logger = logging.getLogger(__name__)


class PhyloPipeline:
    """
    Orchestrates loading, taxa selection and a chain of algorithms.
    """

    def __init__(
        self,
        inputs: Sequence[Path],
        output_dir: Path,
        algorithms: Sequence[str | Algorithm] = (),
        disabled: Iterable[str] = (),
        order: Sequence[str] | None = None,
        kind: BlockKind | None = None,
        format_name: str | None = None,
        config: WorkflowConfig | None = None,
    ) -> None:
        self.inputs = [Path(p) for p in inputs]
        self.output_dir = Path(output_dir)
        self.algorithms = list(algorithms)
        self.disabled = frozenset(disabled)
        self.order = tuple(order) if order is not None else None
        self.kind = kind
        self.format_name = format_name
        self.config = config or WorkflowConfig()

        self.workflow = Workflow()
        self.outputs: list[DataNode] = []
        self.written: list[Path] = []
        self.timings: dict[str, float] = {}

    def run(self) -> list[Path]:
        """Execute the full pipeline and return the files written."""
        logger.info(f"Starting pipeline on {', '.join(p.name for p in self.inputs)}")
        start_time = time.perf_counter()

        self._step_0_setup()
        self._step_1_select_taxa()
        self._step_2_add_algorithms()
        self._step_3_compute()
        self._step_4_export()

        total_elapsed = time.perf_counter() - start_time
        logger.info(f"Pipeline completed in {total_elapsed:.2f} seconds")
        self._print_timings()
        return self.written

    def _print_timings(self) -> None:
        """Print table of computation times."""
        print("\n" + "=" * 40)
        print(f"{'Step':<25} | {'Time (ms)':<10}")
        print("-" * 40)
        total_comp = 0.0
        for step, duration in self.timings.items():
            duration_ms = duration * 1000
            print(f"{step:<25} | {duration_ms:<10.4f}")
            total_comp += duration

        total_comp_ms = total_comp * 1000
        print("-" * 40)
        print(f"{'Total Computation':<25} | {total_comp_ms:<10.4f}")
        print("=" * 40 + "\n")

    def _step_0_setup(self) -> None:
        """Pick the reader and build the input and working nodes."""
        self.workflow.setup_input_and_working_nodes(
            self.inputs,
            loader=Loader(),
            kind=self.kind,
            format_name=self.format_name,
        )

    def _step_1_select_taxa(self) -> None:
        """Apply the taxa selection, if any."""
        if self.disabled or self.order is not None:
            self.workflow.post(TaxaChanged(disabled=self.disabled, order=self.order))

    def _step_2_add_algorithms(self) -> None:
        """Chain the algorithms, each reading the previous output."""
        current = self.workflow.working_data_node
        for entry in self.algorithms:
            algorithm = get_algorithm(entry) if isinstance(entry, str) else entry
            current = self.workflow.add_algorithm(algorithm, current)
            self.outputs.append(current)

    def _step_3_compute(self) -> None:
        """Run every node and fail if any did not complete."""
        Scheduler(self.workflow, self.config).run()
        for node in self.workflow.algorithm_nodes:
            self.timings[f"{node.node_id}_{node.name}"] = node.elapsed

        failed = self.workflow.failed_nodes()
        if failed:
            first = failed[0]
            raise WorkflowError(f"{first.name} failed: {first.error}") from first.error
        if not self.workflow.is_up_to_date():
            raise WorkflowError("Workflow did not complete")

    def _step_4_export(self) -> None:
        """Write the working data and every algorithm output."""
        exporter = Exporter()
        taxa = self.workflow.working_taxa
        nodes = [self.workflow.working_data_node, *self.outputs]
        for i, node in enumerate(nodes):
            writer = exporter.get_writer(node.kind)
            name = node.name.lower().replace(" ", "_")
            output = self.output_dir / f"{i:02d}_{name}{writer.extension}"
            self.written.append(exporter.write(output, taxa, node.block))
