import argparse
import logging
import sys
from pathlib import Path

from phyloflow.algorithms import ALGORITHMS
from phyloflow.blocks import BlockKind
from phyloflow.config import WorkflowConfig
from phyloflow.pipeline import PhyloPipeline


def main():
    parser = argparse.ArgumentParser(description="Load data, select taxa and run a chain of algorithms.")
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="Input file(s); several FASTA files are read as one genome each",
    )
    parser.add_argument(
        "-o",
        "--output_dir",
        type=Path,
        default=Path("phyloflow_output"),
        help="Directory for the written blocks (default: phyloflow_output)",
    )
    parser.add_argument(
        "-a",
        "--algorithms",
        nargs="*",
        default=[],
        choices=sorted(ALGORITHMS),
        help="Algorithms to chain, each reading the previous output",
    )
    parser.add_argument(
        "--disable",
        nargs="*",
        default=[],
        help="Taxon names to leave out",
    )
    parser.add_argument(
        "--order",
        nargs="*",
        default=None,
        help="Keep only these taxa, in this order",
    )
    parser.add_argument(
        "--kind",
        choices=[k.value for k in BlockKind if k not in (BlockKind.TAXA, BlockKind.SOURCE)],
        default=None,
        help="Data kind to read when several readers accept the input",
    )
    parser.add_argument(
        "--format",
        dest="format_name",
        default=None,
        help="Reader name to use instead of detecting one",
    )

    args = parser.parse_args()
    config = WorkflowConfig.from_env()

    # Configure logging
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(__name__)

    try:
        pipeline = PhyloPipeline(
            inputs=args.inputs,
            output_dir=args.output_dir,
            algorithms=args.algorithms,
            disabled=args.disable,
            order=args.order,
            kind=BlockKind(args.kind) if args.kind else None,
            format_name=args.format_name,
            config=config,
        )
        for path in pipeline.run():
            print(path)
    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
