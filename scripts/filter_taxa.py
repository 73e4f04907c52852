"""Restrict a data file to a subset of its taxa and write the result."""

import argparse
import logging
import sys
from pathlib import Path

from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import InconsistentTaxaError
from phyloflow.filtering import filter_block
from phyloflow.io import Exporter, Loader
from phyloflow.progress import ProgressListener

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Filter a data file down to selected taxa.")
    parser.add_argument("input", type=Path, help="Input file")
    parser.add_argument("output", type=Path, help="Output file")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--keep", nargs="+", help="Taxa to keep, in output order")
    group.add_argument("--drop", nargs="+", help="Taxa to leave out")
    args = parser.parse_args()
    config = WorkflowConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        with ProgressListener("Filtering", show_progress=config.show_progress) as progress:
            taxa, block = Loader().load(progress, args.input)
            names = args.keep if args.keep else [n for n in taxa.labels if n not in set(args.drop)]
            unknown = sorted(set(args.keep or args.drop) - set(taxa.labels))
            if unknown:
                raise InconsistentTaxaError(f"Unknown taxa: {', '.join(unknown)}")
            working = taxa.subset(names)
            result = filter_block(progress, taxa, working, block)
        Exporter().write(args.output, working, result)
        logger.info(f"{args.input.name}: {result.short_description}")
    except Exception as e:
        logger.error(f"Filtering failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
