"""Reader and writer lookup.

Readers are picked by file extension first, then by sniffing the first
line; when several readers accept a file the first in ``READERS`` wins
unless a kind or format name is requested.
"""

import csv
import logging
from collections.abc import Sequence
from pathlib import Path

from Bio.Phylo.NewickIO import NewickError

from phyloflow.blocks import BlockKind, DataBlock, SourceBlock
from phyloflow.exceptions import CodecError, NoApplicableHandlerError, PhyloflowError
from phyloflow.progress import ProgressListener
from phyloflow.taxa import TaxaBlock

from .readers import READERS, Reader
from .writers import WRITERS, Writer

logger = logging.getLogger(__name__)


class Loader:
    """Load source files into a fresh (taxa, data) pair."""

    def __init__(self, readers: Sequence[Reader] = READERS) -> None:
        self.readers = tuple(readers)

    def find_reader(
        self,
        paths: Sequence[Path],
        kind: BlockKind | None = None,
        format_name: str | None = None,
    ) -> Reader:
        """Return the first reader accepting every path.

        Raises:
            NoApplicableHandlerError: If no reader accepts the files.
        """
        if not paths:
            raise NoApplicableHandlerError("No input files given")
        for path in paths:
            if not Path(path).is_file():
                raise NoApplicableHandlerError("Input file not found", path)
        first = Path(paths[0])

        for reader in self.readers:
            if kind is not None and reader.kind != kind:
                continue
            if format_name is not None and reader.name != format_name:
                continue
            if all(reader.accepts_file(Path(p)) for p in paths):
                logger.debug("Using reader %s for %s", reader.name, first.name)
                return reader

        raise NoApplicableHandlerError("No reader accepts the input", first)

    def load(
        self,
        progress: ProgressListener,
        source: SourceBlock | Sequence[Path | str] | Path | str,
        kind: BlockKind | None = None,
        format_name: str | None = None,
    ) -> tuple[TaxaBlock, DataBlock]:
        """Read the source into a new taxa block and data block.

        Raises:
            NoApplicableHandlerError: If no reader accepts the files.
            CodecError: If the selected reader fails on malformed input.
        """
        paths = _as_paths(source)
        reader = self.find_reader(paths, kind=kind, format_name=format_name)
        try:
            taxa, block = reader.read(progress, paths)
        except PhyloflowError:
            raise
        except (OSError, ValueError, KeyError, IndexError, TypeError, csv.Error, NewickError) as e:
            raise CodecError(paths[0], str(e)) from e

        logger.info(f"Loaded {taxa.ntax} taxa and {block.kind.value} from {paths[0].name}")
        return taxa, block


class Exporter:
    """Write a data block with the writer registered for its kind."""

    def __init__(self, writers: Sequence[Writer] = WRITERS) -> None:
        self.writers = tuple(writers)

    def get_writer(self, kind: BlockKind, format_name: str | None = None) -> Writer:
        for writer in self.writers:
            if writer.kind == kind and (format_name is None or writer.name == format_name):
                return writer
        raise NoApplicableHandlerError(f"No writer for {kind.value}", format_name)

    def write(
        self,
        output: Path | str,
        taxa: TaxaBlock,
        block: DataBlock,
        format_name: str | None = None,
    ) -> Path:
        """Write ``block`` to ``output`` and return the path written."""
        output = Path(output)
        writer = self.get_writer(block.kind, format_name)
        try:
            writer.write(output, taxa, block)
        except OSError as e:
            raise CodecError(output, str(e)) from e
        logger.info(f"Wrote {block.kind.value} to {output}")
        return output


def _as_paths(source: SourceBlock | Sequence[Path | str] | Path | str) -> list[Path]:
    if isinstance(source, SourceBlock):
        return list(source.sources)
    if isinstance(source, (str, Path)):
        return [Path(source)]
    return [Path(p) for p in source]


def load(
    progress: ProgressListener,
    source: SourceBlock | Sequence[Path | str] | Path | str,
    kind: BlockKind | None = None,
    format_name: str | None = None,
) -> tuple[TaxaBlock, DataBlock]:
    """Load with the default reader table."""
    return Loader().load(progress, source, kind=kind, format_name=format_name)


def export(output: Path | str, taxa: TaxaBlock, block: DataBlock) -> Path:
    """Write with the default writer table."""
    return Exporter().write(output, taxa, block)
