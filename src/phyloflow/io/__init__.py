"""File readers and writers."""

from .readers import (
    READERS,
    FastaCharactersReader,
    FastaGenomesReader,
    NetworkCsvReader,
    NewickTreesReader,
    PhylipCharactersReader,
    PhylipDistancesReader,
    Reader,
)
from .registry import Exporter, Loader, export, load
from .writers import (
    WRITERS,
    FastaCharactersWriter,
    FastaGenomesWriter,
    NetworkCsvWriter,
    NewickTreesWriter,
    PhylipDistancesWriter,
    SplitsTsvWriter,
    Writer,
)

__all__ = [
    "READERS",
    "WRITERS",
    "Exporter",
    "FastaCharactersReader",
    "FastaCharactersWriter",
    "FastaGenomesReader",
    "FastaGenomesWriter",
    "Loader",
    "NetworkCsvReader",
    "NetworkCsvWriter",
    "NewickTreesReader",
    "NewickTreesWriter",
    "PhylipCharactersReader",
    "PhylipDistancesReader",
    "PhylipDistancesWriter",
    "Reader",
    "SplitsTsvWriter",
    "Writer",
    "export",
    "load",
]
