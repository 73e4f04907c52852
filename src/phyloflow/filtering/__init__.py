"""Taxa filtering: working-taxa selection and per-kind block filters."""

from .stages import DataTaxaFilter, TaxaFilter
from .taxa_filter import filter_block, get_taxa_filter, translate_indices

__all__ = [
    "DataTaxaFilter",
    "TaxaFilter",
    "filter_block",
    "get_taxa_filter",
    "translate_indices",
]
