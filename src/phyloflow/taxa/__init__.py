"""Taxon registry."""

from .registry import TaxaBlock, Taxon

__all__ = ["TaxaBlock", "Taxon"]
