"""
Gene annotation: identifier lookups, gene coordinates and the join onto
DE results.
"""

from .annotation_db import AnnotationDB, AnnotationError
from .annotate import AnnotationSummary, annotate_from_config, annotate_results, annotated_table
from .gene_ranges import (
    genes_in_region,
    load_chromsizes,
    load_gene_ranges_from_gtf,
    load_gene_ranges_from_table,
    ranges_for_genes,
)

__all__ = [
    "AnnotationDB",
    "AnnotationError",
    "AnnotationSummary",
    "annotate_from_config",
    "annotate_results",
    "annotated_table",
    "genes_in_region",
    "load_chromsizes",
    "load_gene_ranges_from_gtf",
    "load_gene_ranges_from_table",
    "ranges_for_genes",
]
