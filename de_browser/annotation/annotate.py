from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from de_browser.annotation.annotation_db import AnnotationDB
from de_browser.annotation.gene_ranges import (
    load_chromsizes,
    load_gene_ranges_from_gtf,
    load_gene_ranges_from_table,
)
from de_browser.config.model import DatasetConfig
from de_browser.core.dataset import Dataset
from de_browser.core.dataset_loader import resolve_data_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotationSummary:
    n_genes: int
    n_mapped: int
    n_multi_mapped: int
    n_unmapped: int
    n_with_coordinates: int

    def to_dict(self) -> dict:
        return {
            "n_genes": self.n_genes,
            "n_mapped": self.n_mapped,
            "n_multi_mapped": self.n_multi_mapped,
            "n_unmapped": self.n_unmapped,
            "n_with_coordinates": self.n_with_coordinates,
        }


def annotate_results(
    dataset: Dataset,
    annotation_db: Optional[AnnotationDB] = None,
    gene_ranges: Optional[pd.DataFrame] = None,
    *,
    id_column: str = "GeneID",
    symbol_column: str = "Symbol",
    name_column: Optional[str] = "Description",
    chromsizes: Optional[pd.Series] = None,
) -> AnnotationSummary:
    """
    Join gene symbols, descriptions and coordinates onto the dataset's results.

    Writes `symbol`, `gene_name`, `chrom`, `start`, `end`, `strand` into
    `.var`. Genes mapping to several symbols keep the first; unmapped genes
    get NaN. Coordinates come from `gene_ranges` (bedframe keyed by gene_id).
    """
    var = dataset.adata.var
    gene_ids = list(var.index.astype(str))
    n_multi = 0
    n_unmapped = 0
    n_mapped = 0

    if annotation_db is not None:
        selected = annotation_db.select(gene_ids, [symbol_column], keytype=id_column)
        per_key = selected.dropna(subset=[symbol_column]).groupby(id_column, sort=False)[symbol_column].nunique()
        n_multi = int((per_key > 1).sum())

        symbols = annotation_db.map_ids(gene_ids, symbol_column, keytype=id_column, multi_vals="first")
        var["symbol"] = symbols.reindex(gene_ids).to_numpy()
        dataset.var_columns["symbol"] = "symbol"

        if name_column and name_column in annotation_db.columns():
            names = annotation_db.map_ids(gene_ids, name_column, keytype=id_column, multi_vals="first")
            var["gene_name"] = names.reindex(gene_ids).to_numpy()
            dataset.var_columns["gene_name"] = "gene_name"

        n_mapped = int(pd.notna(var["symbol"]).sum())
        n_unmapped = len(gene_ids) - n_mapped

        if n_multi:
            logger.warning(
                "Genes map to more than one symbol; keeping the first",
                extra={"dataset": dataset.name, "n_multi_mapped": n_multi},
            )

    n_with_coordinates = 0
    if gene_ranges is not None and not gene_ranges.empty:
        coords = gene_ranges.drop_duplicates(subset="gene_id").set_index("gene_id")
        coords.index = coords.index.astype(str)
        coords = coords.reindex(gene_ids)
        var["chrom"] = pd.Series(coords["chrom"].to_numpy(dtype=object), index=var.index)
        var["start"] = pd.Series(coords["start"].astype("Int64").values, index=var.index)
        var["end"] = pd.Series(coords["end"].astype("Int64").values, index=var.index)
        strand = coords["strand"] if "strand" in coords.columns else pd.Series(".", index=coords.index)
        var["strand"] = pd.Series(strand.fillna(".").to_numpy(dtype=object), index=var.index)
        n_with_coordinates = int(coords["chrom"].notna().sum())

        # Fill symbols from the GTF for genes the annotation table missed
        if "gene_name" in coords.columns:
            if "symbol" not in var.columns:
                var["symbol"] = coords["gene_name"].to_numpy()
            else:
                var["symbol"] = var["symbol"].where(var["symbol"].notna(), coords["gene_name"].to_numpy())
            dataset.var_columns["symbol"] = "symbol"

        dataset.gene_ranges = gene_ranges

    if chromsizes is not None:
        dataset.set_chromsizes(chromsizes)

    dataset.clear_caches()

    summary = AnnotationSummary(
        n_genes=len(gene_ids),
        n_mapped=n_mapped,
        n_multi_mapped=n_multi,
        n_unmapped=n_unmapped,
        n_with_coordinates=n_with_coordinates,
    )
    logger.info("Annotated results", extra={"dataset": dataset.name, **summary.to_dict()})
    return summary


def annotate_from_config(
    dataset: Dataset,
    cfg: DatasetConfig,
    data_root: Optional[Path] = None,
) -> Optional[AnnotationSummary]:
    """
    Load the annotation sources named in cfg.annotation and apply them.

    Returns None when the config names no annotation source.
    """
    ann = cfg.annotation
    if ann.table is None and ann.gtf is None and ann.gene_ranges is None and ann.chromsizes is None:
        return None

    annotation_db = None
    if ann.table is not None:
        annotation_db = AnnotationDB.from_file(resolve_data_path(ann.table, cfg, data_root))

    gene_ranges = None
    if ann.gtf is not None:
        gene_ranges = load_gene_ranges_from_gtf(
            resolve_data_path(ann.gtf, cfg, data_root),
            id_attribute=ann.gtf_id_attribute,
        )
    elif ann.gene_ranges is not None:
        gene_ranges = load_gene_ranges_from_table(resolve_data_path(ann.gene_ranges, cfg, data_root))

    chromsizes = None
    if ann.chromsizes is not None:
        chromsizes = load_chromsizes(resolve_data_path(ann.chromsizes, cfg, data_root))

    return annotate_results(
        dataset,
        annotation_db,
        gene_ranges,
        id_column=ann.id_column,
        symbol_column=ann.symbol_column,
        name_column=ann.name_column,
        chromsizes=chromsizes,
    )


def annotated_table(dataset: Dataset) -> pd.DataFrame:
    """
    Flat annotated results, most significant first (NaN adjusted p-values last).
    """
    res = dataset.results.drop(columns=["label"])
    ordered = res.sort_values(["adj_pvalue", "pvalue"], na_position="last", kind="mergesort")
    front = [c for c in ("gene", "symbol", "gene_name") if c in ordered.columns]
    rest = [c for c in ordered.columns if c not in front]
    return ordered[front + rest].reset_index(drop=True)
