from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import anndata as ad
import numpy as np
import pandas as pd

from de_browser.config.model import ObsColumns, Thresholds, VarColumns
from de_browser.core.genome import chromsizes_from_ranges, sort_chromosomes

UPREGULATED = "Upregulated"
DOWNREGULATED = "Downregulated"
NOT_SIGNIFICANT = "Not Significant"

# semantic .var key -> canonical results column
RESULT_COLUMNS: Dict[str, str] = {
    "base_mean": "base_mean",
    "log2fc": "log2FC",
    "pvalue": "pvalue",
    "padj": "adj_pvalue",
    "lfc_se": "lfc_se",
    "stat": "stat",
    "symbol": "symbol",
    "gene_name": "gene_name",
}
NUMERIC_RESULT_COLUMNS = ("base_mean", "log2FC", "pvalue", "adj_pvalue", "lfc_se", "stat")
COORDINATE_COLUMNS = ("chrom", "start", "end", "strand")
# read from .var under these names when var_columns does not map them
ANNOTATION_COLUMNS = ("symbol", "gene_name")


@dataclass(frozen=True)
class ValidSets:
    """
    Cached valid values for UI validation / sanitisation.
    """
    genes: set[str]
    symbols: set[str]
    chromosomes: set[str]
    samples: set[str]
    conditions: set[str]


class Dataset:
    """
    Unified DE-results abstraction used throughout the browser.

    Wraps an AnnData where:
    - .obs is the sample sheet (one row per sample)
    - .var holds the DE results (one row per gene) plus annotation columns
    - .X holds normalised counts (samples x genes)

    Includes:
    - A canonical results table independent of the DE tool's column names
    - Cached threshold filtering of the results
    - Cached per-gene count extraction in long form
    """

    MAX_SUBSET_CACHE = 128
    MAX_COUNTS_CACHE = 128

    # -------------------------------------------------------------------------
    # Constructor
    # -------------------------------------------------------------------------
    def __init__(
        self,
        name: str,
        group: str,
        adata: ad.AnnData,
        var_columns: Optional[Any] = None,
        obs_columns: Optional[Any] = None,
        file_path: Optional[Path] = None,
        bam_dir: Optional[Path] = None,
        gene_ranges: Optional[pd.DataFrame] = None,
        chromsizes: Optional[pd.Series] = None,
        thresholds: Optional[Thresholds] = None,
        top_n: int = 10,
    ) -> None:
        self.name = name
        self.group = group
        self.adata = adata
        self.file_path = file_path
        self.bam_dir = bam_dir
        self.gene_ranges = gene_ranges
        self.thresholds = thresholds or Thresholds()
        self.top_n = top_n
        self._chromsizes = chromsizes

        defaults = VarColumns().as_dict()
        self.var_columns: Dict[str, str] = {**defaults, **self._normalise_columns(var_columns)}
        self.obs_columns: Dict[str, str] = self._normalise_columns(obs_columns)

        self._results: Optional[pd.DataFrame] = None

        # Cache of filtered result tables
        self._subset_cache: Dict[Tuple[Any, ...], pd.DataFrame] = {}

        # Cache for long-form count tables (per gene selection)
        self._counts_cache: Dict[Tuple[str, ...], pd.DataFrame] = {}

        self._valid_sets: Optional[ValidSets] = None

        self._sample_series: pd.Series
        self._condition_series: pd.Series
        self.refresh_obs_indexes()

    @staticmethod
    def _normalise_columns(columns: Optional[Any]) -> Dict[str, str]:
        """
        Accept either a dict-like mapping or a VarColumns/ObsColumns instance and
        return a flat dict[str, str] with only non-None entries.
        """
        if columns is None:
            return {}
        if isinstance(columns, (VarColumns, ObsColumns)):
            return columns.as_dict()
        return {k: v for k, v in dict(columns).items() if v is not None}

    # -------------------------------------------------------------------------
    # Canonical results table
    # -------------------------------------------------------------------------
    @property
    def results(self) -> pd.DataFrame:
        """
        DE results with canonical column names, indexed by gene id.

        Columns: gene, label, base_mean, log2FC, pvalue, adj_pvalue and, when
        present, lfc_se, stat, symbol, gene_name, chrom, start, end, strand.
        """
        if self._results is None:
            self._results = self._build_results()
        return self._results

    def _build_results(self) -> pd.DataFrame:
        var = self.adata.var
        gene_ids = var.index.astype(str)
        df = pd.DataFrame({"gene": gene_ids}, index=gene_ids)

        for semantic, canonical in RESULT_COLUMNS.items():
            column = self.var_columns.get(semantic)
            if column is None and semantic in ANNOTATION_COLUMNS:
                column = semantic
            if column is not None and column in var.columns:
                df[canonical] = var[column].to_numpy()

        for canonical in NUMERIC_RESULT_COLUMNS:
            if canonical in df.columns:
                df[canonical] = pd.to_numeric(df[canonical], errors="coerce").astype(float)

        for column in COORDINATE_COLUMNS:
            if column not in var.columns:
                continue
            if column in ("start", "end"):
                df[column] = pd.to_numeric(var[column], errors="coerce").astype(float).to_numpy()
            else:
                values = var[column].astype("object")
                df[column] = values.where(values.notna(), None).to_numpy()

        if "symbol" in df.columns:
            symbols = df["symbol"].astype("object")
            df["label"] = symbols.where(symbols.notna() & (symbols.astype(str) != ""), df["gene"]).astype(str)
        else:
            df["label"] = df["gene"]

        return df

    @property
    def has_coordinates(self) -> bool:
        res = self.results
        return all(c in res.columns for c in ("chrom", "start", "end")) and res["chrom"].notna().any()

    @property
    def is_annotated(self) -> bool:
        return "symbol" in self.results.columns

    # -------------------------------------------------------------------------
    # Significance
    # -------------------------------------------------------------------------
    def significance_labels(
        self,
        padj: Optional[float] = None,
        lfc: Optional[float] = None,
    ) -> pd.Series:
        """
        Label each gene Upregulated / Downregulated / Not Significant.

        A gene is significant when adj_pvalue <= padj and |log2FC| >= lfc.
        Genes with a missing adjusted p-value (independent filtering, outliers)
        are never significant.
        """
        padj = self.thresholds.padj if padj is None else padj
        lfc = self.thresholds.lfc if lfc is None else lfc

        res = self.results
        fc = res["log2FC"]
        sig = res["adj_pvalue"].le(padj)

        labels = pd.Series(NOT_SIGNIFICANT, index=res.index, name="significance")
        labels.loc[sig & (fc > 0) & (fc.abs() >= lfc)] = UPREGULATED
        labels.loc[sig & (fc < 0) & (fc.abs() >= lfc)] = DOWNREGULATED
        return labels

    def _subset_cache_key(
        self,
        padj: Optional[float],
        lfc: Optional[float],
        direction: Optional[str],
        chromosomes: Optional[Sequence[str]],
    ) -> Tuple[Any, ...]:
        chroms = tuple(sorted(str(c) for c in chromosomes)) if chromosomes else ()
        return (padj, lfc, direction or "both", chroms)

    def filter_results(
        self,
        padj: Optional[float] = None,
        lfc: Optional[float] = None,
        direction: Optional[str] = None,
        chromosomes: Optional[Sequence[str]] = None,
    ) -> pd.DataFrame:
        """
        Return the results restricted to significant genes, ordered by adj_pvalue.

        Args:
            padj: adjusted p-value cut-off; None keeps every gene with a p-value
            lfc: minimum |log2FC|; None means no fold-change cut-off
            direction: "up", "down" or None/"both"
            chromosomes: keep only genes on these chromosomes (needs annotation)

        Filtered tables are cached per argument combination.
        """
        if direction not in (None, "both", "up", "down"):
            raise ValueError(f"Unknown direction '{direction}'; expected 'up', 'down' or 'both'")

        key = self._subset_cache_key(padj, lfc, direction, chromosomes)
        cached = self._subset_cache.get(key)
        if cached is not None:
            return cached

        res = self.results
        mask = np.ones(len(res), dtype=bool)

        if padj is not None:
            mask &= res["adj_pvalue"].le(padj).to_numpy()
        else:
            mask &= res["adj_pvalue"].notna().to_numpy()

        if lfc is not None:
            mask &= res["log2FC"].abs().ge(lfc).to_numpy()

        if direction == "up":
            mask &= res["log2FC"].gt(0).to_numpy()
        elif direction == "down":
            mask &= res["log2FC"].lt(0).to_numpy()

        if chromosomes:
            if "chrom" not in res.columns:
                mask &= False
            else:
                mask &= res["chrom"].astype(str).isin([str(c) for c in chromosomes]).to_numpy()

        subset = res[mask].sort_values("adj_pvalue", kind="mergesort").copy()

        self._subset_cache[key] = subset

        # Prevent unbounded growth
        if len(self._subset_cache) > self.MAX_SUBSET_CACHE:
            self._subset_cache.clear()

        return subset

    def top_hits(
        self,
        n: Optional[int] = None,
        padj: Optional[float] = None,
        lfc: Optional[float] = None,
    ) -> pd.DataFrame:
        """
        The n most significant genes by adjusted p-value.

        Both thresholds default to the dataset's, so every hit is also labelled
        significant by significance_labels().
        """
        n = self.top_n if n is None else n
        padj = self.thresholds.padj if padj is None else padj
        lfc = self.thresholds.lfc if lfc is None else lfc
        return self.filter_results(padj=padj, lfc=lfc).head(n)

    # -------------------------------------------------------------------------
    # Gene lookup
    # -------------------------------------------------------------------------
    def resolve_genes(self, names: Sequence[str]) -> List[str]:
        """
        Map gene ids or symbols (case-insensitive) to gene ids, in request order.
        Unknown names are dropped; duplicates collapse to the first occurrence.
        """
        res = self.results
        ids = set(res.index)
        by_symbol: Dict[str, str] = {}
        if "symbol" in res.columns:
            for gene_id, symbol in zip(res.index, res["symbol"]):
                if isinstance(symbol, str) and symbol:
                    by_symbol.setdefault(symbol.lower(), gene_id)

        resolved: List[str] = []
        for name in names:
            name = str(name)
            gene_id = name if name in ids else by_symbol.get(name.lower())
            if gene_id is not None and gene_id not in resolved:
                resolved.append(gene_id)
        return resolved

    # -------------------------------------------------------------------------
    # Counts (cached)
    # -------------------------------------------------------------------------
    def counts_for(self, genes: Sequence[str]) -> pd.DataFrame:
        """
        Return normalised counts for the given genes in long form.

        Columns: sample, condition, gene, label, count. Genes are resolved with
        `resolve_genes`; unknown genes yield an empty table.
        """
        gene_ids = tuple(self.resolve_genes(genes))
        if gene_ids in self._counts_cache:
            return self._counts_cache[gene_ids]

        columns = ["sample", "condition", "gene", "label", "count"]
        adata = self.adata
        if not gene_ids or adata.n_obs == 0:
            df = pd.DataFrame(columns=columns)
            self._counts_cache[gene_ids] = df
            return df

        var_mask = adata.var_names.isin(list(gene_ids))
        X = adata[:, var_mask].X  # sparse or dense slice
        if hasattr(X, "toarray"):
            X = X.toarray()

        wide = pd.DataFrame(np.asarray(X, dtype=float), index=self.samples.values, columns=adata.var_names[var_mask])
        wide = wide[list(gene_ids)]
        wide.index.name = "sample"

        long = wide.reset_index().melt(id_vars="sample", var_name="gene", value_name="count")
        long["condition"] = long["sample"].map(dict(zip(self.samples.values, self.conditions.values)))
        long["label"] = long["gene"].map(self.results["label"])
        df = long[columns]

        self._counts_cache[gene_ids] = df
        if len(self._counts_cache) > self.MAX_COUNTS_CACHE:
            self._counts_cache.clear()

        return df

    # -------------------------------------------------------------------------
    # Samples and alignments
    # -------------------------------------------------------------------------
    @property
    def samples(self) -> pd.Series:
        """Sample labels (string-normalised); falls back to obs_names."""
        return self._sample_series

    @property
    def conditions(self) -> pd.Series:
        """Condition labels (string-normalised); 'NA' when not configured."""
        return self._condition_series

    def bam_paths(self) -> Dict[str, Path]:
        """
        Map each sample to its BAM file.

        Uses the configured `bam` sample-sheet column when present, otherwise
        `<bam_dir>/<sample>.bam`. Relative paths resolve against bam_dir.
        """
        bam_key = self.obs_columns.get("bam")
        paths: Dict[str, Path] = {}
        for i, sample in enumerate(self.samples.values):
            if bam_key and bam_key in self.adata.obs.columns:
                path = Path(str(self.adata.obs[bam_key].iloc[i]))
            elif self.bam_dir is not None:
                path = Path(f"{sample}.bam")
            else:
                continue
            if not path.is_absolute() and self.bam_dir is not None:
                path = self.bam_dir / path
            paths[sample] = path
        return paths

    # -------------------------------------------------------------------------
    # Genome layout
    # -------------------------------------------------------------------------
    @property
    def chromsizes(self) -> pd.Series:
        """
        Chromosome lengths, natural-sorted.

        Falls back to the furthest annotated gene end per chromosome.
        """
        if self._chromsizes is not None and not self._chromsizes.empty:
            return self._chromsizes
        if self.gene_ranges is not None and not self.gene_ranges.empty:
            return chromsizes_from_ranges(self.gene_ranges)
        if self.has_coordinates:
            return chromsizes_from_ranges(self.results)
        return pd.Series(dtype="int64", name="length")

    def set_chromsizes(self, chromsizes: Optional[pd.Series]) -> None:
        self._chromsizes = chromsizes
        self._valid_sets = None

    # -------------------------------------------------------------------------
    # Cached valid values for UI sanitisation
    # -------------------------------------------------------------------------
    def valid_sets(self) -> ValidSets:
        if self._valid_sets is not None:
            return self._valid_sets

        res = self.results
        symbols = set(res["symbol"].dropna().astype(str)) if "symbol" in res.columns else set()
        chromosomes = set(map(str, self.chromsizes.index))
        if not chromosomes and "chrom" in res.columns:
            chromosomes = set(res["chrom"].dropna().astype(str))

        self._valid_sets = ValidSets(
            genes=set(res.index),
            symbols=symbols,
            chromosomes=chromosomes,
            samples=set(self.samples.unique()),
            conditions=set(self.conditions.unique()),
        )
        return self._valid_sets

    def chromosome_options(self) -> List[str]:
        return sort_chromosomes(self.valid_sets().chromosomes)

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------
    def clear_caches(self) -> None:
        """Reset cached results, filtered subsets, count tables and valid sets."""
        self._results = None
        self._subset_cache.clear()
        self._counts_cache.clear()
        self._valid_sets = None

    def refresh_obs_indexes(self) -> None:
        """
        Rebuild cached, string-normalised sample / condition Series after
        sample-sheet changes.
        """
        obs = self.adata.obs

        sample_key = self.obs_columns.get("sample")
        if sample_key and sample_key in obs.columns:
            self._sample_series = obs[sample_key].astype(str).copy()
        else:
            self._sample_series = pd.Series(obs.index.astype(str), index=obs.index, name="sample")

        condition_key = self.obs_columns.get("condition")
        if condition_key and condition_key in obs.columns:
            self._condition_series = obs[condition_key].astype(str).copy()
        else:
            self._condition_series = pd.Series(["NA"] * obs.shape[0], index=obs.index, name="condition")

        self.clear_caches()

    @property
    def n_samples(self) -> int:
        return self.adata.n_obs

    @property
    def n_genes(self) -> int:
        return self.adata.n_vars
