from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import anndata as ad
import numpy as np
import pandas as pd

from de_browser.config.model import DatasetConfig, ObsColumns, VarColumns
from de_browser.core.dataset import Dataset

logger = logging.getLogger(__name__)


class DatasetConfigError(ValueError):
    """
    Raised when a dataset config is structurally invalid for loading.
    """
    pass


def resolve_data_path(path: Path, cfg: DatasetConfig, data_root: Optional[Path] = None) -> Path:
    """
    Resolve a dataset-relative path.

    Order: absolute paths as-is, then DE_BROWSER_DATA_ROOT, then the global
    data_root, then the directory holding the dataset config file.
    """
    if path.is_absolute():
        return path

    env_root = os.environ.get("DE_BROWSER_DATA_ROOT")
    candidates = []
    if env_root:
        candidates.append(Path(env_root))
    if data_root is not None:
        candidates.append(Path(data_root))
    candidates.append(cfg.source_path.parent)

    for root in candidates:
        resolved = root / path
        if resolved.exists():
            return resolved

        # Fallback for redundant 'data/' prefix
        if path.parts and path.parts[0] == "data":
            alt = root / Path(*path.parts[1:])
            if alt.exists():
                return alt

    return candidates[0] / path


def read_table(path: Path, **kwargs) -> pd.DataFrame:
    """
    Read a delimited text table, choosing the separator from the suffix.
    """
    suffixes = [s.lower() for s in path.suffixes]
    if ".gz" in suffixes:
        suffixes.remove(".gz")
    sep = "\t" if suffixes and suffixes[-1] in (".tsv", ".txt", ".tab") else ","
    return pd.read_csv(path, sep=sep, **kwargs)


def _ensure_unique_names(adata: ad.AnnData, cfg: DatasetConfig, path: Path) -> ad.AnnData:
    """
    Ensure sample and gene names are unique, logging what we do.
    """
    if not adata.obs_names.is_unique:
        logger.warning(
            "Sample names are not unique for dataset '%s' (%s); "
            "calling .obs_names_make_unique() (in-memory fix)",
            cfg.name,
            path,
        )
        adata.obs_names_make_unique()

    if not adata.var_names.is_unique:
        logger.warning(
            "Gene ids are not unique for dataset '%s' (%s); "
            "calling .var_names_make_unique() (in-memory fix)",
            cfg.name,
            path,
        )
        adata.var_names_make_unique()

    return adata


def _validate_columns(adata: ad.AnnData, cfg: DatasetConfig, path: Path) -> None:
    """
    Validate column mappings: DE columns must exist, sample-sheet columns only
    if they are explicitly configured.
    """
    var_cols: VarColumns = cfg.var_columns
    for logical_name in ("base_mean", "log2fc", "pvalue", "padj"):
        col_name = getattr(var_cols, logical_name)
        if col_name not in adata.var.columns:
            msg = (
                f"Dataset '{cfg.name}': var_columns.{logical_name}='{col_name}' "
                f"not found in results columns {list(adata.var.columns)}"
            )
            logger.error(msg, extra={"dataset": cfg.name, "path": str(path), logical_name: col_name})
            raise DatasetConfigError(msg)

    obs_cols: ObsColumns = cfg.obs_columns
    for logical_name, col_name in obs_cols.as_dict().items():
        if col_name not in adata.obs.columns:
            msg = (
                f"Dataset '{cfg.name}': obs_columns.{logical_name}='{col_name}' "
                f"not found in the sample sheet"
            )
            logger.error(msg, extra={"dataset": cfg.name, "path": str(path), logical_name: col_name})
            raise DatasetConfigError(msg)


def _require_file(path: Path, what: str) -> Path:
    if not path.is_file():
        raise DatasetConfigError(f"{what} not found at {path}.")
    return path


def adata_from_tables(
    results: pd.DataFrame,
    counts: Optional[pd.DataFrame] = None,
    samples: Optional[pd.DataFrame] = None,
) -> ad.AnnData:
    """
    Assemble the samples x genes AnnData from the DE results table, an
    optional genes x samples normalised count matrix and an optional sample
    sheet indexed by sample.

    Genes present in the results but absent from the count matrix get NaN
    counts; count-matrix genes without results are dropped.
    """
    var = results.copy()
    var.index = var.index.astype(str)

    if counts is not None:
        counts = counts.copy()
        counts.index = counts.index.astype(str)
        counts.columns = counts.columns.astype(str)
        missing = var.index.difference(counts.index)
        if len(missing):
            logger.warning(
                "%d genes in the results have no counts; filling with NaN",
                len(missing),
            )
        matrix = counts.reindex(var.index).T
        sample_names = list(matrix.index)
        X = matrix.to_numpy(dtype=float)
    else:
        sample_names = [] if samples is None else list(samples.index.astype(str))
        X = np.full((len(sample_names), var.shape[0]), np.nan)

    if samples is not None:
        samples = samples.copy()
        samples.index = samples.index.astype(str)
        unknown = [s for s in sample_names if s not in samples.index]
        if unknown:
            raise DatasetConfigError(f"Samples missing from the sample sheet: {unknown}")
        obs = samples.loc[sample_names]
    else:
        obs = pd.DataFrame(index=pd.Index(sample_names))

    obs.index.name = None
    var.index.name = None
    return ad.AnnData(X=X, obs=obs, var=var)


def _read_from_tables(cfg: DatasetConfig, data_root: Optional[Path]) -> tuple[ad.AnnData, Path]:
    results_path = _require_file(resolve_data_path(cfg.results_path, cfg, data_root), "Results table")

    gene_id = cfg.var_columns.gene_id
    results = read_table(results_path)
    if gene_id is not None:
        if gene_id not in results.columns:
            raise DatasetConfigError(
                f"Dataset '{cfg.name}': var_columns.gene_id='{gene_id}' not found in {results_path}"
            )
        results = results.set_index(gene_id)
    elif isinstance(results.index, pd.RangeIndex):
        # DESeq2's write.csv puts the gene ids in an unnamed first column
        results = results.set_index(results.columns[0])
    # else: write.table's header is one field short, so pandas already used
    # the ids as the index

    counts = None
    if cfg.counts_path is not None:
        counts_path = _require_file(resolve_data_path(cfg.counts_path, cfg, data_root), "Count matrix")
        counts = read_table(counts_path, index_col=0)

    samples = None
    if cfg.samples_path is not None:
        samples_path = _require_file(resolve_data_path(cfg.samples_path, cfg, data_root), "Sample sheet")
        samples = read_table(samples_path)
        sample_key = cfg.obs_columns.sample
        if sample_key is not None and sample_key in samples.columns:
            samples = samples.set_index(samples[sample_key].astype(str), drop=False)
        else:
            samples = samples.set_index(samples.columns[0], drop=False)

    return adata_from_tables(results, counts, samples), results_path


def from_config(cfg: DatasetConfig, data_root: Optional[Path] = None) -> Dataset:
    """
    Materialise an AnnData-backed Dataset from a DatasetConfig.

    Either `file` (an .h5ad holding results in .var, counts in .X and the
    sample sheet in .obs) or `results` (+ optional `counts`, `samples`) must
    be configured. Annotation is applied separately, see
    `de_browser.annotation.annotate.annotate_from_config`.
    """
    if cfg.path is not None:
        path = _require_file(resolve_data_path(cfg.path, cfg, data_root), "AnnData file")
        adata = ad.read_h5ad(path)
    elif cfg.results_path is not None:
        adata, path = _read_from_tables(cfg, data_root)
    else:
        raise DatasetConfigError(
            f"Dataset '{cfg.name}' must configure either 'file' or 'results'"
        )

    adata = _ensure_unique_names(adata, cfg, path)
    _validate_columns(adata, cfg, path)

    bam_dir = cfg.bam_dir
    if bam_dir is not None:
        bam_dir = resolve_data_path(bam_dir, cfg, data_root)

    logger.info(
        "Loaded dataset",
        extra={"dataset": cfg.name, "n_samples": adata.n_obs, "n_genes": adata.n_vars, "path": str(path)},
    )

    return Dataset(
        name=cfg.name,
        group=cfg.group,
        adata=adata,
        var_columns=cfg.var_columns,
        obs_columns=cfg.obs_columns,
        file_path=path,
        bam_dir=bam_dir,
        thresholds=cfg.thresholds,
        top_n=cfg.top_n,
    )
