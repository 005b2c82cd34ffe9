from __future__ import annotations

import numpy as np
import pandas as pd

from de_browser.core.dataset import Dataset
from de_browser.validation.errors import ValidationError, ValidationIssue


def validate_dataset(ds: Dataset) -> None:
    """
    Check the canonical results table is usable by the views and exports.

    Raises ValidationError listing every issue found.
    """
    issues: list[ValidationIssue] = []
    res = ds.results

    for column, code in (
        ("base_mean", "RESULTS_BASE_MEAN"),
        ("log2FC", "RESULTS_LOG2FC"),
        ("pvalue", "RESULTS_PVALUE"),
        ("adj_pvalue", "RESULTS_PADJ"),
    ):
        if column not in res.columns:
            issues.append(ValidationIssue(code, f"Missing results column for '{column}'."))
        elif res[column].isna().all() and len(res):
            issues.append(ValidationIssue(code, f"Results column '{column}' has no numeric values."))

    for column, code in (("pvalue", "RESULTS_PVALUE_RANGE"), ("adj_pvalue", "RESULTS_PADJ_RANGE")):
        if column in res.columns:
            values = res[column].dropna()
            if ((values < 0) | (values > 1)).any():
                issues.append(ValidationIssue(code, f"'{column}' has values outside [0, 1]."))

    if "base_mean" in res.columns and (res["base_mean"].dropna() < 0).any():
        issues.append(ValidationIssue("RESULTS_BASE_MEAN_RANGE", "base_mean has negative values."))

    if all(c in res.columns for c in ("start", "end")):
        located = res.dropna(subset=["start", "end"])
        bad = located[pd.to_numeric(located["start"]) > pd.to_numeric(located["end"])]
        if not bad.empty:
            issues.append(
                ValidationIssue(
                    "RESULTS_INTERVAL",
                    f"{len(bad)} genes have start > end (e.g. {bad.index[0]}).",
                )
            )

    X = ds.adata.X
    if X is not None and ds.n_samples:
        dense = X.toarray() if hasattr(X, "toarray") else np.asarray(X, dtype=float)
        if (np.nan_to_num(dense, nan=0.0) < 0).any():
            issues.append(ValidationIssue("COUNTS_NEGATIVE", "Normalised counts contain negative values."))

    condition_key = ds.obs_columns.get("condition")
    if condition_key and condition_key not in ds.adata.obs.columns:
        issues.append(ValidationIssue("SAMPLES_CONDITION_KEY", f"condition key '{condition_key}' not in sample sheet."))

    if issues:
        raise ValidationError(issues)
