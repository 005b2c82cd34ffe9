from __future__ import annotations

from typing import Any, Dict

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from de_browser.core.base_view import BaseView
from de_browser.core.dataset import DOWNREGULATED, NOT_SIGNIFICANT, UPREGULATED
from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.views.volcano_plot_view import SIGNIFICANCE_COLOURS


class DatasetSummary(BaseView):
    """
    Lightweight dataset inspector.

    Shows:
      - number of genes and samples
      - bar chart of up / down / not significant genes
      - bar chart of samples per condition

    Mainly a sanity check that the column mappings and annotation worked.
    """

    id = "dataset_summary"
    label = "Dataset Summary"
    filter_profile = FilterProfile(thresholds=True)

    def compute_data(self, state: FilterState) -> Dict[str, Any]:
        ds = self.dataset
        if ds.n_genes == 0:
            return {}

        res = ds.results
        labels = ds.significance_labels(padj=self.padj_threshold(state), lfc=self.lfc_threshold(state))
        significance_counts = (
            labels.value_counts()
            .reindex([UPREGULATED, DOWNREGULATED, NOT_SIGNIFICANT], fill_value=0)
            .rename_axis("significance")
            .reset_index(name="count")
        )

        condition_counts = ds.conditions.value_counts().rename_axis("condition").reset_index(name="count")

        annotation = {
            "n_padj_missing": int(res["adj_pvalue"].isna().sum()),
            "n_with_symbol": int(res["symbol"].notna().sum()) if "symbol" in res.columns else 0,
            "n_with_coordinates": int(res["chrom"].notna().sum()) if "chrom" in res.columns else 0,
        }

        return {
            "n_genes": ds.n_genes,
            "n_samples": ds.n_samples,
            "significance_counts": significance_counts,
            "condition_counts": condition_counts,
            **annotation,
        }

    def render_figure(self, data: Dict[str, Any], state: FilterState) -> go.Figure:
        # data is a dict, not a DataFrame - so do NOT call data.empty
        if not data:
            return self.empty_figure("Dataset has no genes")

        significance_counts: pd.DataFrame = data["significance_counts"]
        condition_counts: pd.DataFrame = data["condition_counts"]

        fig = make_subplots(
            rows=1,
            cols=2,
            subplot_titles=("Genes by significance", "Samples per condition"),
        )

        fig.add_bar(
            x=significance_counts["significance"],
            y=significance_counts["count"],
            marker_color=[SIGNIFICANCE_COLOURS[s] for s in significance_counts["significance"]],
            row=1,
            col=1,
            name="Genes",
        )

        if not condition_counts.empty:
            fig.add_bar(
                x=condition_counts["condition"],
                y=condition_counts["count"],
                row=1,
                col=2,
                name="Samples",
            )

        fig.update_yaxes(title_text="# genes", row=1, col=1)
        fig.update_xaxes(title_text="Condition", row=1, col=2)
        fig.update_yaxes(title_text="# samples", row=1, col=2)

        fig.update_layout(
            height=500,
            margin=dict(l=40, r=40, t=80, b=40),
            title=(
                f"Dataset summary: {data['n_genes']} genes, {data['n_samples']} samples, "
                f"{data['n_with_symbol']} with symbols, {data['n_with_coordinates']} with coordinates"
            ),
            showlegend=False,
        )
        return fig
