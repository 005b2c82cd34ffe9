from __future__ import annotations

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from de_browser.core.base_view import BaseView
from de_browser.core.dataset import DOWNREGULATED, NOT_SIGNIFICANT, UPREGULATED
from de_browser.core.filter_state import FilterProfile, FilterState

SIGNIFICANCE_COLOURS = {
    NOT_SIGNIFICANT: "lightgray",
    UPREGULATED: "red",
    DOWNREGULATED: "blue",
}


class VolcanoPlotView(BaseView):
    """
    Volcano plot for differential expression results.

    X: log2 fold change
    Y: -log10(p-value)
    Colour: up / down / not significant (by adjusted p-value and |log2FC|)
    The top hits are labelled with their symbol.
    """

    id = "volcano"
    label = "Volcano"
    filter_profile = FilterProfile(
        genes=True,
        thresholds=True,
        top_n=True,
    )

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        df = self.with_significance(state)
        df = df.dropna(subset=["log2FC", "pvalue"])
        if df.empty:
            return pd.DataFrame()

        # Avoid log10(0) -> inf; p-values that underflowed sit at the top of the plot
        p = df["pvalue"].astype(float).clip(lower=np.finfo(float).tiny)
        df["neg_log10_pvalue"] = -np.log10(p)

        padj_threshold = self.padj_threshold(state)
        top = self.dataset.top_hits(
            n=self.top_n(state), padj=padj_threshold, lfc=self.lfc_threshold(state)
        ).index
        highlighted = set(top) | set(self.dataset.resolve_genes(state.genes))
        df["highlight"] = df.index.isin(list(highlighted))

        df.attrs["log_fc_threshold"] = self.lfc_threshold(state)
        df.attrs["pval_threshold"] = padj_threshold
        df.attrs["comparison"] = self.dataset.name

        return df

    def render_figure(self, data: pd.DataFrame, state: FilterState) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No data to show")

        log_fc_threshold = data.attrs.get("log_fc_threshold", 1.0)
        pval_threshold = data.attrs.get("pval_threshold", 0.05)
        comparison = data.attrs.get("comparison", "")

        hover = {"gene": True, "log2FC": ":.3f", "pvalue": ":.3g", "adj_pvalue": ":.3g", "neg_log10_pvalue": False}
        if "gene_name" in data.columns:
            hover["gene_name"] = True

        fig = px.scatter(
            data,
            x="log2FC",
            y="neg_log10_pvalue",
            color="significance",
            hover_name="label",
            hover_data=hover,
            color_discrete_map=SIGNIFICANCE_COLOURS,
            category_orders={"significance": list(SIGNIFICANCE_COLOURS)},
        )

        for x in (log_fc_threshold, -log_fc_threshold):
            fig.add_vline(
                x=x,
                line_dash="dash",
                line_color="black",
                opacity=0.6,
            )

        labelled = data[data["highlight"]]
        for _, row in labelled.iterrows():
            fig.add_annotation(
                x=row["log2FC"],
                y=row["neg_log10_pvalue"],
                text=row["label"],
                showarrow=True,
                arrowhead=0,
                ax=0,
                ay=-20,
                font={"size": 10},
            )

        fig.update_layout(
            height=600,
            margin=dict(l=40, r=40, b=40, t=60),
            xaxis_title="log2(Fold Change)",
            yaxis_title="-log10(p-value)",
            legend_title=f"padj <= {pval_threshold:g}, |log2FC| >= {log_fc_threshold:g}",
            title=f"Volcano plot ({comparison})",
        )

        return fig
