from __future__ import annotations

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from de_browser.core.base_view import BaseView
from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.views.volcano_plot_view import SIGNIFICANCE_COLOURS


class MAPlotView(BaseView):
    """
    Mean expression against fold change, coloured by significance.
    """

    id = "ma_plot"
    label = "MA plot"
    filter_profile = FilterProfile(thresholds=True)

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        df = self.with_significance(state)
        df = df.dropna(subset=["base_mean", "log2FC"])
        # Genes with no reads cannot go on a log axis
        df = df[df["base_mean"] > 0].copy()
        if df.empty:
            return pd.DataFrame()

        df["log10_base_mean"] = np.log10(df["base_mean"])
        return df

    def render_figure(self, data: pd.DataFrame, state: FilterState) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No data to show")

        fig = px.scatter(
            data,
            x="log10_base_mean",
            y="log2FC",
            color="significance",
            hover_name="label",
            hover_data={"gene": True, "base_mean": ":.1f", "adj_pvalue": ":.3g", "log10_base_mean": False},
            color_discrete_map=SIGNIFICANCE_COLOURS,
            category_orders={"significance": list(SIGNIFICANCE_COLOURS)},
        )
        fig.add_hline(y=0, line_color="black", opacity=0.6)

        fig.update_layout(
            height=600,
            margin=dict(l=40, r=40, b=40, t=60),
            xaxis_title="log10(mean normalised count)",
            yaxis_title="log2(Fold Change)",
            legend_title="Significance",
            title=f"MA plot ({self.dataset.name})",
        )
        return fig
