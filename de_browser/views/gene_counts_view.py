from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from de_browser.core.base_view import BaseView
from de_browser.core.filter_state import FilterProfile, FilterState

# Keeps zero counts on a log axis
PSEUDOCOUNT = 0.5
MAX_GENES = 12


class GeneCountsView(BaseView):
    """
    Strip chart of normalised counts: one point per sample, grouped by
    condition, one panel per gene.

    Shows the selected genes, or the top hits when nothing is selected.
    """

    id = "gene_counts"
    label = "Gene counts"
    filter_profile = FilterProfile(genes=True, top_n=True)

    def _genes(self, state: FilterState) -> list[str]:
        genes = self.dataset.resolve_genes(state.genes)
        if not genes:
            genes = list(self.dataset.top_hits(n=min(self.top_n(state), MAX_GENES)).index)
        return genes[:MAX_GENES]

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        genes = self._genes(state)
        df = self.dataset.counts_for(genes)
        df = df.dropna(subset=["count"])
        if df.empty:
            return pd.DataFrame()

        df = df.copy()
        df["plot_count"] = df["count"] + PSEUDOCOUNT if state.log_scale else df["count"]
        return df

    def render_figure(self, data: pd.DataFrame, state: FilterState) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No counts to show - select genes with count data")

        labels = list(dict.fromkeys(data["label"]))
        n_cols = min(3, len(labels))

        fig = px.strip(
            data,
            x="condition",
            y="plot_count",
            color="condition",
            facet_col="label",
            facet_col_wrap=n_cols,
            category_orders={"label": labels},
            hover_data={"sample": True, "count": ":.1f", "plot_count": False},
            log_y=state.log_scale,
        )
        # "label=Csn1s2b" -> "Csn1s2b"
        fig.for_each_annotation(lambda a: a.update(text=a.text.split("=", 1)[-1]))
        fig.update_yaxes(matches=None, showticklabels=True)

        n_rows = -(-len(labels) // n_cols)
        fig.update_layout(
            height=max(400, 300 * n_rows),
            margin=dict(l=40, r=40, b=40, t=60),
            legend_title="Condition",
            title="Normalised counts per sample",
        )
        fig.update_yaxes(title_text="")
        fig.update_yaxes(title_text="Normalised count", col=1)
        return fig
