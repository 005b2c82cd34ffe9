from __future__ import annotations

from typing import Any, Dict

import pandas as pd
import plotly.graph_objects as go

from de_browser.core.base_view import BaseView
from de_browser.core.dataset import DOWNREGULATED, UPREGULATED
from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.views.manhattan_view import HIT_COLOURS


class KaryogramView(BaseView):
    """
    One bar per chromosome with the significant genes marked at their
    position, coloured by direction of change.
    """

    id = "karyogram"
    label = "Karyogram"
    filter_profile = FilterProfile(chromosomes=True, thresholds=True, direction=True)

    def compute_data(self, state: FilterState) -> Dict[str, Any]:
        chromsizes = self.dataset.chromsizes
        if state.chromosomes:
            chromsizes = chromsizes[chromsizes.index.isin([str(c) for c in state.chromosomes])]
        if chromsizes.empty or not self.dataset.has_coordinates:
            return {}

        chromosomes = pd.DataFrame({"chrom": chromsizes.index.astype(str), "length": chromsizes.to_numpy()})

        hits = self.dataset.filter_results(
            padj=self.padj_threshold(state),
            lfc=self.lfc_threshold(state),
            direction=state.direction,
            chromosomes=list(chromosomes["chrom"]),
        )
        hits = hits.dropna(subset=["chrom", "start", "end"]).copy()
        hits["midpoint"] = (hits["start"] + hits["end"]) / 2
        hits["chrom"] = hits["chrom"].astype(str)
        hits["significance"] = hits["log2FC"].map(lambda fc: UPREGULATED if fc > 0 else DOWNREGULATED)

        return {"chromosomes": chromosomes, "hits": hits}

    def render_figure(self, data: Dict[str, Any], state: FilterState) -> go.Figure:
        # data is a dict, not a DataFrame
        if not data:
            return self.empty_figure("No chromosome layout to show")

        chromosomes: pd.DataFrame = data["chromosomes"]
        hits: pd.DataFrame = data["hits"]
        order = list(chromosomes["chrom"])

        fig = go.Figure()
        fig.add_trace(
            go.Bar(
                x=chromosomes["length"],
                y=chromosomes["chrom"],
                orientation="h",
                marker={"color": "whitesmoke", "line": {"color": "gray", "width": 1}},
                width=0.6,
                hovertemplate="%{y}: %{x:,} bp<extra></extra>",
                name="Chromosome",
                showlegend=False,
            )
        )

        for significance, colour in HIT_COLOURS.items():
            subset = hits[hits["significance"] == significance]
            if subset.empty:
                continue
            fig.add_trace(
                go.Scatter(
                    x=subset["midpoint"],
                    y=subset["chrom"],
                    mode="markers",
                    marker={"symbol": "line-ns-open", "size": 14, "color": colour, "line": {"width": 2}},
                    text=subset["label"],
                    hovertemplate="%{text}<br>%{y}:%{x:,.0f}<extra></extra>",
                    name=significance,
                )
            )

        fig.update_yaxes(categoryorder="array", categoryarray=order[::-1])
        fig.update_layout(
            height=max(400, 28 * len(order)),
            margin=dict(l=60, r=40, b=40, t=60),
            xaxis_title="Position (bp)",
            yaxis_title="",
            legend_title="Significant genes",
            title=f"Karyogram of significant genes ({len(hits)} genes)",
            plot_bgcolor="white",
        )
        return fig
