from __future__ import annotations

from typing import Dict

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from de_browser.core.base_view import BaseView
from de_browser.core.dataset import DOWNREGULATED, NOT_SIGNIFICANT, UPREGULATED
from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.core.genome import chromosome_offsets

CHROM_COLOURS = ("#7f7f7f", "#bdbdbd")
HIT_COLOURS: Dict[str, str] = {UPREGULATED: "red", DOWNREGULATED: "blue"}


class ManhattanView(BaseView):
    """
    Genome-wide plot of -log10(p-value) at each gene's position.

    Chromosomes are laid end to end in natural order with alternating
    colours; significant genes are drawn on top in red (up) / blue (down).
    Needs gene coordinates (annotate the dataset with gene ranges).
    """

    id = "manhattan"
    label = "Manhattan"
    filter_profile = FilterProfile(chromosomes=True, thresholds=True)

    def compute_data(self, state: FilterState) -> pd.DataFrame:
        if not self.dataset.has_coordinates:
            return pd.DataFrame()

        chromsizes = self.dataset.chromsizes
        if state.chromosomes:
            chromsizes = chromsizes[chromsizes.index.isin([str(c) for c in state.chromosomes])]
        if chromsizes.empty:
            return pd.DataFrame()

        df = self.with_significance(state)
        df = df.dropna(subset=["chrom", "start", "end", "pvalue"])
        df = df[df["chrom"].astype(str).isin(chromsizes.index)].copy()
        if df.empty:
            return pd.DataFrame()

        offsets = chromosome_offsets(chromsizes)
        chrom = df["chrom"].astype(str)
        df["genome_pos"] = chrom.map(offsets) + (df["start"] + df["end"]) / 2
        df["neg_log10_pvalue"] = -np.log10(df["pvalue"].clip(lower=np.finfo(float).tiny))

        chrom_index = {c: i for i, c in enumerate(chromsizes.index)}
        df["chrom_colour"] = chrom.map(lambda c: CHROM_COLOURS[chrom_index[c] % 2])
        df = df.sort_values("genome_pos", kind="mergesort")

        centres = offsets + chromsizes / 2
        df.attrs["tick_positions"] = centres.tolist()
        df.attrs["tick_labels"] = [str(c) for c in chromsizes.index]
        df.attrs["genome_length"] = int(chromsizes.sum())
        return df

    def render_figure(self, data: pd.DataFrame, state: FilterState) -> go.Figure:
        if data is None or data.empty:
            return self.empty_figure("No genes with coordinates to show")

        fig = go.Figure()

        background = data[data["significance"] == NOT_SIGNIFICANT]
        fig.add_trace(
            go.Scattergl(
                x=background["genome_pos"],
                y=background["neg_log10_pvalue"],
                mode="markers",
                marker={"color": background["chrom_colour"], "size": 4},
                text=background["label"],
                customdata=background["chrom"],
                hovertemplate="%{text}<br>%{customdata}<br>-log10(p)=%{y:.2f}<extra></extra>",
                name=NOT_SIGNIFICANT,
            )
        )

        for significance, colour in HIT_COLOURS.items():
            hits = data[data["significance"] == significance]
            if hits.empty:
                continue
            fig.add_trace(
                go.Scattergl(
                    x=hits["genome_pos"],
                    y=hits["neg_log10_pvalue"],
                    mode="markers",
                    marker={"color": colour, "size": 6},
                    text=hits["label"],
                    customdata=hits["chrom"],
                    hovertemplate="%{text}<br>%{customdata}<br>-log10(p)=%{y:.2f}<extra></extra>",
                    name=significance,
                )
            )

        fig.update_xaxes(
            tickmode="array",
            tickvals=data.attrs.get("tick_positions", []),
            ticktext=data.attrs.get("tick_labels", []),
            range=[0, data.attrs.get("genome_length", data["genome_pos"].max())],
            showgrid=False,
        )
        fig.update_layout(
            height=500,
            margin=dict(l=40, r=40, b=40, t=60),
            xaxis_title="Chromosome",
            yaxis_title="-log10(p-value)",
            legend_title="Significance",
            title=f"Genome-wide differential expression ({self.dataset.name})",
        )
        return fig
