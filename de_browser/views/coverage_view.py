from __future__ import annotations

import logging
from typing import Any, Dict

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from de_browser.annotation.gene_ranges import genes_in_region
from de_browser.core.base_view import BaseView
from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.services.coverage import CoverageError, gene_region, region_coverage

logger = logging.getLogger(__name__)

STRAND_ARROWS = {"+": "→", "-": "←"}


class CoverageView(BaseView):
    """
    Read coverage around a gene of interest.

    Top panel: binned depth per sample from the BAM files, one line per
    sample, coloured by condition. Bottom panel: the genes overlapping the
    region. Uses the first selected gene, or the top hit.
    """

    id = "coverage"
    label = "Coverage"
    filter_profile = FilterProfile(genes=True, region=True)

    def _gene(self, state: FilterState) -> str | None:
        genes = self.dataset.resolve_genes(state.genes)
        if genes:
            return genes[0]
        top = self.dataset.top_hits(n=1)
        return top.index[0] if not top.empty else None

    def _region_genes(self, region) -> pd.DataFrame:
        ranges = self.dataset.gene_ranges
        if ranges is None:
            res = self.dataset.results.dropna(subset=["chrom", "start", "end"])
            ranges = pd.DataFrame(
                {
                    "chrom": res["chrom"].astype(str),
                    "start": res["start"].astype("int64"),
                    "end": res["end"].astype("int64"),
                    "strand": res["strand"] if "strand" in res.columns else ".",
                    "gene_id": res.index,
                }
            ).reset_index(drop=True)
        genes = genes_in_region(ranges, region.chrom, region.start, region.end)
        labels = self.dataset.results["label"]
        genes["label"] = genes["gene_id"].map(lambda g: labels.get(g, g))
        return genes

    def compute_data(self, state: FilterState) -> Dict[str, Any]:
        if not self.dataset.has_coordinates:
            return {}

        gene_id = self._gene(state)
        if gene_id is None:
            return {}

        row = self.dataset.results.loc[gene_id]
        if pd.isna(row["chrom"]) or pd.isna(row["start"]):
            return {"message": f"No coordinates for {row['label']}"}

        bam_paths = self.dataset.bam_paths()
        if not bam_paths:
            return {"message": "No BAM files configured for this dataset"}

        region = gene_region(row["chrom"], int(row["start"]), int(row["end"]), flank=state.flank)
        try:
            coverage = region_coverage(bam_paths, region.chrom, region.start, region.end, bin_size=state.bin_size)
        except CoverageError as e:
            logger.warning("Coverage unavailable", extra={"dataset": self.dataset.name, "error": str(e)})
            return {"message": str(e)}

        conditions = dict(zip(self.dataset.samples.values, self.dataset.conditions.values))
        coverage["condition"] = coverage["sample"].map(conditions).fillna("NA")

        return {
            "coverage": coverage,
            "genes": self._region_genes(region),
            "region": region,
            "gene_label": row["label"],
        }

    def render_figure(self, data: Dict[str, Any], state: FilterState) -> go.Figure:
        if not data:
            return self.empty_figure("No coverage to show")
        if "message" in data:
            return self.empty_figure(data["message"])

        coverage: pd.DataFrame = data["coverage"]
        genes: pd.DataFrame = data["genes"]
        region = data["region"]

        fig = make_subplots(
            rows=2,
            cols=1,
            shared_xaxes=True,
            row_heights=[0.8, 0.2],
            vertical_spacing=0.04,
        )

        palette = px.colors.qualitative.Set1
        conditions = list(dict.fromkeys(coverage["condition"]))
        colour_by_condition = {c: palette[i % len(palette)] for i, c in enumerate(conditions)}
        shown = set()

        for sample, sample_cov in coverage.groupby("sample", sort=False):
            condition = sample_cov["condition"].iloc[0]
            fig.add_trace(
                go.Scatter(
                    x=sample_cov["position"],
                    y=sample_cov["depth"],
                    mode="lines",
                    line={"color": colour_by_condition[condition], "width": 1, "shape": "hv"},
                    name=str(condition),
                    legendgroup=str(condition),
                    showlegend=condition not in shown,
                    text=[sample] * len(sample_cov),
                    hovertemplate="%{text}<br>%{x:,}: %{y:.1f}<extra></extra>",
                ),
                row=1,
                col=1,
            )
            shown.add(condition)

        for i, gene in genes.reset_index(drop=True).iterrows():
            y = i % 2
            start = max(int(gene["start"]), region.start)
            end = min(int(gene["end"]), region.end)
            fig.add_shape(
                type="rect",
                x0=start,
                x1=end,
                y0=y - 0.3,
                y1=y + 0.3,
                fillcolor="darkblue",
                line={"width": 0},
                row=2,
                col=1,
            )
            arrow = STRAND_ARROWS.get(str(gene.get("strand", ".")), "")
            fig.add_annotation(
                x=(start + end) / 2,
                y=y + 0.6,
                text=f"{gene['label']} {arrow}".strip(),
                showarrow=False,
                font={"size": 10},
                row=2,
                col=1,
            )

        fig.update_yaxes(title_text="Depth", row=1, col=1)
        fig.update_yaxes(visible=False, range=[-0.6, 1.9], row=2, col=1)
        fig.update_xaxes(range=[region.start, region.end], title_text=f"{region.chrom} position", row=2, col=1)
        fig.update_layout(
            height=600,
            margin=dict(l=40, r=40, b=40, t=60),
            legend_title="Condition",
            title=f"Read coverage around {data['gene_label']} ({region})",
        )
        return fig
