from de_browser.core.view_registry import ViewRegistry

from .dataset_summary_view import DatasetSummary
from .ma_plot_view import MAPlotView
from .volcano_plot_view import VolcanoPlotView
from .gene_counts_view import GeneCountsView
from .manhattan_view import ManhattanView
from .karyogram_view import KaryogramView
from .coverage_view import CoverageView

# Notebook order: overview, scatter plots, per-gene detail, genome-wide
ALL_VIEWS = (
    DatasetSummary,
    MAPlotView,
    VolcanoPlotView,
    GeneCountsView,
    ManhattanView,
    KaryogramView,
    CoverageView,
)


def build_view_registry() -> ViewRegistry:
    return ViewRegistry(ALL_VIEWS)


__all__ = [
    "ALL_VIEWS",
    "build_view_registry",
    "CoverageView",
    "DatasetSummary",
    "GeneCountsView",
    "KaryogramView",
    "MAPlotView",
    "ManhattanView",
    "VolcanoPlotView",
]
