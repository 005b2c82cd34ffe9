from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import dash
import plotly.graph_objs as go
from dash import Input, Output, State

from de_browser.core.filter_state import FilterProfile, FilterState
from de_browser.ui.ids import IDs
from de_browser.ui.layout import chromosome_options, dataset_meta, gene_options

if TYPE_CHECKING:
    from de_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)

HIDDEN = {"display": "none"}
SHOWN: Dict[str, str] = {}


# -----------------------------------------------------------------------------
# Helper: Empty/Error Figures
# -----------------------------------------------------------------------------
def _message_figure(title: str, details: Optional[str] = None) -> go.Figure:
    fig = go.Figure()
    text = title if details is None else f"{title}<br><br>{details}"
    fig.add_annotation(
        text=text,
        showarrow=False,
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(margin=dict(l=40, r=40, t=40, b=40))
    return fig


def _error_figure(details: str) -> go.Figure:
    return _message_figure("Something went wrong while rendering this view.", details)


def build_filter_state(
    dataset_name: str,
    view_id: str,
    genes: Optional[List[str]],
    chromosomes: Optional[List[str]],
    padj: Optional[float],
    lfc: Optional[float],
    direction: Optional[str],
    top_n: Optional[int],
    flank: Optional[int],
    bin_size: Optional[int],
    options: Optional[List[str]],
) -> Dict[str, Any]:
    """Collect sidebar control values into a serialisable FilterState dict."""
    state = FilterState(
        dataset_name=dataset_name,
        view_id=view_id,
        genes=list(genes or []),
        chromosomes=list(chromosomes or []),
        padj_threshold=padj,
        lfc_threshold=lfc,
        direction=direction or "both",
        top_n=top_n,
        flank=2000 if flank is None else int(flank),
        bin_size=50 if not bin_size else int(bin_size),
        log_scale="log_scale" in (options or []),
    )
    return state.to_dict()


def container_styles(profile: FilterProfile) -> List[Dict[str, str]]:
    """Visibility of the filter containers, in IDs order, for a view's profile."""
    flags = [
        profile.genes,
        profile.chromosomes,
        profile.thresholds,
        profile.direction,
        profile.top_n,
        profile.region,
    ]
    return [SHOWN if flag else HIDDEN for flag in flags]


def dataset_controls(ctx: "AppConfig", dataset_name: str) -> tuple:
    """
    Sidebar values for a newly selected dataset.

    A dataset that fails to load clears the gene/chromosome options, keeps the
    thresholds as they are and reports the error in the metadata line.
    """
    try:
        ds = ctx.dataset_by_name[dataset_name]
    except Exception as e:
        logger.exception("dataset_load_failed", extra={"dataset": dataset_name})
        return (
            [],
            [],
            [],
            [],
            dash.no_update,
            dash.no_update,
            dash.no_update,
            f"Could not load '{dataset_name}': {e}",
        )
    return (
        gene_options(ds),
        [],
        chromosome_options(ds),
        [],
        ds.thresholds.padj,
        ds.thresholds.lfc,
        ds.top_n,
        dataset_meta(ds),
    )


def render_state(ctx: "AppConfig", fs_data: Optional[Dict[str, Any]]) -> go.Figure:
    """FilterState dict -> figure, never raising."""
    if fs_data is None:
        return _message_figure(
            "No dataset/view selected.",
            "Choose a dataset and view to see any plots.",
        )

    try:
        state = FilterState.from_dict(fs_data)
    except (TypeError, ValueError):
        logger.exception("Invalid filter state in main graph callback: %r", fs_data)
        return _error_figure("Internal error: invalid filter state.")

    # datasets load lazily, so a broken config only surfaces here
    try:
        ds = ctx.dataset_by_name[state.dataset_name]
    except KeyError:
        return _error_figure(
            f"The dataset '{state.dataset_name}' is not available. "
            "Try reloading the app or selecting a different dataset."
        )
    except Exception as e:
        logger.exception("dataset_load_failed", extra={"dataset": state.dataset_name})
        return _error_figure(f"The dataset '{state.dataset_name}' could not be loaded: {e}")

    try:
        view = ctx.registry.create(state.view_id, ds)
        logger.info(
            "render_start",
            extra={"view_id": state.view_id, "dataset": state.dataset_name, "n_genes": len(state.genes)},
        )
        data = view.compute_data(state)
        return view.render_figure(data, state)
    except Exception as e:
        logger.exception(
            "render_failed",
            extra={"view_id": state.view_id, "dataset": state.dataset_name},
        )
        return _error_figure(str(e))


def register_callbacks(app: dash.Dash, ctx: "AppConfig") -> None:
    C = IDs.Control

    @app.callback(
        Output(C.GENE_SELECT, "options"),
        Output(C.GENE_SELECT, "value"),
        Output(C.CHROMOSOME_SELECT, "options"),
        Output(C.CHROMOSOME_SELECT, "value"),
        Output(C.PADJ_INPUT, "value"),
        Output(C.LFC_INPUT, "value"),
        Output(C.TOP_N_INPUT, "value"),
        Output(C.SIDEBAR_DATASET_META, "children"),
        Input(C.DATASET_SELECT, "value"),
        prevent_initial_call=True,
    )
    def on_dataset_change(dataset_name: str):
        return dataset_controls(ctx, dataset_name)

    @app.callback(
        Output(C.GENE_FILTER_CONTAINER, "style"),
        Output(C.CHROMOSOME_FILTER_CONTAINER, "style"),
        Output(C.THRESHOLD_FILTER_CONTAINER, "style"),
        Output(C.DIRECTION_FILTER_CONTAINER, "style"),
        Output(C.TOP_N_FILTER_CONTAINER, "style"),
        Output(C.REGION_FILTER_CONTAINER, "style"),
        Input(C.VIEW_SELECT, "value"),
    )
    def on_view_change(view_id: str):
        profile = FilterProfile()
        for view_cls in ctx.registry.all_classes():
            if view_cls.id == view_id:
                profile = view_cls.filter_profile
        return container_styles(profile)

    @app.callback(
        Output(IDs.Store.FILTER_STATE, "data"),
        Input(C.DATASET_SELECT, "value"),
        Input(C.VIEW_SELECT, "value"),
        Input(C.GENE_SELECT, "value"),
        Input(C.CHROMOSOME_SELECT, "value"),
        Input(C.PADJ_INPUT, "value"),
        Input(C.LFC_INPUT, "value"),
        Input(C.DIRECTION_SELECT, "value"),
        Input(C.TOP_N_INPUT, "value"),
        Input(C.FLANK_INPUT, "value"),
        Input(C.BIN_SIZE_INPUT, "value"),
        Input(C.OPTIONS_CHECKLIST, "value"),
    )
    def on_controls_change(*values):
        return build_filter_state(*values)

    @app.callback(
        Output(C.MAIN_GRAPH, "figure"),
        Input(IDs.Store.FILTER_STATE, "data"),
        State(C.MAIN_GRAPH, "figure"),
    )
    def update_main_graph_from_state(fs_data: Optional[Dict[str, Any]], _current):
        return render_state(ctx, fs_data)
