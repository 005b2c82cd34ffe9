from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

import dash_bootstrap_components as dbc
from dash import dcc, html

from de_browser.core.dataset import Dataset
from de_browser.ui.ids import IDs

if TYPE_CHECKING:
    from de_browser.ui.config import AppConfig

DIRECTION_OPTIONS = [
    {"label": "Both", "value": "both"},
    {"label": "Up", "value": "up"},
    {"label": "Down", "value": "down"},
]


def gene_options(ds: Dataset) -> List[Dict[str, str]]:
    """Dropdown options for genes, most significant first."""
    res = ds.results.sort_values("adj_pvalue", na_position="last", kind="mergesort")
    return [
        {"label": label if label == gene else f"{label} ({gene})", "value": gene}
        for gene, label in zip(res["gene"], res["label"])
    ]


def chromosome_options(ds: Dataset) -> List[Dict[str, str]]:
    return [{"label": c, "value": c} for c in ds.chromosome_options()]


def dataset_meta(ds: Dataset) -> str:
    return f"{ds.n_genes} genes · {ds.n_samples} samples · group {ds.group}"


def _labelled(label: str, control: Any, container_id: str) -> html.Div:
    return html.Div(
        [dbc.Label(label, className="mb-1"), control],
        id=container_id,
        className="mb-3",
    )


def build_filter_panel(ds: Dataset) -> dbc.Card:
    C = IDs.Control
    return dbc.Card(
        dbc.CardBody(
            [
                html.Div(dataset_meta(ds), id=C.SIDEBAR_DATASET_META, className="text-muted small mb-3"),
                _labelled(
                    "Genes",
                    dcc.Dropdown(id=C.GENE_SELECT, options=gene_options(ds), multi=True, placeholder="Symbol or id"),
                    C.GENE_FILTER_CONTAINER,
                ),
                _labelled(
                    "Chromosomes",
                    dcc.Dropdown(id=C.CHROMOSOME_SELECT, options=chromosome_options(ds), multi=True),
                    C.CHROMOSOME_FILTER_CONTAINER,
                ),
                _labelled(
                    "Adjusted p-value / |log2FC| thresholds",
                    dbc.InputGroup(
                        [
                            dbc.Input(id=C.PADJ_INPUT, type="number", min=0, max=1, step=0.01, value=ds.thresholds.padj),
                            dbc.Input(id=C.LFC_INPUT, type="number", min=0, step=0.5, value=ds.thresholds.lfc),
                        ]
                    ),
                    C.THRESHOLD_FILTER_CONTAINER,
                ),
                _labelled(
                    "Direction",
                    dbc.RadioItems(id=C.DIRECTION_SELECT, options=DIRECTION_OPTIONS, value="both", inline=True),
                    C.DIRECTION_FILTER_CONTAINER,
                ),
                _labelled(
                    "Top hits",
                    dbc.Input(id=C.TOP_N_INPUT, type="number", min=1, step=1, value=ds.top_n),
                    C.TOP_N_FILTER_CONTAINER,
                ),
                _labelled(
                    "Flank / bin size (bp)",
                    dbc.InputGroup(
                        [
                            dbc.Input(id=C.FLANK_INPUT, type="number", min=0, step=500, value=2000),
                            dbc.Input(id=C.BIN_SIZE_INPUT, type="number", min=1, step=10, value=50),
                        ]
                    ),
                    C.REGION_FILTER_CONTAINER,
                ),
                dbc.Checklist(
                    id=C.OPTIONS_CHECKLIST,
                    options=[{"label": "Log scale counts", "value": "log_scale"}],
                    value=["log_scale"],
                    switch=True,
                ),
            ]
        ),
        className="mt-3",
    )


def build_layout(ctx: "AppConfig") -> dbc.Container:
    C = IDs.Control
    default_ds = ctx.dataset_by_name[ctx.default_dataset_name]
    views = ctx.registry.all_classes()

    navbar = dbc.Navbar(
        dbc.Container(
            [
                dbc.NavbarBrand(ctx.global_config.ui_title),
                dcc.Dropdown(
                    id=C.DATASET_SELECT,
                    options=[{"label": n, "value": n} for n in ctx.dataset_names],
                    value=ctx.default_dataset_name,
                    clearable=False,
                    style={"minWidth": "320px"},
                ),
            ],
            fluid=True,
        ),
        color="primary",
        dark=True,
    )

    view_panel = dbc.Card(
        dbc.CardBody(
            [
                dbc.Label("View"),
                dbc.RadioItems(
                    id=C.VIEW_SELECT,
                    options=[{"label": v.label, "value": v.id} for v in views],
                    value=views[0].id,
                ),
            ]
        )
    )

    return dbc.Container(
        fluid=True,
        children=[
            navbar,
            dcc.Store(id=IDs.Store.FILTER_STATE, storage_type="session"),
            dbc.Row(
                [
                    dbc.Col([view_panel, build_filter_panel(default_ds)], md=3, className="mt-3"),
                    dbc.Col(
                        dcc.Loading(dcc.Graph(id=C.MAIN_GRAPH, style={"height": "80vh"})),
                        md=9,
                        className="mt-3",
                    ),
                ],
                className="gx-3",
            ),
        ],
    )
