from __future__ import annotations

import logging
from pathlib import Path

import dash_bootstrap_components as dbc
from dash import Dash

from de_browser.config.loader import load_dataset_registry
from de_browser.services.dataset_service import DatasetManager
from de_browser.ui.callbacks import register_callbacks
from de_browser.ui.config import AppConfig
from de_browser.ui.layout import build_layout
from de_browser.views import build_view_registry

logger = logging.getLogger(__name__)


def create_dash_app(config_root: Path | str = Path("config")) -> Dash:
    config_root = Path(config_root)

    # 1) Load Config
    global_config, cfg_by_name = load_dataset_registry(config_root)
    if not cfg_by_name:
        raise RuntimeError("No dataset configs were loaded from config")

    # 2) Datasets load lazily on first access
    dataset_manager = DatasetManager(cfg_by_name, data_root=global_config.data_root)
    names = sorted(cfg_by_name)

    # 3) Choose Default Dataset
    default_name = next(
        (n for n in names if cfg_by_name[n].group == global_config.default_group),
        names[0],
    )

    ctx = AppConfig(
        config_root=config_root,
        global_config=global_config,
        dataset_names=names,
        dataset_by_name=dataset_manager,
        default_dataset_name=default_name,
        registry=build_view_registry(),
    )
    ctx.validate()

    app = Dash(
        __name__,
        external_stylesheets=[dbc.themes.FLATLY],
        suppress_callback_exceptions=True,
    )
    app.title = global_config.ui_title
    app.layout = build_layout(ctx)

    register_callbacks(app, ctx)

    logger.info("Dash app created", extra={"n_datasets": len(names), "default_dataset": default_name})
    return app
