from __future__ import annotations

import logging
from pathlib import Path

import plotly.graph_objs as go

from de_browser.annotation.annotate import annotated_table
from de_browser.core.dataset import Dataset

logger = logging.getLogger(__name__)

VOLCANO_HTML_NAME = "XY-Plot.html"


def write_annotated_csv(dataset: Dataset, path: Path) -> Path:
    """
    Write the annotated results table, most significant genes first.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = annotated_table(dataset)
    table.to_csv(path, index=False)
    logger.info("Wrote annotated results", extra={"path": str(path), "n_genes": len(table)})
    return path


def write_figure_html(figure: go.Figure, path: Path) -> Path:
    """
    Write a self-contained interactive HTML page for a figure.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    figure.write_html(str(path), include_plotlyjs=True, full_html=True)
    logger.info("Wrote interactive figure", extra={"path": str(path)})
    return path


def write_volcano_html(figure: go.Figure, out_dir: Path) -> Path:
    """
    Write the interactive volcano bundle as <out_dir>/XY-Plot.html.
    """
    return write_figure_html(figure, Path(out_dir) / VOLCANO_HTML_NAME)
