"""
Batch walkthrough of a DE result: annotate, export, plot.

    python -m de_browser.report --config config --dataset "Luminal pregnant v lactate"

Writes into the output directory:
    <dataset>_annotated.csv     annotated results, most significant first
    topHits.bed                 BED track of the top hits (needs coordinates)
    volcano/XY-Plot.html        interactive volcano plot
    figures/<view>.html         every other registered view (unless --no-figures)
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from de_browser.config.loader import load_dataset_registry
from de_browser.core.dataset import Dataset
from de_browser.core.filter_state import FilterState
from de_browser.core.view_registry import ViewRegistry
from de_browser.export.bed import build_bed_track, write_bed
from de_browser.export.tables import write_annotated_csv, write_figure_html, write_volcano_html
from de_browser.logging_config import configure_logging
from de_browser.services.dataset_service import DatasetManager
from de_browser.views import build_view_registry

logger = logging.getLogger(__name__)

BED_NAME = "topHits.bed"


@dataclass
class ReportResult:
    annotated_csv: Path
    volcano_html: Path
    bed: Optional[Path] = None
    figures: Dict[str, Path] = field(default_factory=dict)

    def paths(self) -> List[Path]:
        out = [self.annotated_csv, self.volcano_html]
        if self.bed is not None:
            out.append(self.bed)
        out.extend(self.figures.values())
        return out


def _slug(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_") or "dataset"


def run_report(
    dataset: Dataset,
    out_dir: Path,
    registry: Optional[ViewRegistry] = None,
    n_top: Optional[int] = None,
    render_figures: bool = True,
) -> ReportResult:
    """
    Run the full walkthrough for one dataset and write its exports to out_dir.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    registry = registry or build_view_registry()

    logger.info("Report started", extra={"dataset": dataset.name, "out_dir": str(out_dir)})

    annotated_csv = write_annotated_csv(dataset, out_dir / f"{_slug(dataset.name)}_annotated.csv")

    bed_path = None
    if dataset.has_coordinates:
        records = build_bed_track(dataset, n_top=n_top)
        bed_path = write_bed(
            records,
            out_dir / BED_NAME,
            track_name="topHits",
            description=f"Top hits: {dataset.name}",
        )
    else:
        logger.warning("No gene coordinates; skipping BED export", extra={"dataset": dataset.name})

    def render(view_id: str):
        view = registry.create(view_id, dataset)
        state = FilterState(dataset_name=dataset.name, view_id=view_id, top_n=n_top)
        return view.render_figure(view.compute_data(state), state)

    volcano_html = write_volcano_html(render("volcano"), out_dir / "volcano")

    figures: Dict[str, Path] = {}
    if render_figures:
        for view_id in registry.ids():
            if view_id == "volcano":
                continue
            figures[view_id] = write_figure_html(render(view_id), out_dir / "figures" / f"{view_id}.html")

    logger.info("Report finished", extra={"dataset": dataset.name, "n_figures": len(figures)})
    return ReportResult(annotated_csv=annotated_csv, volcano_html=volcano_html, bed=bed_path, figures=figures)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="de-browser-report",
        description="Annotate a DE result table and export CSV, BED and interactive plots.",
    )
    parser.add_argument("--config", type=Path, default=Path("config"), help="Config directory (global.json + datasets/)")
    parser.add_argument("--dataset", help="Dataset name; defaults to the first dataset in the default group")
    parser.add_argument("--out", type=Path, help="Output directory; defaults to output_dir in global.json, else ./results")
    parser.add_argument("--top-n", type=int, help="Number of top hits to label and export")
    parser.add_argument("--no-figures", action="store_true", help="Only write the CSV, BED and volcano outputs")
    parser.add_argument("--log-format", choices=["json", "plain"], help="Override DE_BROWSER_LOG_FORMAT")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(force_format=args.log_format)

    global_config, cfg_by_name = load_dataset_registry(args.config)
    if not cfg_by_name:
        logger.error("No dataset configs were loaded", extra={"config_root": str(args.config)})
        return 1

    name = args.dataset
    if name is None:
        in_group = [c.name for c in cfg_by_name.values() if c.group == global_config.default_group]
        name = in_group[0] if in_group else next(iter(cfg_by_name))
    if name not in cfg_by_name:
        logger.error("Unknown dataset", extra={"dataset": name, "available": sorted(cfg_by_name)})
        return 1

    datasets = DatasetManager(cfg_by_name, data_root=global_config.data_root)
    out_dir = args.out or global_config.output_dir or Path("results")

    result = run_report(datasets[name], out_dir, n_top=args.top_n, render_figures=not args.no_figures)
    for path in result.paths():
        print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
