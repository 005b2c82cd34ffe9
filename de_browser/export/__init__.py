"""
File exports: annotated results table, BED track, interactive HTML figures.
"""

from .bed import BED6, BED9, RGB, build_bed_track, write_bed
from .tables import write_annotated_csv, write_figure_html, write_volcano_html

__all__ = [
    "BED6",
    "BED9",
    "RGB",
    "build_bed_track",
    "write_bed",
    "write_annotated_csv",
    "write_figure_html",
    "write_volcano_html",
]
