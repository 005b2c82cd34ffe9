"""
BED track export for genome browsers.

Columns written (BED9):

1. ``chrom``: Sequence.
2. ``start``: 0-based start.
3. ``end``: 0-based exclusive end.
4. ``name``: Gene symbol, or the gene id when there is no symbol.
5. ``score``: -log10(padj) scaled to an integer in 0..1000 (best hit = 1000).
6. ``strand``: Any of ``[+, -, .]``.
7. ``thickStart``: Same as start, so the whole gene is drawn thick.
8. ``thickEnd``: Same as end.
9. ``itemRgb``: Red for up-regulated genes, blue for down-regulated ones.

A ``track`` line with ``itemRgb="On"`` precedes the records so browsers use
the colours.
"""

from __future__ import annotations

import logging
from dataclasses import astuple, dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from de_browser.core.dataset import Dataset

logger = logging.getLogger(__name__)

MAX_SCORE = 1000
VALID_STRANDS = ("+", "-", ".")


@dataclass(frozen=True)
class RGB:
    r: int = 0
    g: int = 0
    b: int = 0

    def __str__(self) -> str:
        return ",".join(str(color) for color in astuple(self))


UP_COLOUR = RGB(255, 0, 0)
DOWN_COLOUR = RGB(0, 0, 255)


@dataclass
class BED6:
    """Interval with name, score and strand."""

    chrom: str
    start: int
    end: int
    name: str
    score: int
    strand: str

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"BED interval {self.name} has start {self.start} > end {self.end}")
        if self.strand not in VALID_STRANDS:
            raise ValueError(f"BED strand must be one of {VALID_STRANDS}, got '{self.strand}'")
        if not 0 <= self.score <= MAX_SCORE:
            raise ValueError(f"BED score must be in 0..{MAX_SCORE}, got {self.score}")

    def __str__(self) -> str:
        return "\t".join(map(str, [self.chrom, self.start, self.end, self.name, self.score, self.strand]))


@dataclass
class BED9(BED6):
    """BED6 plus thick region and colour."""

    thick_start: int
    thick_end: int
    item_rgb: RGB

    def __str__(self) -> str:
        return "\t".join(
            str(x)
            for x in [
                self.chrom,
                self.start,
                self.end,
                self.name,
                self.score,
                self.strand,
                self.thick_start,
                self.thick_end,
                self.item_rgb,
            ]
        )


def scaled_scores(padj: pd.Series) -> pd.Series:
    """
    -log10(padj) scaled so the most significant gene scores 1000.

    padj of exactly 0 is treated as the smallest positive float.
    """
    p = padj.astype(float).clip(lower=np.finfo(float).tiny)
    neg_log = -np.log10(p)
    top = neg_log.max()
    if not np.isfinite(top) or top <= 0:
        return pd.Series(0, index=padj.index, dtype="int64")
    return (neg_log / top * MAX_SCORE).round().clip(0, MAX_SCORE).astype("int64")


def build_bed_track(
    dataset: Dataset,
    n_top: Optional[int] = None,
    padj: Optional[float] = None,
    lfc: Optional[float] = None,
) -> List[BED9]:
    """
    BED records for the dataset's top hits that have coordinates.

    Hits are taken from Dataset.top_hits in significance order; hits without
    coordinates are skipped with a warning.
    """
    if not dataset.has_coordinates:
        raise ValueError(
            f"Dataset '{dataset.name}' has no gene coordinates; annotate it with gene ranges first"
        )

    hits = dataset.top_hits(n=n_top, padj=padj, lfc=lfc)
    located = hits.dropna(subset=["chrom", "start", "end"])
    if len(located) < len(hits):
        logger.warning(
            "Top hits without coordinates left out of the BED track",
            extra={"dataset": dataset.name, "n_skipped": len(hits) - len(located)},
        )

    scores = scaled_scores(located["adj_pvalue"])
    records: List[BED9] = []
    for gene_id, row in located.iterrows():
        start = int(row["start"])
        end = int(row["end"])
        strand = row["strand"] if "strand" in row and row["strand"] in VALID_STRANDS else "."
        records.append(
            BED9(
                chrom=str(row["chrom"]),
                start=start,
                end=end,
                name=str(row["label"]),
                score=int(scores[gene_id]),
                strand=strand,
                thick_start=start,
                thick_end=end,
                item_rgb=UP_COLOUR if row["log2FC"] > 0 else DOWN_COLOUR,
            )
        )
    return records


def track_line(name: str, description: Optional[str] = None) -> str:
    description = description or name
    return f'track name="{name}" description="{description}" itemRgb="On"'


def write_bed(
    records: Sequence[BED6],
    path: Path,
    track_name: str = "topHits",
    description: Optional[str] = None,
) -> Path:
    """
    Write records to a BED file headed by a track line.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        f.write(track_line(track_name, description) + "\n")
        for record in records:
            f.write(str(record) + "\n")

    logger.info("Wrote BED track", extra={"path": str(path), "n_records": len(records)})
    return path
