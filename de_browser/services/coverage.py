from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import numpy as np
import pandas as pd
import pysam

logger = logging.getLogger(__name__)

COVERAGE_COLUMNS = ["sample", "position", "depth"]


class CoverageError(RuntimeError):
    """
    Raised when read coverage cannot be computed (missing or unindexed BAM).
    """
    pass


@dataclass(frozen=True)
class Region:
    chrom: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"Invalid region {self.chrom}:{self.start}-{self.end}")

    @property
    def width(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start + 1}-{self.end}"


def gene_region(chrom: str, start: int, end: int, flank: int = 0) -> Region:
    """Region spanning a gene plus `flank` bases either side (clipped at 0)."""
    return Region(str(chrom), max(0, int(start) - flank), int(end) + flank)


def _open_indexed(path: Path) -> pysam.AlignmentFile:
    if not path.is_file():
        raise CoverageError(f"BAM file not found at {path}")
    bam = pysam.AlignmentFile(str(path), "rb")
    if not bam.has_index():
        bam.close()
        raise CoverageError(f"BAM file {path} has no index; run samtools index first")
    return bam


def bam_depth(path: Path, region: Region) -> np.ndarray:
    """
    Per-base read depth across the region for one BAM file.

    Depth is the number of aligned bases at each position; spliced-out
    introns (N) and deletions do not count. Unknown contigs give zero depth.
    """
    with _open_indexed(Path(path)) as bam:
        if region.chrom not in bam.references:
            logger.warning(
                "Contig not in BAM header; reporting zero coverage",
                extra={"bam": str(path), "chrom": region.chrom},
            )
            return np.zeros(region.width, dtype="int64")

        contig_length = bam.get_reference_length(region.chrom)
        end = min(region.end, contig_length)
        depth = np.zeros(region.width, dtype="int64")
        if end > region.start:
            acgt = bam.count_coverage(
                region.chrom,
                region.start,
                end,
                quality_threshold=0,
                read_callback="all",
            )
            depth[: end - region.start] = np.asarray(acgt, dtype="int64").sum(axis=0)
        return depth


def bin_depth(depth: np.ndarray, start: int, bin_size: int) -> pd.DataFrame:
    """
    Mean depth per bin; the last bin may be narrower.
    """
    if bin_size < 1:
        raise ValueError("bin_size must be >= 1")
    edges = np.arange(0, len(depth), bin_size)
    if len(depth) == 0:
        return pd.DataFrame({"position": [], "depth": []})
    sums = np.add.reduceat(depth.astype(float), edges)
    widths = np.diff(np.append(edges, len(depth)))
    return pd.DataFrame({"position": start + edges, "depth": sums / widths})


def region_coverage(
    bam_paths: Mapping[str, Path],
    chrom: str,
    start: int,
    end: int,
    bin_size: int = 50,
) -> pd.DataFrame:
    """
    Binned read depth across chrom:[start, end) for each sample's BAM.

    :param bam_paths: sample name -> indexed BAM path
    :return: long table with columns sample, position (bin start, 0-based), depth
    :raises CoverageError: if a BAM is missing or has no index
    """
    region = Region(str(chrom), int(start), int(end))
    frames = []
    for sample, path in bam_paths.items():
        depth = bam_depth(Path(path), region)
        binned = bin_depth(depth, region.start, bin_size)
        binned.insert(0, "sample", sample)
        frames.append(binned)

    logger.info(
        "Computed region coverage",
        extra={"region": str(region), "n_samples": len(frames), "bin_size": bin_size},
    )

    if not frames:
        return pd.DataFrame(columns=COVERAGE_COLUMNS)
    return pd.concat(frames, ignore_index=True)[COVERAGE_COLUMNS]
