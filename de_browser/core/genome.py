from __future__ import annotations

import re
from typing import Iterable, List, Tuple, Union

import pandas as pd

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> Tuple[Union[int, str], ...]:
    """
    Sort key placing chr2 before chr10 (and 2 before 10 for unprefixed names).
    """
    parts = _DIGITS.split(str(name))
    return tuple(int(p) if p.isdigit() else p.lower() for p in parts)


def sort_chromosomes(chroms: Iterable[str]) -> List[str]:
    return sorted({str(c) for c in chroms}, key=natural_sort_key)


def chromsizes_from_ranges(ranges: pd.DataFrame) -> pd.Series:
    """
    Approximate chromosome lengths as the furthest gene end seen per chromosome.

    Used when no chromsizes file is configured; good enough for laying out
    genome-wide plots, not for anything coordinate-exact.
    """
    if ranges is None or ranges.empty or "chrom" not in ranges.columns:
        return pd.Series(dtype="int64", name="length")

    located = ranges.dropna(subset=["chrom", "end"])
    sizes = located.groupby(located["chrom"].astype(str))["end"].max().astype("int64")
    order = sort_chromosomes(sizes.index)
    sizes = sizes.reindex(order)
    sizes.name = "length"
    return sizes


def chromosome_offsets(chromsizes: pd.Series) -> pd.Series:
    """
    Cumulative start offset of each chromosome when laid end to end.
    """
    lengths = chromsizes.astype("int64")
    offsets = lengths.cumsum() - lengths
    offsets.name = "offset"
    return offsets
