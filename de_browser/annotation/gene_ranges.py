"""
Gene coordinates as bioframe-style interval tables.

All tables returned here use the bedframe convention: ``chrom``, ``start``,
``end`` (0-based, half-open) plus ``strand`` and ``gene_id``. Overlap and
sorting are delegated to bioframe.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import bioframe as bf
import pandas as pd

from de_browser.core.genome import chromsizes_from_ranges, natural_sort_key

logger = logging.getLogger(__name__)

GTF_COLUMNS = ["chrom", "source", "feature", "start", "end", "score", "strand", "frame", "attributes"]
RANGE_COLUMNS = ["chrom", "start", "end", "strand", "gene_id"]


def _gtf_attribute(attributes: pd.Series, key: str) -> pd.Series:
    # key "value"; key2 "value2";
    return attributes.str.extract(rf'(?:^|;)\s*{key}\s+"([^"]*)"', expand=False)


def load_gene_ranges_from_gtf(
    path: Path,
    id_attribute: str = "gene_id",
    name_attribute: Optional[str] = "gene_name",
) -> pd.DataFrame:
    """
    Read `gene` records from a GTF (optionally gzipped) into a bedframe.

    GTF coordinates are 1-based inclusive; starts are shifted to 0-based.
    Ensembl-style versioned ids (ENSMUSG00000000001.4) keep their version.
    """
    df = bf.read_table(str(path), names=GTF_COLUMNS, sep="\t", comment="#")
    genes = df[df["feature"] == "gene"].copy()

    genes["gene_id"] = _gtf_attribute(genes["attributes"], id_attribute)
    if name_attribute:
        genes["gene_name"] = _gtf_attribute(genes["attributes"], name_attribute)

    missing = genes["gene_id"].isna().sum()
    if missing:
        logger.warning(
            "GTF gene records without a %s attribute were dropped", id_attribute,
            extra={"path": str(path), "n_dropped": int(missing)},
        )
        genes = genes.dropna(subset=["gene_id"])

    genes["start"] = genes["start"].astype("int64") - 1
    genes["end"] = genes["end"].astype("int64")
    genes["chrom"] = genes["chrom"].astype(str)

    keep = RANGE_COLUMNS + (["gene_name"] if name_attribute else [])
    genes = genes[keep].reset_index(drop=True)

    logger.info("Loaded gene ranges from GTF", extra={"path": str(path), "n_genes": len(genes)})
    return bf.sort_bedframe(genes)


def load_gene_ranges_from_table(path: Path) -> pd.DataFrame:
    """
    Read gene ranges from a BED6-like table.

    Files with a header must name chrom/start/end/gene_id (strand optional);
    headerless files are read as BED6 (chrom, start, end, name, score, strand).
    """
    path = Path(path)
    with path.open() as f:
        first = f.readline().rstrip("\n").split("\t")

    if "chrom" in first and "start" in first:
        df = pd.read_csv(path, sep="\t", dtype={"chrom": str, "gene_id": str})
    else:
        df = bf.read_table(str(path), schema="bed6")
        df = df.rename(columns={"name": "gene_id"})

    if "gene_id" not in df.columns:
        raise ValueError(f"Gene range table {path} has no gene_id/name column")
    if "strand" not in df.columns:
        df["strand"] = "."

    df["chrom"] = df["chrom"].astype(str)
    df["gene_id"] = df["gene_id"].astype(str)
    extra = [c for c in df.columns if c not in RANGE_COLUMNS]
    return bf.sort_bedframe(df[RANGE_COLUMNS + extra].reset_index(drop=True))


def load_chromsizes(path: Optional[Path] = None, ranges: Optional[pd.DataFrame] = None) -> pd.Series:
    """
    Chromosome lengths indexed by name, natural-sorted.

    Reads a two-column chromsizes file when given, otherwise approximates
    lengths from the furthest gene end per chromosome.
    """
    if path is not None:
        sizes = bf.read_chromsizes(str(path), filter_chroms=False)
        order = sorted(sizes.index.astype(str), key=natural_sort_key)
        sizes.index = sizes.index.astype(str)
        sizes = sizes.reindex(order).astype("int64")
        sizes.name = "length"
        return sizes

    if ranges is not None:
        return chromsizes_from_ranges(ranges)

    return pd.Series(dtype="int64", name="length")


def ranges_for_genes(ranges: pd.DataFrame, gene_ids: Sequence[str]) -> pd.DataFrame:
    """
    Coordinates for the requested genes, in request order.

    Ids without coordinates are dropped with a warning; an id appearing on
    several records (PAR genes) keeps its first record.
    """
    by_id = ranges.drop_duplicates(subset="gene_id").set_index("gene_id", drop=False)
    wanted: List[str] = [str(g) for g in gene_ids]
    found = [g for g in wanted if g in by_id.index]

    if len(found) < len(wanted):
        logger.warning(
            "Genes without coordinates",
            extra={"n_requested": len(wanted), "n_missing": len(wanted) - len(found)},
        )

    return by_id.loc[found].reset_index(drop=True)


def genes_in_region(ranges: pd.DataFrame, chrom: str, start: int, end: int) -> pd.DataFrame:
    """
    Genes overlapping [start, end) on chrom.
    """
    if ranges is None or ranges.empty:
        return pd.DataFrame(columns=RANGE_COLUMNS)
    region = pd.DataFrame({"chrom": [str(chrom)], "start": [int(start)], "end": [int(end)]})
    hits = bf.overlap(ranges, region, how="inner", suffixes=("", "_region"))
    hits = hits[[c for c in ranges.columns]]
    return hits.drop_duplicates().reset_index(drop=True)
