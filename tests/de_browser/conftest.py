import anndata as ad
import numpy as np
import pandas as pd
import pytest

from de_browser.annotation.annotate import annotate_results
from de_browser.annotation.annotation_db import AnnotationDB
from de_browser.core.dataset import Dataset


def _make_adata() -> ad.AnnData:
    """
    6 genes x 4 samples, DESeq2 column names.

    With padj <= 0.05 and |log2FC| >= 1:
    - g1, g4: up
    - g2, g6: down
    - g3: not significant (padj 0.6)
    - g5: not significant (padj missing)
    """
    var = pd.DataFrame(
        {
            "baseMean": [100.0, 50.0, 200.0, 10.0, 5.0, 300.0],
            "log2FoldChange": [2.0, -3.0, 0.5, 1.5, 4.0, -1.2],
            "pvalue": [1e-10, 1e-8, 0.3, 0.001, 0.02, 1e-5],
            "padj": [1e-9, 1e-7, 0.6, 0.01, np.nan, 1e-4],
        },
        index=pd.Index(["g1", "g2", "g3", "g4", "g5", "g6"]),
    )
    obs = pd.DataFrame(
        {
            "sample": ["s1", "s2", "s3", "s4"],
            "condition": ["pregnant", "pregnant", "lactate", "lactate"],
        },
        index=pd.Index(["s1", "s2", "s3", "s4"]),
    )
    X = np.arange(obs.shape[0] * var.shape[0], dtype=float).reshape(obs.shape[0], var.shape[0])
    return ad.AnnData(X=X, obs=obs, var=var)


@pytest.fixture
def de_dataset() -> Dataset:
    return Dataset(
        name="Luminal pregnant v lactate",
        group="TestGroup",
        adata=_make_adata(),
        obs_columns={"sample": "sample", "condition": "condition"},
    )


@pytest.fixture
def annotation_db() -> AnnotationDB:
    # g1 maps to two symbols, g4 is missing
    table = pd.DataFrame(
        {
            "GeneID": ["g1", "g1", "g2", "g3", "g5", "g6"],
            "Symbol": ["Csn2", "Csn2b", "Lalba", "Wap", "Krt5", "Actb"],
            "Description": ["casein beta", "casein beta b", "lactalbumin", "whey acidic protein", "keratin 5", "actin"],
        }
    )
    return AnnotationDB(table, name="test")


@pytest.fixture
def gene_ranges() -> pd.DataFrame:
    # g6 has no coordinates
    return pd.DataFrame(
        {
            "chrom": ["chr1", "chr1", "chr2", "chr10", "chrX"],
            "start": [100, 5000, 200, 1000, 50],
            "end": [1100, 6000, 800, 3000, 500],
            "strand": ["+", "-", "+", "-", "+"],
            "gene_id": ["g1", "g2", "g3", "g4", "g5"],
        }
    )


@pytest.fixture
def chromsizes() -> pd.Series:
    return pd.Series({"chr1": 10_000, "chr2": 5_000, "chr10": 8_000, "chrX": 3_000}, name="length")


@pytest.fixture
def annotated_dataset(de_dataset, annotation_db, gene_ranges, chromsizes) -> Dataset:
    annotate_results(de_dataset, annotation_db, gene_ranges, chromsizes=chromsizes)
    return de_dataset
