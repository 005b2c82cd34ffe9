from pathlib import Path

import anndata as ad
import numpy as np
import pandas as pd
import pytest

from de_browser.config.model import DatasetConfig
from de_browser.core.dataset_loader import (
    DatasetConfigError,
    adata_from_tables,
    from_config,
    read_table,
    resolve_data_path,
)


def _write_tables(tmp_path: Path) -> None:
    results = pd.DataFrame(
        {
            "baseMean": [10.0, 20.0, 30.0],
            "log2FoldChange": [1.5, -2.0, 0.1],
            "lfcSE": [0.2, 0.3, 0.4],
            "pvalue": [0.001, 0.0001, 0.8],
            "padj": [0.01, 0.001, 0.9],
        },
        index=pd.Index(["g1", "g2", "g3"], name="GeneID"),
    )
    results.to_csv(tmp_path / "results.csv")

    counts = pd.DataFrame(
        {"s1": [1.0, 2.0], "s2": [3.0, 4.0]},
        index=pd.Index(["g1", "g2"], name="GeneID"),
    )
    counts.to_csv(tmp_path / "counts.tsv", sep="\t")

    pd.DataFrame({"sample": ["s1", "s2"], "condition": ["a", "b"]}).to_csv(tmp_path / "samples.csv", index=False)


def _cfg(tmp_path: Path, **raw) -> DatasetConfig:
    return DatasetConfig.from_raw(
        {"name": "TableDataset", "group": "G", **raw},
        source_path=tmp_path / "dataset.json",
        index=0,
    )


def test_from_config_reads_results_counts_and_samples(tmp_path):
    _write_tables(tmp_path)
    cfg = _cfg(
        tmp_path,
        results="results.csv",
        counts="counts.tsv",
        samples="samples.csv",
        var_columns={"gene_id": "GeneID", "lfc_se": "lfcSE"},
        obs_columns={"sample": "sample", "condition": "condition"},
    )

    ds = from_config(cfg)

    assert ds.name == "TableDataset"
    assert ds.n_genes == 3
    assert ds.n_samples == 2
    assert list(ds.results.index) == ["g1", "g2", "g3"]
    assert ds.results.loc["g1", "lfc_se"] == pytest.approx(0.2)
    assert list(ds.conditions) == ["a", "b"]

    counts = ds.counts_for(["g2"])
    assert list(counts["count"]) == [2.0, 4.0]
    # g3 is in the results but has no counts
    assert ds.counts_for(["g3"])["count"].isna().all()


def test_from_config_reads_h5ad(tmp_path):
    var = pd.DataFrame(
        {"baseMean": [1.0, 2.0], "log2FoldChange": [0.5, -0.5], "pvalue": [0.1, 0.2], "padj": [0.2, 0.3]},
        index=["g1", "g2"],
    )
    obs = pd.DataFrame({"condition": ["x", "y"]}, index=["s1", "s2"])
    ad.AnnData(X=np.ones((2, 2)), obs=obs, var=var).write_h5ad(tmp_path / "tiny.h5ad")

    ds = from_config(_cfg(tmp_path, file="tiny.h5ad", obs_columns={"condition": "condition"}))

    assert ds.file_path == tmp_path / "tiny.h5ad"
    assert list(ds.results["log2FC"]) == [0.5, -0.5]


def test_from_config_requires_file_or_results(tmp_path):
    with pytest.raises(DatasetConfigError):
        from_config(_cfg(tmp_path))


def test_from_config_missing_results_file(tmp_path):
    with pytest.raises(DatasetConfigError, match="Results table not found"):
        from_config(_cfg(tmp_path, results="missing.csv"))


def test_from_config_unknown_column_mapping(tmp_path):
    _write_tables(tmp_path)
    cfg = _cfg(tmp_path, results="results.csv", var_columns={"padj": "FDR"})

    with pytest.raises(DatasetConfigError, match="var_columns.padj='FDR'"):
        from_config(cfg)


def test_adata_from_tables_rejects_unknown_samples():
    results = pd.DataFrame({"baseMean": [1.0]}, index=["g1"])
    counts = pd.DataFrame({"s1": [1.0], "s9": [2.0]}, index=["g1"])
    samples = pd.DataFrame({"condition": ["a"]}, index=["s1"])

    with pytest.raises(DatasetConfigError, match="s9"):
        adata_from_tables(results, counts, samples)


def test_read_table_picks_separator(tmp_path):
    path = tmp_path / "table.tsv"
    path.write_text("a\tb\n1\t2\n")
    df = read_table(path)
    assert list(df.columns) == ["a", "b"]


def test_resolve_data_path_strips_redundant_data_prefix(tmp_path, monkeypatch):
    monkeypatch.delenv("DE_BROWSER_DATA_ROOT", raising=False)
    (tmp_path / "results.csv").write_text("x\n")
    cfg = _cfg(tmp_path)

    resolved = resolve_data_path(Path("data/results.csv"), cfg, data_root=tmp_path)
    assert resolved == tmp_path / "results.csv"


def test_resolve_data_path_prefers_env_root(tmp_path, monkeypatch):
    env_root = tmp_path / "env"
    env_root.mkdir()
    (env_root / "results.csv").write_text("x\n")
    monkeypatch.setenv("DE_BROWSER_DATA_ROOT", str(env_root))

    resolved = resolve_data_path(Path("results.csv"), _cfg(tmp_path), data_root=tmp_path)
    assert resolved == env_root / "results.csv"


def test_from_config_makes_duplicate_gene_ids_unique(tmp_path, caplog):
    (tmp_path / "results.csv").write_text(
        "GeneID,baseMean,log2FoldChange,pvalue,padj\n"
        "g1,10,2.0,0.001,0.01\n"
        "g2,20,-1.5,0.002,0.02\n"
        "g1,30,0.5,0.5,0.7\n"
    )
    cfg = _cfg(tmp_path, results="results.csv", var_columns={"gene_id": "GeneID"})

    with caplog.at_level("WARNING", logger="de_browser.core.dataset_loader"):
        ds = from_config(cfg)

    assert list(ds.results.index) == ["g1", "g2", "g1-1"]
    assert ds.results.index.is_unique
    assert ds.results.loc["g1-1", "base_mean"] == pytest.approx(30.0)
    assert any("Gene ids are not unique" in r.getMessage() for r in caplog.records)


def test_from_config_ids_in_index_without_gene_id(tmp_path):
    # R write.table(sep="\t") leaves the row-name column out of the header
    (tmp_path / "results.tsv").write_text(
        "baseMean\tlog2FoldChange\tpvalue\tpadj\n"
        "g1\t10\t2.0\t0.001\t0.01\n"
        "g2\t20\t-1.5\t0.002\t0.02\n"
    )

    ds = from_config(_cfg(tmp_path, results="results.tsv"))

    assert list(ds.results.index) == ["g1", "g2"]
    assert list(ds.results["base_mean"]) == [10.0, 20.0]


def test_from_config_ids_in_unnamed_first_column(tmp_path):
    (tmp_path / "results.csv").write_text(
        ",baseMean,log2FoldChange,pvalue,padj\n"
        "g1,10,2.0,0.001,0.01\n"
        "g2,20,-1.5,0.002,0.02\n"
    )

    ds = from_config(_cfg(tmp_path, results="results.csv"))

    assert list(ds.results.index) == ["g1", "g2"]
