import pytest

from de_browser.config.model import DatasetConfig
from de_browser.core.dataset_loader import DatasetConfigError
from de_browser.services.dataset_service import DatasetManager


def _write_results(tmp_path):
    (tmp_path / "results.csv").write_text(
        "GeneID,baseMean,log2FoldChange,pvalue,padj\n"
        "g1,10,2.0,0.001,0.01\n"
        "g2,20,-1.5,0.002,0.02\n"
    )
    (tmp_path / "annotation.tsv").write_text("GeneID\tSymbol\tDescription\ng1\tCsn2\tcasein\n")


def _cfg(tmp_path, name, **raw):
    return DatasetConfig.from_raw({"name": name, **raw}, source_path=tmp_path / f"{name}.json", index=0)


def test_dataset_manager_loads_lazily(tmp_path):
    _write_results(tmp_path)
    cfg = _cfg(tmp_path, "A", results="results.csv", annotation={"table": "annotation.tsv"})
    manager = DatasetManager({"A": cfg})

    assert list(manager) == ["A"]
    assert len(manager) == 1
    assert not manager.is_loaded("A")

    ds = manager["A"]

    assert manager.is_loaded("A")
    assert manager["A"] is ds
    assert ds.results.loc["g1", "label"] == "Csn2"
    assert manager.config("A") is cfg


def test_dataset_manager_unknown_name(tmp_path):
    manager = DatasetManager({})
    with pytest.raises(KeyError):
        manager["nope"]
    assert manager.get("nope") is None


def test_dataset_manager_propagates_config_errors(tmp_path):
    manager = DatasetManager({"B": _cfg(tmp_path, "B", results="missing.csv")})
    with pytest.raises(DatasetConfigError):
        manager["B"]
    assert not manager.is_loaded("B")
