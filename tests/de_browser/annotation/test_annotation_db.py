import pandas as pd
import pytest

from de_browser.annotation.annotation_db import AnnotationDB, AnnotationError


def test_keytypes_and_columns(annotation_db):
    assert annotation_db.keytypes() == ["GeneID", "Symbol", "Description"]
    assert annotation_db.columns() == annotation_db.keytypes()
    assert len(annotation_db) == 6


def test_select_keeps_one_to_many_rows(annotation_db):
    df = annotation_db.select(["g1", "g4", "g2", "g1"], ["Symbol"], keytype="GeneID")

    # g1 twice (two symbols), g4 once with NaN, duplicate key looked up once
    assert list(df["GeneID"]) == ["g1", "g1", "g4", "g2"]
    assert list(df["Symbol"][:2]) == ["Csn2", "Csn2b"]
    assert pd.isna(df.loc[2, "Symbol"])


def test_select_invalid_keytype(annotation_db):
    with pytest.raises(AnnotationError, match="Invalid keytype"):
        annotation_db.select(["g1"], ["Symbol"], keytype="ENSEMBL")


def test_select_invalid_column(annotation_db):
    with pytest.raises(AnnotationError, match="Invalid columns"):
        annotation_db.select(["g1"], ["GENENAME"], keytype="GeneID")


def test_map_ids_first(annotation_db):
    mapped = annotation_db.map_ids(["g2", "g1", "g4"], "Symbol", keytype="GeneID")

    assert list(mapped.index) == ["g2", "g1", "g4"]
    assert mapped["g1"] == "Csn2"
    assert mapped["g2"] == "Lalba"
    assert pd.isna(mapped["g4"])


def test_map_ids_multi_vals(annotation_db):
    keys = ["g1", "g2", "g4"]

    as_list = annotation_db.map_ids(keys, "Symbol", keytype="GeneID", multi_vals="list")
    assert as_list["g1"] == ["Csn2", "Csn2b"]
    assert as_list["g2"] == ["Lalba"]

    as_na = annotation_db.map_ids(keys, "Symbol", keytype="GeneID", multi_vals="asNA")
    assert pd.isna(as_na["g1"])
    assert as_na["g2"] == "Lalba"

    filtered = annotation_db.map_ids(keys, "Symbol", keytype="GeneID", multi_vals="filter")
    assert list(filtered.index) == ["g2"]


def test_map_ids_reverse_lookup(annotation_db):
    mapped = annotation_db.map_ids(["Wap", "Nope"], "GeneID", keytype="Symbol")
    assert mapped["Wap"] == "g3"
    assert mapped.isna().sum() == 1


def test_map_ids_bad_arguments(annotation_db):
    with pytest.raises(ValueError):
        annotation_db.map_ids(["g1"], "Symbol", keytype="GeneID", multi_vals="all")
    with pytest.raises(AnnotationError):
        annotation_db.map_ids(["g1"], "GeneID", keytype="GeneID")


def test_from_file_reads_ids_as_strings(tmp_path):
    path = tmp_path / "mouse.tsv"
    path.write_text("GeneID\tSymbol\n12992\tCsn1s2b\n497097\tXkr4\n")

    db = AnnotationDB.from_file(path)

    assert db.name == "mouse"
    assert db.map_ids([12992], "Symbol", keytype="GeneID")["12992"] == "Csn1s2b"
    assert db.select(["497097"], ["Symbol"], "GeneID")["Symbol"].iloc[0] == "Xkr4"
