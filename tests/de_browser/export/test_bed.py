import numpy as np
import pandas as pd
import pytest

from de_browser.export.bed import BED6, BED9, DOWN_COLOUR, RGB, UP_COLOUR, build_bed_track, scaled_scores, track_line, write_bed


def test_scaled_scores_best_hit_is_1000():
    scores = scaled_scores(pd.Series([1e-9, 1e-7, 1e-2], index=["a", "b", "c"]))

    assert scores["a"] == 1000
    assert scores["b"] == 778
    assert scores["c"] == 222


def test_scaled_scores_zero_padj():
    scores = scaled_scores(pd.Series([0.0, 1e-300]))
    assert scores.iloc[0] == 1000
    assert 0 < scores.iloc[1] < 1000


def test_scaled_scores_all_one():
    assert (scaled_scores(pd.Series([1.0, 1.0])) == 0).all()


def test_bed_record_validation():
    with pytest.raises(ValueError):
        BED6("chr1", 20, 10, "g", 0, "+")
    with pytest.raises(ValueError):
        BED6("chr1", 10, 20, "g", 0, "x")
    with pytest.raises(ValueError):
        BED6("chr1", 10, 20, "g", 1001, "+")


def test_bed9_str():
    record = BED9("chr1", 10, 20, "Csn2", 500, "-", 10, 20, RGB(255, 0, 0))
    assert str(record) == "chr1\t10\t20\tCsn2\t500\t-\t10\t20\t255,0,0"


def test_build_bed_track_top_hits(annotated_dataset):
    records = build_bed_track(annotated_dataset)

    # g6 is a top hit but has no coordinates
    assert [r.name for r in records] == ["Csn2", "Lalba", "g4"]
    first, second, third = records
    assert (first.chrom, first.start, first.end, first.strand) == ("chr1", 100, 1100, "+")
    assert first.score == 1000
    assert first.item_rgb == UP_COLOUR
    assert second.item_rgb == DOWN_COLOUR
    assert (third.chrom, third.thick_start, third.thick_end) == ("chr10", 1000, 3000)


def test_build_bed_track_skips_low_fold_change(annotated_dataset):
    annotated_dataset.adata.var.loc["g3", "padj"] = 1e-20
    annotated_dataset.clear_caches()

    names = [r.name for r in build_bed_track(annotated_dataset)]

    assert "Wap" not in names
    assert names == ["Csn2", "Lalba", "g4"]


def test_build_bed_track_n_top(annotated_dataset):
    assert len(build_bed_track(annotated_dataset, n_top=1)) == 1


def test_build_bed_track_requires_coordinates(de_dataset):
    with pytest.raises(ValueError, match="no gene coordinates"):
        build_bed_track(de_dataset)


def test_write_bed(tmp_path, annotated_dataset):
    path = write_bed(build_bed_track(annotated_dataset), tmp_path / "out" / "topHits.bed", description="Top hits")

    lines = path.read_text().splitlines()
    assert lines[0] == track_line("topHits", "Top hits")
    assert 'itemRgb="On"' in lines[0]
    assert len(lines) == 4
    fields = lines[1].split("\t")
    assert len(fields) == 9
    assert fields[3] == "Csn2"
    assert np.all([int(f) >= 0 for f in fields[1:3]])
