import numpy as np
import pandas as pd
import pytest

from de_browser.core.dataset import DOWNREGULATED, NOT_SIGNIFICANT, UPREGULATED


def test_results_uses_canonical_column_names(de_dataset):
    res = de_dataset.results

    for col in ["gene", "label", "base_mean", "log2FC", "pvalue", "adj_pvalue"]:
        assert col in res.columns
    assert list(res.index) == ["g1", "g2", "g3", "g4", "g5", "g6"]
    # No symbols yet, so genes are labelled by id
    assert list(res["label"]) == list(res["gene"])
    assert not de_dataset.is_annotated
    assert not de_dataset.has_coordinates


def test_results_keep_stored_annotation_columns(de_dataset):
    # e.g. an h5ad written after annotation, loaded without a symbol mapping
    de_dataset.adata.var["symbol"] = ["Csn2", "Lalba", "Wap", np.nan, "Krt5", "Actb"]
    de_dataset.adata.var["gene_name"] = ["casein beta", "lactalbumin", "whey acidic protein", np.nan, "keratin 5", "actin"]
    de_dataset.clear_caches()

    res = de_dataset.results

    assert de_dataset.is_annotated
    assert res.loc["g2", "label"] == "Lalba"
    assert res.loc["g4", "label"] == "g4"
    assert res.loc["g6", "gene_name"] == "actin"


def test_significance_labels_default_thresholds(de_dataset):
    labels = de_dataset.significance_labels()

    assert labels["g1"] == UPREGULATED
    assert labels["g4"] == UPREGULATED
    assert labels["g2"] == DOWNREGULATED
    assert labels["g6"] == DOWNREGULATED
    assert labels["g3"] == NOT_SIGNIFICANT
    # missing padj is never significant
    assert labels["g5"] == NOT_SIGNIFICANT


def test_significance_labels_custom_thresholds(de_dataset):
    labels = de_dataset.significance_labels(padj=1e-6, lfc=2.5)

    assert labels["g2"] == DOWNREGULATED
    assert labels["g1"] == NOT_SIGNIFICANT  # |log2FC| 2 < 2.5
    assert labels["g6"] == NOT_SIGNIFICANT  # padj 1e-4 > 1e-6


def test_filter_results_orders_by_adjusted_pvalue(de_dataset):
    res = de_dataset.filter_results()

    # no cut-off keeps every gene with an adjusted p-value
    assert list(res.index) == ["g1", "g2", "g6", "g4", "g3"]


def test_filter_results_direction(de_dataset):
    up = de_dataset.filter_results(padj=0.05, lfc=1.0, direction="up")
    down = de_dataset.filter_results(padj=0.05, lfc=1.0, direction="down")

    assert list(up.index) == ["g1", "g4"]
    assert list(down.index) == ["g2", "g6"]


def test_filter_results_rejects_unknown_direction(de_dataset):
    with pytest.raises(ValueError):
        de_dataset.filter_results(direction="sideways")


def test_filter_results_is_cached(de_dataset):
    first = de_dataset.filter_results(padj=0.05)
    second = de_dataset.filter_results(padj=0.05)
    assert first is second

    de_dataset.clear_caches()
    third = de_dataset.filter_results(padj=0.05)
    assert third is not first
    pd.testing.assert_frame_equal(first, third)


def test_filter_results_chromosomes_without_coordinates_is_empty(de_dataset):
    assert de_dataset.filter_results(chromosomes=["chr1"]).empty


def test_top_hits(de_dataset):
    assert list(de_dataset.top_hits().index) == ["g1", "g2", "g6", "g4"]
    assert list(de_dataset.top_hits(n=2).index) == ["g1", "g2"]


def test_top_hits_skip_low_fold_change(de_dataset):
    # strongest adjusted p-value, but |log2FC| 0.5 is below the threshold
    de_dataset.adata.var.loc["g3", "padj"] = 1e-20
    de_dataset.clear_caches()

    hits = de_dataset.top_hits(n=3)

    assert list(hits.index) == ["g1", "g2", "g6"]
    labels = de_dataset.significance_labels()
    assert NOT_SIGNIFICANT not in set(labels[hits.index])
    # an explicit cut-off still wins
    assert de_dataset.top_hits(n=1, lfc=0.0).index[0] == "g3"


def test_resolve_genes_by_id_and_symbol(annotated_dataset):
    resolved = annotated_dataset.resolve_genes(["csn2", "g3", "nope", "Csn2", "LALBA"])
    assert resolved == ["g1", "g3", "g2"]


def test_counts_for_long_form(de_dataset):
    df = de_dataset.counts_for(["g2", "g1"])

    assert list(df.columns) == ["sample", "condition", "gene", "label", "count"]
    assert len(df) == 2 * de_dataset.n_samples
    # genes keep request order
    assert list(dict.fromkeys(df["gene"])) == ["g2", "g1"]

    s3_g2 = df[(df["sample"] == "s3") & (df["gene"] == "g2")]
    # X = arange(24).reshape(4, 6): row 2 (s3), column 1 (g2)
    assert s3_g2["count"].iloc[0] == 13.0
    assert s3_g2["condition"].iloc[0] == "lactate"

    assert de_dataset.counts_for(["g2", "g1"]) is df


def test_counts_for_unknown_gene_is_empty(de_dataset):
    df = de_dataset.counts_for(["not-a-gene"])
    assert df.empty
    assert "count" in df.columns


def test_samples_and_conditions(de_dataset):
    assert list(de_dataset.samples) == ["s1", "s2", "s3", "s4"]
    assert set(de_dataset.conditions) == {"pregnant", "lactate"}
    assert de_dataset.n_samples == 4
    assert de_dataset.n_genes == 6


def test_bam_paths_from_bam_dir(de_dataset, tmp_path):
    de_dataset.bam_dir = tmp_path
    paths = de_dataset.bam_paths()
    assert paths["s1"] == tmp_path / "s1.bam"
    assert len(paths) == 4


def test_bam_paths_empty_without_config(de_dataset):
    assert de_dataset.bam_paths() == {}


def test_chromsizes_falls_back_to_gene_ranges(annotated_dataset, gene_ranges):
    annotated_dataset.set_chromsizes(None)
    sizes = annotated_dataset.chromsizes

    assert list(sizes.index) == ["chr1", "chr2", "chr10", "chrX"]
    assert sizes["chr1"] == 6000


def test_chromosome_options_natural_order(annotated_dataset):
    assert annotated_dataset.chromosome_options() == ["chr1", "chr2", "chr10", "chrX"]


def test_counts_nan_for_missing_counts(de_dataset):
    de_dataset.adata.X[:, 0] = np.nan
    de_dataset.clear_caches()
    df = de_dataset.counts_for(["g1"])
    assert df["count"].isna().all()
