import pandas as pd

from de_browser.core.genome import chromosome_offsets, chromsizes_from_ranges, sort_chromosomes


def test_sort_chromosomes_natural_order():
    assert sort_chromosomes(["chr10", "chrX", "chr2", "chr1", "chr2"]) == ["chr1", "chr2", "chr10", "chrX"]
    assert sort_chromosomes(["10", "2", "X", "1"]) == ["1", "2", "10", "X"]


def test_chromsizes_from_ranges_uses_furthest_end(gene_ranges):
    sizes = chromsizes_from_ranges(gene_ranges)

    assert sizes.name == "length"
    assert sizes.to_dict() == {"chr1": 6000, "chr2": 800, "chr10": 3000, "chrX": 500}


def test_chromsizes_from_empty_ranges():
    assert chromsizes_from_ranges(pd.DataFrame()).empty


def test_chromosome_offsets(chromsizes):
    offsets = chromosome_offsets(chromsizes)
    assert offsets.to_dict() == {"chr1": 0, "chr2": 10_000, "chr10": 15_000, "chrX": 23_000}
