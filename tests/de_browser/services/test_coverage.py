from pathlib import Path

import numpy as np
import pysam
import pytest

from de_browser.services.coverage import CoverageError, Region, bam_depth, bin_depth, gene_region, region_coverage

READ_LENGTH = 10


def _write_bam(path: Path, starts: list[int], index: bool = True) -> Path:
    """
    Single-contig BAM (chr1, 1000 bp) with one 10M read at each start.
    """
    header = {"HD": {"VN": "1.6", "SO": "coordinate"}, "SQ": [{"SN": "chr1", "LN": 1000}]}
    with pysam.AlignmentFile(str(path), "wb", header=header) as bam:
        for i, start in enumerate(sorted(starts)):
            read = pysam.AlignedSegment(bam.header)
            read.query_name = f"r{i}"
            read.query_sequence = "A" * READ_LENGTH
            read.flag = 0
            read.reference_id = 0
            read.reference_start = start
            read.mapping_quality = 60
            read.cigartuples = [(0, READ_LENGTH)]
            read.query_qualities = pysam.qualitystring_to_array("I" * READ_LENGTH)
            bam.write(read)
    if index:
        pysam.index(str(path))
    return path


def test_region_validation_and_display():
    region = Region("chr1", 99, 200)
    assert region.width == 101
    assert str(region) == "chr1:100-200"
    with pytest.raises(ValueError):
        Region("chr1", 200, 100)


def test_gene_region_clips_flank_at_zero():
    region = gene_region("chr1", 50, 150, flank=100)
    assert (region.start, region.end) == (0, 250)


def test_bam_depth_counts_overlapping_reads(tmp_path):
    bam = _write_bam(tmp_path / "s1.bam", [100, 105, 105])

    depth = bam_depth(bam, Region("chr1", 100, 120))

    assert len(depth) == 20
    assert depth[0] == 1  # 100 covered by the first read only
    assert depth[5] == 3  # 105..109 covered by all three
    assert depth[12] == 2
    assert depth[19] == 0


def test_bam_depth_unknown_contig_is_zero(tmp_path):
    bam = _write_bam(tmp_path / "s1.bam", [100])
    assert not bam_depth(bam, Region("chr2", 0, 50)).any()


def test_bam_depth_clips_at_contig_end(tmp_path):
    bam = _write_bam(tmp_path / "s1.bam", [990])
    depth = bam_depth(bam, Region("chr1", 980, 1100))
    assert len(depth) == 120
    assert depth[10:20].tolist() == [1] * 10
    assert not depth[20:].any()


def test_bam_without_index_raises(tmp_path):
    bam = _write_bam(tmp_path / "s1.bam", [100], index=False)
    with pytest.raises(CoverageError, match="no index"):
        bam_depth(bam, Region("chr1", 0, 50))


def test_missing_bam_raises(tmp_path):
    with pytest.raises(CoverageError, match="not found"):
        bam_depth(tmp_path / "missing.bam", Region("chr1", 0, 50))


def test_bin_depth_means_per_bin():
    binned = bin_depth(np.array([1, 1, 3, 3, 5]), start=100, bin_size=2)

    assert binned["position"].tolist() == [100, 102, 104]
    assert binned["depth"].tolist() == [1.0, 3.0, 5.0]


def test_region_coverage_long_table(tmp_path):
    paths = {
        "s1": _write_bam(tmp_path / "s1.bam", [100]),
        "s2": _write_bam(tmp_path / "s2.bam", [100, 100]),
    }

    cov = region_coverage(paths, "chr1", 100, 120, bin_size=10)

    assert list(cov.columns) == ["sample", "position", "depth"]
    assert len(cov) == 4
    s2 = cov[cov["sample"] == "s2"]
    assert s2["depth"].tolist() == [2.0, 0.0]


def test_region_coverage_no_bams():
    assert region_coverage({}, "chr1", 0, 100).empty
