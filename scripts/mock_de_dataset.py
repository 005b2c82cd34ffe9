"""
Write a small synthetic DESeq2-style dataset for trying the browser out.

    python scripts/mock_de_dataset.py --out data [--h5ad] [--bams]

Produces, under --out:
    de_results.csv      baseMean, log2FoldChange, lfcSE, stat, pvalue, padj
    counts.csv          normalised counts, genes x samples
    samples.csv         sample sheet (sample, condition, replicate)
    annotation.tsv      GeneID -> Symbol, Description
    gene_ranges.tsv     chrom, start, end, strand, gene_id
    chrom.sizes         chromosome lengths
    demo.h5ad           the same results/counts/samples as one AnnData (--h5ad)
    bam/<sample>.bam    indexed alignments over the top genes (--bams)
"""

import argparse
from pathlib import Path

import anndata as ad
import numpy as np
import pandas as pd
import pysam

CHROMSIZES = {"chr1": 400_000, "chr2": 350_000, "chr3": 300_000, "chr10": 250_000, "chrX": 200_000}
SAMPLES = pd.DataFrame(
    {
        "sample": ["MCL1.DG", "MCL1.DH", "MCL1.DI", "MCL1.LA", "MCL1.LB", "MCL1.LC"],
        "condition": ["pregnant"] * 3 + ["lactate"] * 3,
        "replicate": [1, 2, 3, 1, 2, 3],
    }
)
READ_LENGTH = 50


def benjamini_hochberg(pvalues: np.ndarray) -> np.ndarray:
    n = len(pvalues)
    order = np.argsort(pvalues)
    ranked = pvalues[order] * n / np.arange(1, n + 1)
    adjusted = np.minimum.accumulate(ranked[::-1])[::-1].clip(max=1.0)
    out = np.empty(n)
    out[order] = adjusted
    return out


def make_gene_ranges(rng: np.random.Generator, n_genes: int) -> pd.DataFrame:
    chroms = rng.choice(list(CHROMSIZES), size=n_genes)
    widths = rng.integers(1_000, 5_000, size=n_genes)
    starts = [int(rng.integers(0, CHROMSIZES[c] - w)) for c, w in zip(chroms, widths)]
    return pd.DataFrame(
        {
            "chrom": chroms,
            "start": starts,
            "end": np.asarray(starts) + widths,
            "strand": rng.choice(["+", "-"], size=n_genes),
            "gene_id": [str(100_000 + i) for i in range(n_genes)],
        }
    ).sort_values(["chrom", "start"]).reset_index(drop=True)


def make_results(rng: np.random.Generator, gene_ids: list[str], frac_de: float = 0.1) -> pd.DataFrame:
    n_genes = len(gene_ids)
    is_de = rng.random(n_genes) < frac_de
    base_mean = rng.lognormal(mean=5, sigma=2, size=n_genes)
    log2fc = np.where(is_de, rng.choice([-1, 1], size=n_genes) * rng.uniform(1, 6, size=n_genes), rng.normal(0, 0.3, size=n_genes))
    lfc_se = rng.uniform(0.1, 0.5, size=n_genes)
    pvalue = np.where(is_de, 10.0 ** -rng.uniform(4, 40, size=n_genes), rng.uniform(0, 1, size=n_genes))
    padj = benjamini_hochberg(pvalue)
    # Independent filtering leaves low-count genes without an adjusted p-value
    padj[base_mean < 5] = np.nan

    return pd.DataFrame(
        {
            "baseMean": base_mean,
            "log2FoldChange": log2fc,
            "lfcSE": lfc_se,
            "stat": log2fc / lfc_se,
            "pvalue": pvalue,
            "padj": padj,
        },
        index=pd.Index(gene_ids, name="GeneID"),
    )


def make_counts(rng: np.random.Generator, results: pd.DataFrame) -> pd.DataFrame:
    # log2FC is lactate over pregnant
    direction = np.where(SAMPLES["condition"] == "lactate", 0.5, -0.5)
    mean = results["baseMean"].to_numpy()[:, None] * 2.0 ** (results["log2FoldChange"].to_numpy()[:, None] * direction)
    counts = rng.gamma(shape=10.0, scale=mean / 10.0)
    return pd.DataFrame(counts.round(2), index=results.index, columns=SAMPLES["sample"])


def make_annotation(gene_ids: list[str]) -> pd.DataFrame:
    # The last id is left unannotated and the first gets a second symbol,
    # like a real annotation package
    rows = [{"GeneID": g, "Symbol": f"Gm{g[-4:]}", "Description": f"predicted gene {g[-4:]}"} for g in gene_ids[:-1]]
    rows.append({"GeneID": gene_ids[0], "Symbol": f"Gm{gene_ids[0][-4:]}b", "Description": "alias"})
    return pd.DataFrame(rows)


def write_bams(out_dir: Path, rng: np.random.Generator, ranges: pd.DataFrame, counts: pd.DataFrame, n_genes: int = 10) -> None:
    bam_dir = out_dir / "bam"
    bam_dir.mkdir(parents=True, exist_ok=True)
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": chrom, "LN": length} for chrom, length in CHROMSIZES.items()],
    }
    genes = ranges.set_index("gene_id").loc[counts.mean(axis=1).nlargest(n_genes).index]
    chrom_order = {chrom: i for i, chrom in enumerate(CHROMSIZES)}

    for sample in counts.columns:
        reads = []
        for gene_id, gene in genes.iterrows():
            n_reads = int(min(counts.loc[gene_id, sample], 2_000))
            for pos in rng.integers(gene["start"], gene["end"] - READ_LENGTH, size=n_reads):
                reads.append((chrom_order[gene["chrom"]], int(pos)))
        reads.sort()

        path = bam_dir / f"{sample}.bam"
        with pysam.AlignmentFile(str(path), "wb", header=header) as bam:
            for i, (tid, pos) in enumerate(reads):
                read = pysam.AlignedSegment(bam.header)
                read.query_name = f"{sample}.{i}"
                read.query_sequence = "A" * READ_LENGTH
                read.flag = 0
                read.reference_id = tid
                read.reference_start = pos
                read.mapping_quality = 60
                read.cigartuples = [(0, READ_LENGTH)]
                read.query_qualities = pysam.qualitystring_to_array("I" * READ_LENGTH)
                bam.write(read)
        pysam.index(str(path))
        print(f"wrote {path}", len(reads), "reads")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--out", type=Path, default=Path("data"))
    parser.add_argument("--n-genes", type=int, default=500)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--h5ad", action="store_true", help="Also write demo.h5ad")
    parser.add_argument("--bams", action="store_true", help="Also write indexed BAMs over the top genes")
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    out = args.out
    out.mkdir(parents=True, exist_ok=True)

    ranges = make_gene_ranges(rng, args.n_genes)
    gene_ids = sorted(ranges["gene_id"])
    results = make_results(rng, gene_ids)
    counts = make_counts(rng, results)

    results.to_csv(out / "de_results.csv")
    counts.to_csv(out / "counts.csv", index_label="GeneID")
    SAMPLES.to_csv(out / "samples.csv", index=False)
    make_annotation(gene_ids).to_csv(out / "annotation.tsv", sep="\t", index=False)
    ranges.to_csv(out / "gene_ranges.tsv", sep="\t", index=False)
    pd.Series(CHROMSIZES).to_csv(out / "chrom.sizes", sep="\t", header=False)
    print(f"wrote {out}/de_results.csv", results.shape)

    if args.h5ad:
        obs = SAMPLES.set_index("sample", drop=False)
        obs.index.name = None
        obs["replicate"] = obs["replicate"].astype(str)
        var = results.copy()
        var.index.name = None
        adata = ad.AnnData(X=counts.T.to_numpy(), obs=obs, var=var)
        adata.write_h5ad(out / "demo.h5ad")
        print(f"wrote {out}/demo.h5ad", adata.shape)

    if args.bams:
        write_bams(out, rng, ranges, counts)


if __name__ == "__main__":
    main()
