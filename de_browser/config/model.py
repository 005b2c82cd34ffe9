from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class VarColumns:
    """
    Semantic names for the DE result columns stored in `.var`.

    Defaults follow the column names DESeq2 writes.
    """
    gene_id: Optional[str] = None
    base_mean: str = "baseMean"
    log2fc: str = "log2FoldChange"
    pvalue: str = "pvalue"
    padj: str = "padj"
    lfc_se: Optional[str] = None
    stat: Optional[str] = None
    symbol: Optional[str] = None
    gene_name: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class ObsColumns:
    """
    Semantic names for the sample-sheet columns stored in `.obs`.
    """
    sample: Optional[str] = None
    condition: Optional[str] = None
    replicate: Optional[str] = None
    bam: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class AnnotationConfig:
    """
    Where gene annotation and coordinates come from.

    - table: delimited annotation table (gene id -> symbol, description, ...)
    - id_column: the column of `table` holding the ids used in the DE results
    - gtf: GTF to pull `gene` records from
    - gene_ranges: alternative to `gtf`, a BED6-like table of gene coordinates
    - chromsizes: two-column chromosome length file
    """
    table: Optional[Path] = None
    id_column: str = "GeneID"
    symbol_column: str = "Symbol"
    name_column: str = "Description"
    gtf: Optional[Path] = None
    gtf_id_attribute: str = "gene_id"
    gene_ranges: Optional[Path] = None
    chromsizes: Optional[Path] = None

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> AnnotationConfig:
        raw = dict(raw or {})
        for key in ("table", "gtf", "gene_ranges", "chromsizes"):
            if raw.get(key) is not None:
                raw[key] = Path(raw[key])
        return cls(**raw)


@dataclass(frozen=True)
class Thresholds:
    padj: float = 0.05
    lfc: float = 1.0


@dataclass
class DatasetConfig:
    """
    Parsed config entry for a single dataset.
    """
    raw: Dict[str, Any]
    source_path: Path
    index: int

    @property
    def name(self) -> str:
        return self.raw.get("name", f"Dataset {self.index}")

    @property
    def group(self) -> str:
        return self.raw.get("group", "Default")

    @property
    def path(self) -> Optional[Path]:
        """AnnData (.h5ad) file holding results, counts and sample sheet."""
        file = self.raw.get("file") or self.raw.get("path")
        return Path(file) if file else None

    @property
    def results_path(self) -> Optional[Path]:
        value = self.raw.get("results")
        return Path(value) if value else None

    @property
    def counts_path(self) -> Optional[Path]:
        value = self.raw.get("counts")
        return Path(value) if value else None

    @property
    def samples_path(self) -> Optional[Path]:
        value = self.raw.get("samples")
        return Path(value) if value else None

    @property
    def bam_dir(self) -> Optional[Path]:
        value = self.raw.get("bam_dir")
        return Path(value) if value else None

    @property
    def var_columns(self) -> VarColumns:
        return VarColumns(**self.raw.get("var_columns", {}))

    @property
    def obs_columns(self) -> ObsColumns:
        return ObsColumns(**self.raw.get("obs_columns", {}))

    @property
    def annotation(self) -> AnnotationConfig:
        return AnnotationConfig.from_raw(self.raw.get("annotation"))

    @property
    def thresholds(self) -> Thresholds:
        return Thresholds(**self.raw.get("thresholds", {}))

    @property
    def top_n(self) -> int:
        return int(self.raw.get("top_n", 10))

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], source_path: Path, index: int) -> DatasetConfig:
        return cls(raw=raw, source_path=source_path, index=index)


@dataclass
class GlobalConfig:
    ui_title: str
    default_group: str
    datasets: List[DatasetConfig] = field(default_factory=list)
    data_root: Optional[Path] = None
    output_dir: Optional[Path] = None
