from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FilterProfile:
    """
    Represents the widget dependencies for different views.

    :param genes: the gene widget
    :param chromosomes: the chromosome widget
    :param thresholds: the padj / log2FC threshold widgets
    :param direction: the up / down / both widget
    :param top_n: the number-of-top-hits widget
    :param region: the flank / bin-size widgets (coverage tracks)
    """
    genes: bool = False
    chromosomes: bool = False
    thresholds: bool = False
    direction: bool = False
    top_n: bool = False
    region: bool = False


@dataclass
class FilterState:
    """
    Represents the current user selection/filters.

    Fields:

    - genes: gene ids or symbols selected by the user
    - chromosomes: restrict genome-wide views to these chromosomes
    - padj_threshold / lfc_threshold: significance cut-offs (None = dataset default)
    - direction: "both", "up" or "down"
    - top_n: how many top hits to label / export
    - flank: bases either side of the gene for coverage tracks
    - bin_size: coverage bin width in bases
    - log_scale: plot counts on a log axis
    """

    # Global context
    dataset_name: str
    view_id: str

    # Core selections
    genes: List[str] = field(default_factory=list)
    chromosomes: List[str] = field(default_factory=list)

    # Significance
    padj_threshold: Optional[float] = None
    lfc_threshold: Optional[float] = None
    direction: str = "both"
    top_n: Optional[int] = None

    # Coverage region
    flank: int = 2000
    bin_size: int = 50

    # Display options
    log_scale: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FilterState:
        def _opt_float(value: Any) -> Optional[float]:
            return None if value is None or value == "" else float(value)

        top_n = data.get("top_n")
        return cls(
            dataset_name=data.get("dataset_name"),
            view_id=data.get("view_id"),
            genes=list(data.get("genes") or []),
            chromosomes=list(data.get("chromosomes") or []),
            padj_threshold=_opt_float(data.get("padj_threshold")),
            lfc_threshold=_opt_float(data.get("lfc_threshold")),
            direction=data.get("direction") or "both",
            top_n=None if top_n is None or top_n == "" else int(top_n),
            flank=int(data.get("flank", 2000)),
            bin_size=int(data.get("bin_size", 50)),
            log_scale=bool(data.get("log_scale", True)),
        )
