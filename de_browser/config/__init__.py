"""
Config package for de_browser.

Responsible for:
- config models (GlobalConfig, DatasetConfig, column mappings, thresholds)
- config I/O helpers (load_global_config / load_dataset_registry)
"""

from .model import AnnotationConfig, DatasetConfig, GlobalConfig, ObsColumns, Thresholds, VarColumns
from .loader import load_dataset_registry, load_global_config

__all__ = [
    "AnnotationConfig",
    "DatasetConfig",
    "GlobalConfig",
    "ObsColumns",
    "Thresholds",
    "VarColumns",
    "load_dataset_registry",
    "load_global_config",
]
