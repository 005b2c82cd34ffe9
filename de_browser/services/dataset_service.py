from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

from de_browser.annotation.annotate import annotate_from_config
from de_browser.config.model import DatasetConfig
from de_browser.core.dataset import Dataset
from de_browser.core.dataset_loader import DatasetConfigError, from_config
from de_browser.validation.dataset_validation import validate_dataset

logger = logging.getLogger(__name__)


def load_dataset(cfg: DatasetConfig, data_root: Optional[Path] = None) -> Dataset:
    """
    Load, annotate and validate one configured dataset.
    """
    ds = from_config(cfg, data_root=data_root)
    annotate_from_config(ds, cfg, data_root=data_root)
    validate_dataset(ds)
    return ds


class DatasetManager(Mapping[str, Dataset]):
    """
    Lazy, dict-like access to configured datasets by name.

    A dataset's result table, annotation and coordinates are read the first
    time it is requested and kept for the life of the manager.
    """

    def __init__(self, cfg_by_name: Dict[str, DatasetConfig], data_root: Optional[Path] = None):
        self._cfg_by_name = cfg_by_name
        self._data_root = data_root
        self._loaded: Dict[str, Dataset] = {}

    def __getitem__(self, name: str) -> Dataset:
        if name in self._loaded:
            return self._loaded[name]

        cfg = self._cfg_by_name.get(name)
        if cfg is None:
            raise KeyError(f"Unknown dataset '{name}'")

        try:
            logger.info("Lazy-loading dataset", extra={"dataset": cfg.name})
            ds = load_dataset(cfg, data_root=self._data_root)
        except DatasetConfigError as e:
            logger.error(
                "Dataset config error on load",
                extra={"dataset": cfg.name, "error": str(e)},
            )
            raise
        except Exception:
            logger.exception(
                "Unexpected error while loading dataset",
                extra={"dataset": cfg.name},
            )
            raise

        self._loaded[name] = ds
        return ds

    def __iter__(self) -> Iterator[str]:
        return iter(self._cfg_by_name)

    def __len__(self) -> int:
        return len(self._cfg_by_name)

    def get(self, name: str, default=None) -> Dataset | None:
        # Mapping.get would swallow load errors raised as KeyError only
        if name not in self._cfg_by_name:
            return default
        return self[name]

    def config(self, name: str) -> DatasetConfig:
        return self._cfg_by_name[name]

    def is_loaded(self, name: str) -> bool:
        return name in self._loaded
