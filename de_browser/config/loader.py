from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from de_browser.config.model import DatasetConfig, GlobalConfig

logger = logging.getLogger(__name__)


def _resolve_dir(root: Path, raw_value: Optional[str]) -> Optional[Path]:
    # Absolute paths are used as-is, relative ones resolve against the config root
    if raw_value is None:
        return None
    path = Path(raw_value)
    if path.is_absolute():
        return path
    return (root / path).resolve()


def load_global_config(root: Path) -> GlobalConfig:
    """
    Load configuration from a directory using the multi-file layout.

    Expected structure:

        root/
            global.json
            datasets/
                dataset_1.json
                dataset_2.json
                ...

    Each file in 'datasets/' is parsed into a DatasetConfig. The resulting GlobalConfig includes:

    - ui_title: title for UI, defaults to 'DE Results Browser'
    - default_group: group for UI, defaults to 'Default'
    - datasets: list of DatasetConfigs
    - data_root: root directory relative dataset paths resolve against
    - output_dir: where the report command writes its exports

    :param root: Directory containing 'global.json' and optionally 'datasets/'.
    :return: A GlobalConfig instance.
    :raises FileNotFoundError: if global.json does not exist.
    """
    root = Path(root)
    logger.info(
        "Loading global config",
        extra={"config_root": str(root)},
    )

    global_path = root / "global.json"
    if not global_path.is_file():
        raise FileNotFoundError(f"File not found at {global_path}")

    with global_path.open() as f:
        raw_global = json.load(f)

    datasets_dir = root / "datasets"
    datasets: List[DatasetConfig] = []

    if datasets_dir.is_dir():
        files = sorted(datasets_dir.glob("*.json"))
        if not files:
            logger.warning("No .json files found in %s", datasets_dir)

        for idx, config_file in enumerate(files):
            logger.info("Loading dataset config: %s", config_file.name)
            with config_file.open() as f:
                raw = json.load(f)
            datasets.append(
                DatasetConfig.from_raw(raw, source_path=config_file, index=idx)
            )
    else:
        logger.warning("Datasets directory not found at: %s", datasets_dir)

    return GlobalConfig(
        ui_title=raw_global.get("ui_title", "DE Results Browser"),
        default_group=raw_global.get("default_group", "Default"),
        datasets=datasets,
        data_root=_resolve_dir(root, raw_global.get("data_root")),
        output_dir=_resolve_dir(root, raw_global.get("output_dir")),
    )


def load_dataset_registry(root: Path) -> Tuple[GlobalConfig, Dict[str, DatasetConfig]]:
    """
    Load global config + dataset config objects only (no result tables are read).
    Returns mapping of dataset name -> DatasetConfig.

    :raises ValueError: if two dataset configs share a name
    """
    global_config = load_global_config(root)

    cfg_by_name: Dict[str, DatasetConfig] = {}
    for cfg in global_config.datasets:
        if cfg.name in cfg_by_name:
            raise ValueError(
                f"Duplicate dataset name '{cfg.name}' in {cfg.source_path} "
                f"and {cfg_by_name[cfg.name].source_path}"
            )
        cfg_by_name[cfg.name] = cfg

    return global_config, cfg_by_name
