from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from de_browser.config.model import GlobalConfig
from de_browser.core.dataset import Dataset
from de_browser.core.view_registry import ViewRegistry


@dataclass
class AppConfig:
    config_root: Path
    global_config: GlobalConfig
    dataset_names: List[str] = field(default_factory=list)
    dataset_by_name: Mapping[str, Dataset] = field(default_factory=dict)
    default_dataset_name: Optional[str] = None
    registry: Optional[ViewRegistry] = None

    def validate(self) -> None:
        """Ensure all required services are attached before the app starts."""
        if self.registry is None:
            raise RuntimeError("AppConfig.registry must be initialized.")
        if not self.dataset_names:
            raise RuntimeError("AppConfig needs at least one dataset.")
