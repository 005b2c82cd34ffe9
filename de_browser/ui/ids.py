from __future__ import annotations

__all__ = ["IDs"]


class IDs:
    class Store:
        FILTER_STATE = "filter-state"

    class Control:
        # Core selectors
        DATASET_SELECT = "dataset-select"
        VIEW_SELECT = "view-select"

        GENE_SELECT = "gene-select"
        CHROMOSOME_SELECT = "chromosome-select"
        PADJ_INPUT = "padj-input"
        LFC_INPUT = "lfc-input"
        DIRECTION_SELECT = "direction-select"
        TOP_N_INPUT = "top-n-input"
        FLANK_INPUT = "flank-input"
        BIN_SIZE_INPUT = "bin-size-input"
        OPTIONS_CHECKLIST = "options-checklist"

        # Filter containers, shown per view FilterProfile
        GENE_FILTER_CONTAINER = "gene-filter-container"
        CHROMOSOME_FILTER_CONTAINER = "chromosome-filter-container"
        THRESHOLD_FILTER_CONTAINER = "threshold-filter-container"
        DIRECTION_FILTER_CONTAINER = "direction-filter-container"
        TOP_N_FILTER_CONTAINER = "top-n-filter-container"
        REGION_FILTER_CONTAINER = "region-filter-container"

        SIDEBAR_DATASET_META = "sidebar-dataset-meta"
        MAIN_GRAPH = "main-graph"
