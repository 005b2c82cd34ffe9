from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import plotly.graph_objs as go

from .dataset import Dataset
from .filter_state import FilterProfile, FilterState


class BaseView(ABC):
    """
    Abstract base class for all plot views.

    Defines the contract that every view in the app must follow
    - expose an 'id' - used internally
    - expose a 'label' - used for UI/human-readable applications
    - implement 'compute_data' - used to compute the data given the current FilterState
    - implement 'render_figure' - used to render the figure using Plotly
    """

    id: str = None
    label: str = None
    filter_profile = FilterProfile()

    def __init__(self, dataset: Dataset):
        self.dataset = dataset

    @abstractmethod
    def compute_data(self, state: FilterState) -> Any:
        """
        Compute the data given the current FilterState
        :param state: the current FilterState - what filters the user has toggled
        :return: data: a dataframe containing the data as per the FilterState
        """
        raise NotImplementedError()

    @abstractmethod
    def render_figure(self, data: Any, state: FilterState) -> go.Figure:
        """
        Render the figure given the computed data
        :param data: the data provided by compute_data()
        :param state: the current FilterState
        :return: the Plotly figure for these parameters
        """
        raise NotImplementedError()

    # ------------------------------------------------------------------
    # Common helpers for all views
    # ------------------------------------------------------------------
    def padj_threshold(self, state: FilterState) -> float:
        if state.padj_threshold is None:
            return self.dataset.thresholds.padj
        return state.padj_threshold

    def lfc_threshold(self, state: FilterState) -> float:
        if state.lfc_threshold is None:
            return self.dataset.thresholds.lfc
        return state.lfc_threshold

    def top_n(self, state: FilterState) -> int:
        return self.dataset.top_n if state.top_n is None else state.top_n

    def with_significance(self, state: FilterState):
        """
        Results table with a 'significance' column for the state's thresholds.

        All views should call this instead of labelling genes themselves, so the
        thresholds are applied the same way everywhere.
        """
        df = self.dataset.results.copy()
        df["significance"] = self.dataset.significance_labels(
            padj=self.padj_threshold(state),
            lfc=self.lfc_threshold(state),
        )
        return df

    @staticmethod
    def empty_figure(message: str) -> go.Figure:
        """
        Standardised 'no data' figure used by all views.
        """
        fig = go.Figure()
        fig.update_layout(
            title=message,
            xaxis={"visible": False},
            yaxis={"visible": False},
        )
        return fig
