from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Type

from .base_view import BaseView
from .dataset import Dataset


class ViewRegistry:
    """
    Registry of plot views, keyed by view id.

    The Dash app builds its view selector from the registry and the report
    command renders every registered view, so neither hardcodes a list of
    views.

    Invariants:
        * only BaseView subclasses can be registered
        * each view 'id' is unique across the registry
    Classes are stored, not instances; a view is bound to a dataset on create().
    """

    def __init__(self, views: Optional[Iterable[Type[BaseView]]] = None):
        self._views: Dict[str, Type[BaseView]] = {}
        for view_cls in views or ():
            self.register(view_cls)

    def register(self, view_cls: Type[BaseView]) -> None:
        """
        Register a BaseView subclass.

        Raises:
            TypeError: if view_cls is not a subclass of BaseView
            ValueError: if a view with same 'id' already exists
        """
        if not isinstance(view_cls, type) or not issubclass(view_cls, BaseView):
            raise TypeError(f"View '{getattr(view_cls, 'id', view_cls)}' must be a subclass of BaseView")

        if view_cls.id in self._views:
            raise ValueError(f"View '{view_cls.id}' already registered")

        self._views[view_cls.id] = view_cls

    def create(self, view_id: str, dataset: Dataset) -> BaseView:
        """
        Instantiate the view registered under view_id for the given dataset.

        Raises:
            KeyError: if no view with the given id exists in the registry
        """
        try:
            cls = self._views[view_id]
        except KeyError:
            raise KeyError(f"View '{view_id}' not found")
        return cls(dataset)

    def ids(self) -> List[str]:
        return list(self._views)

    def all_classes(self) -> List[Type[BaseView]]:
        """Registered view classes in registration order."""
        return list(self._views.values())

    def __contains__(self, view_id: object) -> bool:
        return view_id in self._views
