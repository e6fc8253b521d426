"""Per-viewer orchestrators, keyed by the console view id."""

from collections import OrderedDict
from typing import Callable

from loguru import logger

from idsync_api.orchestrator.user_detail import UserAdminOrchestrator

DEFAULT_MAX_VIEWS = 1000


class ViewRegistry:
    """
    Holds one UserAdminOrchestrator per view id.

    The least recently used view is dropped once max_views is exceeded.
    """

    def __init__(self, factory: Callable[[str], UserAdminOrchestrator], max_views: int = DEFAULT_MAX_VIEWS):
        self._factory = factory
        self._max_views = max_views
        self._views: "OrderedDict[str, UserAdminOrchestrator]" = OrderedDict()

    def get(self, view_id: str) -> UserAdminOrchestrator:
        """Get the orchestrator of a view, creating it on first use."""
        orchestrator = self._views.get(view_id)
        if orchestrator is None:
            orchestrator = self._factory(view_id)
            self._views[view_id] = orchestrator
            logger.debug("View created", view_id=view_id, views=len(self._views))
            while len(self._views) > self._max_views:
                evicted, _ = self._views.popitem(last=False)
                logger.debug("View evicted", view_id=evicted)
        else:
            self._views.move_to_end(view_id)
        return orchestrator

    def discard(self, view_id: str) -> None:
        """Forget a view."""
        self._views.pop(view_id, None)

    def __contains__(self, view_id: str) -> bool:
        return view_id in self._views

    def __len__(self) -> int:
        return len(self._views)
