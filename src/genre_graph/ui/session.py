"""Presentation state for the search / collect / lay out workflow.

Holds what a view binds to (query, results, busy flag, error message)
and turns collection and layout outcomes into user-facing messages.
Rendering is left to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from genre_graph.catalog.client import CatalogClient
from genre_graph.core.models import LayoutNode, Track
from genre_graph.graph.collection import SongCollection
from genre_graph.graph.layout import LayoutEngine

logger = logging.getLogger(__name__)

MSG_EMPTY_QUERY = "Please enter a search query"
MSG_NO_RESULTS = "No results found"
MSG_SEARCH_FAILED = "Search failed. Please try again."
MSG_DUPLICATE = "Song already in collection!"
MSG_EMPTY_COLLECTION = "Add some songs first!"
CONFIRM_CLEAR = "Remove all songs?"

SEARCH_LIMIT = 10


class GraphSession:
    """Binds user actions to the catalog, the collection and the layout."""

    def __init__(
        self,
        catalog: CatalogClient,
        collection: SongCollection,
        layout: LayoutEngine,
        confirm: Callable[[str], bool] | None = None,
    ) -> None:
        self.catalog = catalog
        self.collection = collection
        self.layout = layout
        self._confirm = confirm or (lambda _message: True)

        self.search_query = ""
        self.search_results: list[Track] = []
        self.is_searching = False
        self.error_message: str | None = None

    @property
    def has_results(self) -> bool:
        return bool(self.search_results)

    @property
    def has_songs(self) -> bool:
        return len(self.collection) > 0

    def search(self, query: str | None = None) -> list[Track]:
        if query is not None:
            self.search_query = query
        query = self.search_query.strip()
        if not query:
            self.error_message = MSG_EMPTY_QUERY
            return []

        self.is_searching = True
        self.error_message = None
        try:
            results = self.catalog.search(query, SEARCH_LIMIT)
        except Exception:
            logger.exception("Search failed")
            self.error_message = MSG_SEARCH_FAILED
            results = []
        else:
            if not results:
                self.error_message = MSG_NO_RESULTS
        finally:
            self.is_searching = False

        self.search_results = results
        return results

    def add_song(self, track: Track) -> bool:
        """Add a result to the collection and drop it from the results."""
        if not self.collection.add_track(track):
            self.error_message = MSG_DUPLICATE
            return False
        self.search_results = [t for t in self.search_results if t.id != track.id]
        return True

    def remove_song(self, track_id: str) -> bool:
        return self.collection.remove_track(track_id)

    def clear_all(self) -> bool:
        """Clear the collection and results after confirmation."""
        if not self._confirm(CONFIRM_CLEAR):
            return False
        self.collection.clear()
        self.search_results = []
        return True

    def connected_songs(self, track_id: str) -> list[Track]:
        return self.collection.get_connected(track_id)

    def calculate_layout(self, width: float = 800.0, height: float = 600.0) -> list[LayoutNode]:
        nodes = self.collection.export_nodes()
        if not nodes:
            self.error_message = MSG_EMPTY_COLLECTION
            return []

        positioned = self.layout.compute_positions(nodes, width, height)
        for node in positioned:
            logger.debug("%s: (%.1f, %.1f)", node.track.title, node.x, node.y)
        return positioned

    def clear_search(self) -> None:
        self.search_query = ""
        self.search_results = []
        self.error_message = None
