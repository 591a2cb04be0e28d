"""Song collection: tracks plus the genre connection graph.

Wraps an undirected NetworkX Graph: nodes are track ids carrying the
Track, edges are genre connections. The undirected graph keeps the
relation symmetric; self-loops are never inserted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import networkx as nx

from genre_graph.core.models import (
    CollectionEvent,
    CollectionEventKind,
    ConnectionStats,
    LayoutNode,
    Track,
)
from genre_graph.graph.genres import GenreMatcher

logger = logging.getLogger(__name__)

CollectionListener = Callable[[CollectionEvent], None]


class SongCollection:
    """Owns the added tracks and the connections between them.

    Connections for a track are computed once, when it is added, against
    the tracks present at that moment.
    """

    def __init__(self, genre_matcher: GenreMatcher | None = None) -> None:
        self._graph = nx.Graph()
        self._matcher = genre_matcher or GenreMatcher()
        self._listeners: list[CollectionListener] = []

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_track(self, track: Track) -> bool:
        """Add a track and connect it to every genre-compatible track.

        Returns False without changing anything if the id is already present.
        """
        if track.id in self._graph:
            logger.warning("Track %s already exists", track.id)
            return False

        existing = self.tracks
        self._graph.add_node(track.id, track=track)

        for other in existing:
            if self._matcher.are_compatible(track.genres, other.genres):
                self._graph.add_edge(track.id, other.id)

        logger.info(
            "Added %r by %s (%d connections)",
            track.title, track.artist, self._graph.degree(track.id),
        )
        self._notify(CollectionEvent(kind=CollectionEventKind.ADDED, track_id=track.id))
        return True

    def remove_track(self, track_id: str) -> bool:
        """Remove a track and all its connections. False if not found."""
        if track_id not in self._graph:
            return False
        self._graph.remove_node(track_id)
        logger.info("Removed track %s", track_id)
        self._notify(CollectionEvent(kind=CollectionEventKind.REMOVED, track_id=track_id))
        return True

    def clear(self) -> None:
        """Remove every track and connection."""
        self._graph.clear()
        self._notify(CollectionEvent(kind=CollectionEventKind.CLEARED))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_track(self, track_id: str) -> Track | None:
        """Get the Track stored for an id, or None."""
        data = self._graph.nodes.get(track_id)
        if data is None:
            return None
        return data.get("track")

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def tracks(self) -> list[Track]:
        """All tracks in insertion order."""
        return [data["track"] for _, data in self._graph.nodes(data=True)]

    def connection_ids(self, track_id: str) -> set[str]:
        """Ids directly connected to a track (a copy), empty if absent."""
        if track_id not in self._graph:
            return set()
        return set(self._graph.neighbors(track_id))

    def get_connected(self, track_id: str) -> list[Track]:
        """Tracks directly connected to a track, empty if none or absent."""
        if track_id not in self._graph:
            return []
        return [self._graph.nodes[n]["track"] for n in self._graph.neighbors(track_id)]

    def are_connected(self, track_id_a: str, track_id_b: str) -> bool:
        return self._graph.has_edge(track_id_a, track_id_b)

    def all_genres(self) -> list[str]:
        """Sorted unique genres across the collection."""
        return sorted({genre for track in self.tracks for genre in track.genres})

    def connection_stats(self) -> ConnectionStats:
        """Undirected connection count and mean connections per song."""
        count = len(self)
        if count == 0:
            return ConnectionStats()
        degree_sum = sum(degree for _, degree in self._graph.degree())
        return ConnectionStats(
            total_connections=self._graph.number_of_edges(),
            avg_connections_per_song=round(degree_sum / count, 2),
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_nodes(self) -> list[LayoutNode]:
        """Snapshot of every track as a LayoutNode with zeroed position.

        Connection lists are copies: later mutations of the collection do
        not show up in nodes already exported.
        """
        return [
            LayoutNode(
                id=track_id,
                track=data["track"],
                connections=list(self._graph.neighbors(track_id)),
            )
            for track_id, data in self._graph.nodes(data=True)
        ]

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: CollectionListener) -> Callable[[], None]:
        """Register a listener for mutations. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: CollectionEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # ------------------------------------------------------------------
    # NetworkX access
    # ------------------------------------------------------------------

    @property
    def nx_graph(self) -> nx.Graph:
        """Expose the underlying NetworkX graph."""
        return self._graph
