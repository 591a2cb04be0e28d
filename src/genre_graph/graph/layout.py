"""Layout engine: ForceAtlas2 positions scaled to a canvas.

Takes the LayoutNode snapshot exported by SongCollection, builds an
undirected NetworkX graph, runs networkx's ForceAtlas2 layout and maps
the raw coordinates into [padding, dimension - padding] on each axis.

Three variants: a blocking batch layout, an animated layout advanced in
chunks at frame boundaries, and a shorter incremental run that seeds
existing nodes at their last positions. If the layout fails the nodes
get uniform random positions instead.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Hashable, Iterator, Mapping, Sequence

import networkx as nx
import numpy as np

from genre_graph.core.models import LayoutNode, LayoutSettings, Track
from genre_graph.graph.genres import genre_set_score

logger = logging.getLogger(__name__)

EdgeWeightFn = Callable[[Track, Track], float]
StepCallback = Callable[[list[LayoutNode]], None]
Positions = Mapping[Hashable, Sequence[float]]
LayoutFunction = Callable[..., Positions]


def forceatlas2_positions(
    graph: nx.Graph,
    settings: LayoutSettings,
    pos: Positions | None = None,
    iterations: int = 100,
    seed: int | None = None,
) -> dict[Hashable, np.ndarray]:
    """Run nx.forceatlas2_layout with the ForceAtlas2 options in settings.

    Starts from pos when given (every node must have an entry), otherwise
    from random positions drawn with seed.
    """
    if pos is not None:
        pos = {node: np.asarray(pos[node], dtype=float) for node in graph}
    return nx.forceatlas2_layout(
        graph,
        pos=pos,
        max_iter=iterations,
        jitter_tolerance=settings.jitter_tolerance,
        scaling_ratio=settings.scaling_ratio,
        gravity=settings.gravity,
        distributed_action=settings.outbound_attraction_distribution,
        strong_gravity=settings.strong_gravity_mode,
        weight="weight",
        linlog=settings.lin_log_mode,
        seed=seed,
    )


def genre_overlap_weight(track_a: Track, track_b: Track) -> float:
    """Edge weight from the word-overlap score of two tracks' genres."""
    return float(genre_set_score(track_a.genres, track_b.genres))


class LayoutEngine:
    """Computes canvas positions for LayoutNodes."""

    def __init__(
        self,
        settings: LayoutSettings | None = None,
        edge_weight_fn: EdgeWeightFn | None = None,
        layout_fn: LayoutFunction = forceatlas2_positions,
    ) -> None:
        self.settings = settings or LayoutSettings()
        self._edge_weight_fn = edge_weight_fn
        self._layout_fn = layout_fn
        self._rng = np.random.default_rng(self.settings.seed)
        self._calculating = False

    @property
    def is_calculating(self) -> bool:
        """True while a layout (batch, animated or incremental) is running."""
        return self._calculating

    # ------------------------------------------------------------------
    # Batch layout
    # ------------------------------------------------------------------

    def compute_positions(
        self,
        nodes: Sequence[LayoutNode],
        width: float = 800.0,
        height: float = 600.0,
    ) -> list[LayoutNode]:
        """Run a full ForceAtlas2 layout and return positioned copies of nodes."""
        if not nodes:
            return []

        self._calculating = True
        try:
            graph = self.build_graph(nodes)
            raw = self._run_layout(graph, self.settings.iterations)
            positioned = self._extract_positions(raw, nodes, width, height)
            logger.info("Layout calculated for %d nodes", len(nodes))
            return positioned
        except Exception:
            logger.exception("Layout calculation failed")
            return self._fallback_random_layout(nodes, width, height)
        finally:
            self._calculating = False

    # ------------------------------------------------------------------
    # Animated layout
    # ------------------------------------------------------------------

    def iter_animated(
        self,
        nodes: Sequence[LayoutNode],
        width: float = 800.0,
        height: float = 600.0,
        steps: int | None = None,
    ) -> Iterator[list[LayoutNode]]:
        """Yield one normalized frame per chunk of iterations.

        Iterations per chunk are ceil(iterations / steps); each chunk starts
        from the raw positions the previous one ended at. On failure a
        single random-layout frame is yielded and the run ends.
        """
        if not nodes:
            return
        steps = steps or self.settings.animation_steps
        per_step = math.ceil(self.settings.iterations / steps)

        self._calculating = True
        try:
            try:
                graph = self.build_graph(nodes)
            except Exception:
                logger.exception("Animated layout setup failed")
                yield self._fallback_random_layout(nodes, width, height)
                return

            raw: dict[Hashable, np.ndarray] | None = None
            for step in range(steps):
                try:
                    raw = self._run_layout(graph, per_step, raw)
                    frame = self._extract_positions(raw, nodes, width, height)
                except Exception:
                    logger.exception("Animated layout failed at step %d", step + 1)
                    yield self._fallback_random_layout(nodes, width, height)
                    return
                logger.debug(
                    "Animation step %d/%d (%d iterations)",
                    step + 1, steps, (step + 1) * per_step,
                )
                yield frame

            logger.info("Animated layout complete")
        finally:
            self._calculating = False

    async def compute_animated(
        self,
        nodes: Sequence[LayoutNode],
        width: float,
        height: float,
        on_step: StepCallback,
        steps: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[LayoutNode]:
        """Run the layout in chunks, one per frame, reporting each frame.

        Control returns to the event loop between chunks. Setting cancel
        stops the run before the next chunk. Returns the last frame
        delivered to on_step (empty if none was).
        """
        if not nodes:
            return []

        last: list[LayoutNode] = []
        frames = self.iter_animated(nodes, width, height, steps)
        self._calculating = True
        try:
            while True:
                await asyncio.sleep(self.settings.frame_interval)
                if cancel is not None and cancel.is_set():
                    logger.info("Animated layout cancelled")
                    break
                frame = next(frames, None)
                if frame is None:
                    break
                on_step(frame)
                last = frame
        finally:
            frames.close()
            self._calculating = False
        return last

    # ------------------------------------------------------------------
    # Incremental layout
    # ------------------------------------------------------------------

    def update_with_new_nodes(
        self,
        existing_nodes: Sequence[LayoutNode],
        new_nodes: Sequence[LayoutNode],
        width: float = 800.0,
        height: float = 600.0,
    ) -> list[LayoutNode]:
        """Lay out existing + new nodes with a shorter run.

        Existing nodes start from their current positions, new nodes near
        the centroid of the existing ones. Normalization is global, so old
        nodes can still shift.
        """
        existing_ids = {node.id for node in existing_nodes}
        fresh = [node for node in new_nodes if node.id not in existing_ids]
        if len(fresh) < len(new_nodes):
            logger.warning(
                "Ignoring %d new nodes already in the layout", len(new_nodes) - len(fresh)
            )
        all_nodes = [*existing_nodes, *fresh]
        if not all_nodes:
            return []

        self._calculating = True
        try:
            graph = self.build_graph(all_nodes)
            seeds = self._seed_positions(existing_nodes, fresh)
            raw = self._run_layout(graph, self.settings.incremental_iterations, seeds or None)
            positioned = self._extract_positions(raw, all_nodes, width, height)
            logger.info(
                "Incremental layout: %d existing + %d new nodes", len(existing_nodes), len(fresh)
            )
            return positioned
        except Exception:
            logger.exception("Incremental layout failed")
            return self._fallback_random_layout(all_nodes, width, height)
        finally:
            self._calculating = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def build_graph(self, nodes: Sequence[LayoutNode]) -> nx.Graph:
        """Build an undirected graph from the node snapshot.

        Edges to ids missing from the snapshot are logged and skipped.
        """
        graph = nx.Graph()
        by_id = {node.id: node for node in nodes}
        for node in nodes:
            graph.add_node(node.id, label=node.track.title, size=10)

        for node in nodes:
            for target_id in node.connections:
                if target_id == node.id or graph.has_edge(node.id, target_id):
                    continue
                target = by_id.get(target_id)
                if target is None:
                    logger.warning("Could not add edge %s -> %s: target not in layout",
                                   node.id, target_id)
                    continue
                graph.add_edge(node.id, target_id, weight=self._edge_weight(node, target))

        return graph

    def _run_layout(
        self,
        graph: nx.Graph,
        iterations: int,
        pos: Positions | None = None,
    ) -> dict[Hashable, np.ndarray]:
        seed = int(self._rng.integers(2**31))
        result = self._layout_fn(graph, self.settings, pos=pos, iterations=iterations, seed=seed)
        coords = np.array([result[node] for node in graph], dtype=float).reshape(-1, 2)
        if not np.isfinite(coords).all():
            raise FloatingPointError("ForceAtlas2 produced non-finite positions")
        return dict(zip(graph, coords))

    def _edge_weight(self, source: LayoutNode, target: LayoutNode) -> float:
        weight = 1.0
        if self._edge_weight_fn is not None:
            weight = float(self._edge_weight_fn(source.track, target.track))
            if weight <= 0.0:
                weight = 1.0
        return weight ** self.settings.edge_weight_influence

    def _seed_positions(
        self,
        existing_nodes: Sequence[LayoutNode],
        new_nodes: Sequence[LayoutNode],
    ) -> dict[Hashable, tuple[float, float]]:
        """Existing nodes at their positions, new ones near their centroid.

        Coincident seeds are nudged apart: ForceAtlas2 repulsion is undefined
        at distance zero.
        """
        seeds: dict[Hashable, tuple[float, float]] = {
            node.id: (node.x, node.y) for node in existing_nodes
        }
        if not existing_nodes:
            return seeds

        coords = np.array([[node.x, node.y] for node in existing_nodes])
        centroid = coords.mean(axis=0)
        spread = max(float(coords.std(axis=0).max()), 1.0) * 0.25
        for node in new_nodes:
            x, y = centroid + self._rng.normal(0.0, spread, size=2)
            seeds[node.id] = (float(x), float(y))

        taken: set[tuple[float, float]] = set()
        for node_id, point in seeds.items():
            while point in taken:
                dx, dy = self._rng.normal(0.0, spread, size=2)
                point = (point[0] + float(dx), point[1] + float(dy))
            taken.add(point)
            seeds[node_id] = point
        return seeds

    def _extract_positions(
        self,
        positions: Mapping[Hashable, tuple[float, float]],
        nodes: Sequence[LayoutNode],
        width: float,
        height: float,
    ) -> list[LayoutNode]:
        """Scale raw positions into the padded canvas using their bounding box."""
        xs = [p[0] for p in positions.values()]
        ys = [p[1] for p in positions.values()]
        min_x, max_x = min(xs), max(xs)
        min_y, max_y = min(ys), max(ys)
        range_x = (max_x - min_x) or 1.0
        range_y = (max_y - min_y) or 1.0

        padding = self.settings.padding
        usable_width = max(0.0, width - 2 * padding)
        usable_height = max(0.0, height - 2 * padding)

        positioned: list[LayoutNode] = []
        for node in nodes:
            x, y = positions[node.id]
            positioned.append(node.model_copy(update={
                "x": padding + (x - min_x) / range_x * usable_width,
                "y": padding + (y - min_y) / range_y * usable_height,
            }))
        return positioned

    def _fallback_random_layout(
        self,
        nodes: Sequence[LayoutNode],
        width: float,
        height: float,
    ) -> list[LayoutNode]:
        logger.warning("Using random fallback layout for %d nodes", len(nodes))
        padding = self.settings.padding
        usable_width = max(0.0, width - 2 * padding)
        usable_height = max(0.0, height - 2 * padding)
        return [
            node.model_copy(update={
                "x": padding + float(self._rng.random()) * usable_width,
                "y": padding + float(self._rng.random()) * usable_height,
            })
            for node in nodes
        ]
