"""Tests for SongCollection: membership, connections, export."""

from genre_graph.core.models import CollectionEventKind, Track
from genre_graph.graph.collection import SongCollection
from genre_graph.graph.genres import GenreMatcher


def _make_track(track_id: str, genres=None, title=None) -> Track:
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artist="Artist",
        genres=genres if genres is not None else ["rock"],
    )


def _assert_graph_invariants(collection: SongCollection) -> None:
    ids = {t.id for t in collection.tracks}
    for track_id in ids:
        connected = collection.connection_ids(track_id)
        assert track_id not in connected
        assert connected <= ids
        for other in connected:
            assert track_id in collection.connection_ids(other)


# ===========================================================================
# Membership
# ===========================================================================


class TestAddTrack:
    def test_add_and_get(self, collection, rock_track):
        assert collection.add_track(rock_track) is True
        assert rock_track.id in collection
        assert collection.get_track(rock_track.id) == rock_track
        assert len(collection) == 1

    def test_duplicate_add_fails(self, collection, rock_track):
        collection.add_track(rock_track)
        assert collection.add_track(rock_track) is False
        assert len(collection) == 1

    def test_duplicate_id_does_not_overwrite(self, collection):
        original = _make_track("same", ["rock"], title="First")
        collection.add_track(original)
        assert not collection.add_track(_make_track("same", ["jazz"], title="Second"))
        assert collection.get_track("same").title == "First"

    def test_get_nonexistent_track(self, collection):
        assert collection.get_track("missing") is None

    def test_tracks_in_insertion_order(self, collection):
        for i in range(5):
            collection.add_track(_make_track(f"o{i}"))
        assert [t.id for t in collection.tracks] == [f"o{i}" for i in range(5)]

    def test_contains(self, collection, rock_track):
        collection.add_track(rock_track)
        assert rock_track.id in collection
        assert "nope" not in collection


class TestRemoveTrack:
    def test_remove(self, collection, rock_track):
        collection.add_track(rock_track)
        assert collection.remove_track(rock_track.id) is True
        assert rock_track.id not in collection
        assert len(collection) == 0

    def test_remove_missing_fails(self, collection):
        assert collection.remove_track("missing") is False

    def test_remove_clears_back_references(self, collection, rock_track, indie_rock_track):
        collection.add_track(rock_track)
        collection.add_track(indie_rock_track)
        collection.remove_track(rock_track.id)
        assert rock_track.id not in collection.connection_ids(indie_rock_track.id)
        assert collection.get_connected(rock_track.id) == []
        _assert_graph_invariants(collection)

    def test_remove_middle_of_three(self, collection):
        a = _make_track("a", ["rock"])
        b = _make_track("b", ["indie rock"])
        c = _make_track("c", ["hard rock"])
        for t in (a, b, c):
            collection.add_track(t)
        collection.remove_track("b")
        # "rock" is contained in "hard rock", so a and c stay connected
        assert collection.are_connected("a", "c")
        assert "b" not in collection.connection_ids("a")
        assert "b" not in collection.connection_ids("c")
        _assert_graph_invariants(collection)


class TestClear:
    def test_clear_empties_everything(self, populated_collection):
        populated_collection.clear()
        assert len(populated_collection) == 0
        assert populated_collection.export_nodes() == []
        assert populated_collection.connection_stats().total_connections == 0


# ===========================================================================
# Connections
# ===========================================================================


class TestConnections:
    def test_compatible_tracks_connect(self, collection, rock_track, indie_rock_track):
        collection.add_track(indie_rock_track)
        collection.add_track(rock_track)
        assert collection.are_connected(rock_track.id, indie_rock_track.id)
        assert collection.are_connected(indie_rock_track.id, rock_track.id)

    def test_connection_independent_of_order(self, rock_track, indie_rock_track):
        first = SongCollection()
        first.add_track(rock_track)
        first.add_track(indie_rock_track)
        second = SongCollection()
        second.add_track(indie_rock_track)
        second.add_track(rock_track)
        assert first.are_connected(rock_track.id, indie_rock_track.id)
        assert second.are_connected(rock_track.id, indie_rock_track.id)

    def test_incompatible_tracks_do_not_connect(self, collection, jazz_track, metal_track):
        collection.add_track(jazz_track)
        collection.add_track(metal_track)
        assert not collection.are_connected(jazz_track.id, metal_track.id)
        assert collection.get_connected(jazz_track.id) == []

    def test_get_connected_returns_tracks(self, populated_collection):
        connected = {t.id for t in populated_collection.get_connected("r1")}
        assert connected == {"r2", "r3"}

    def test_get_connected_missing_id(self, collection):
        assert collection.get_connected("missing") == []

    def test_unknown_genre_tracks_connect_to_each_other(self, collection):
        collection.add_track(_make_track("u1", []))
        collection.add_track(_make_track("u2", []))
        assert collection.are_connected("u1", "u2")

    def test_connection_ids_is_a_copy(self, populated_collection):
        ids = populated_collection.connection_ids("r1")
        ids.add("bogus")
        assert "bogus" not in populated_collection.connection_ids("r1")

    def test_invariants_after_mixed_mutations(self, populated_collection):
        populated_collection.remove_track("r2")
        populated_collection.add_track(_make_track("r4", ["rock", "jazz"]))
        populated_collection.remove_track("j1")
        _assert_graph_invariants(populated_collection)
        assert populated_collection.are_connected("r4", "j2")

    def test_custom_matcher_is_used(self):
        class NeverMatcher(GenreMatcher):
            def are_compatible(self, genres_a, genres_b):
                return False

        collection = SongCollection(genre_matcher=NeverMatcher())
        collection.add_track(_make_track("a", ["rock"]))
        collection.add_track(_make_track("b", ["rock"]))
        assert not collection.are_connected("a", "b")


class TestDerivedViews:
    def test_all_genres_sorted_unique(self, populated_collection):
        assert populated_collection.all_genres() == [
            "blues", "hard rock", "indie rock", "jazz", "polka", "rock", "smooth jazz",
        ]

    def test_connection_stats(self, populated_collection):
        stats = populated_collection.connection_stats()
        # r1-r2, r1-r3 ("indie rock" and "hard rock" do not match), j1-j2
        assert stats.total_connections == 3
        assert stats.avg_connections_per_song == 1.0

    def test_connection_stats_empty(self, collection):
        stats = collection.connection_stats()
        assert stats.total_connections == 0
        assert stats.avg_connections_per_song == 0.0


# ===========================================================================
# Export
# ===========================================================================


class TestExportNodes:
    def test_one_node_per_track(self, populated_collection):
        nodes = populated_collection.export_nodes()
        assert len(nodes) == len(populated_collection)
        assert [n.id for n in nodes] == [t.id for t in populated_collection.tracks]

    def test_nodes_have_zeroed_positions(self, populated_collection):
        for node in populated_collection.export_nodes():
            assert (node.x, node.y) == (0.0, 0.0)

    def test_connections_reference_present_tracks(self, populated_collection):
        ids = {t.id for t in populated_collection.tracks}
        for node in populated_collection.export_nodes():
            assert set(node.connections) <= ids
            assert set(node.connections) == populated_collection.connection_ids(node.id)

    def test_export_is_a_snapshot(self, populated_collection):
        nodes = populated_collection.export_nodes()
        populated_collection.remove_track("r2")
        r1 = next(n for n in nodes if n.id == "r1")
        assert "r2" in r1.connections


# ===========================================================================
# Observers
# ===========================================================================


class TestSubscribe:
    def test_events_published(self, collection, rock_track):
        events = []
        collection.subscribe(events.append)
        collection.add_track(rock_track)
        collection.add_track(rock_track)  # duplicate: no event
        collection.remove_track(rock_track.id)
        collection.remove_track(rock_track.id)  # missing: no event
        collection.clear()
        assert [e.kind for e in events] == [
            CollectionEventKind.ADDED,
            CollectionEventKind.REMOVED,
            CollectionEventKind.CLEARED,
        ]
        assert events[0].track_id == rock_track.id
        assert events[2].track_id is None

    def test_unsubscribe(self, collection, rock_track):
        events = []
        unsubscribe = collection.subscribe(events.append)
        unsubscribe()
        collection.add_track(rock_track)
        assert events == []

    def test_listener_sees_updated_state(self, collection, rock_track):
        seen = []
        collection.subscribe(lambda event: seen.append(len(collection)))
        collection.add_track(rock_track)
        assert seen == [1]
