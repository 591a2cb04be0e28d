"""Shared test fixtures for genre_graph."""

import pytest

from genre_graph.core.models import LayoutSettings, Track
from genre_graph.graph.collection import SongCollection
from genre_graph.graph.layout import LayoutEngine


def make_track(track_id: str, genres=None, title=None, artist="Artist") -> Track:
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artist=artist,
        genres=genres if genres is not None else ["rock"],
    )


@pytest.fixture
def indie_rock_track():
    """An indie rock track: connects to plain rock."""
    return make_track("t-indie", ["indie rock", "shoegaze"], title="Only Shallow")


@pytest.fixture
def rock_track():
    return make_track("t-rock", ["rock"], title="Paranoid Android")


@pytest.fixture
def jazz_track():
    return make_track("t-jazz", ["jazz"], title="So What")


@pytest.fixture
def metal_track():
    return make_track("t-metal", ["metal"], title="Master of Puppets")


@pytest.fixture
def collection():
    return SongCollection()


@pytest.fixture
def fast_settings():
    """Small, reproducible layout settings for tests."""
    return LayoutSettings(
        iterations=60,
        incremental_iterations=20,
        animation_steps=4,
        frame_interval=0.0,
        seed=7,
    )


@pytest.fixture
def engine(fast_settings):
    return LayoutEngine(settings=fast_settings)


@pytest.fixture
def populated_collection():
    """Two genre clusters plus an isolated track."""
    c = SongCollection()
    for track in [
        make_track("r1", ["rock"]),
        make_track("r2", ["indie rock"]),
        make_track("r3", ["hard rock", "blues"]),
        make_track("j1", ["jazz"]),
        make_track("j2", ["smooth jazz"]),
        make_track("x1", ["polka"]),
    ]:
        c.add_track(track)
    return c
