"""Pydantic v2 data models: tracks, layout nodes and settings."""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

UNKNOWN_GENRE = "unknown"

# ---------------------------------------------------------------------------
# Track (central entity)
# ---------------------------------------------------------------------------

class Track(BaseModel):
    """A song returned by the catalog, enriched with its artists' genres."""

    id: str = Field(min_length=1, description="Opaque catalog identifier")
    title: str
    artist: str = Field(description="Artist name, comma-joined for collaborations")
    artist_id: str | None = Field(None, description="Primary artist identifier")
    genres: list[str] = Field(default_factory=list, validate_default=True)
    added_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @field_validator("genres")
    @classmethod
    def _dedupe_genres(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        genres: list[str] = []
        for genre in value:
            genre = genre.strip()
            key = genre.lower()
            if not genre or key in seen:
                continue
            seen.add(key)
            genres.append(genre)
        return genres or [UNKNOWN_GENRE]


# ---------------------------------------------------------------------------
# Graph snapshot
# ---------------------------------------------------------------------------

class LayoutNode(BaseModel):
    """A track plus its canvas position and a copy of its connections."""

    id: str
    track: Track
    x: float = 0.0
    y: float = 0.0
    connections: list[str] = Field(default_factory=list)


class ConnectionStats(BaseModel):
    """Summary of the connection graph."""

    total_connections: int = 0
    avg_connections_per_song: float = 0.0


class CollectionEventKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CLEARED = "cleared"


class CollectionEvent(BaseModel):
    """Published to collection subscribers after each successful mutation."""

    kind: CollectionEventKind
    track_id: str | None = None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class LayoutSettings(BaseModel):
    """User-tunable ForceAtlas2 and canvas parameters."""

    iterations: int = Field(500, ge=1, description="Iterations for a cold layout")
    incremental_iterations: int = Field(100, ge=1, description="Iterations when adding nodes")
    animation_steps: int = Field(50, ge=1)
    padding: float = Field(50.0, ge=0.0, description="Canvas margin in pixels")

    gravity: float = Field(1.0, ge=0.0, description="Pull toward the center")
    scaling_ratio: float = Field(10.0, gt=0.0, description="Repulsion strength")
    strong_gravity_mode: bool = False
    jitter_tolerance: float = Field(1.0, gt=0.0, description="Tolerated swinging before slowing down")
    lin_log_mode: bool = False
    edge_weight_influence: float = Field(1.0, ge=0.0)
    outbound_attraction_distribution: bool = False

    frame_interval: float = Field(1.0 / 60.0, ge=0.0, description="Seconds between animation frames")
    seed: int | None = None


class CatalogSettings(BaseModel):
    """Connection settings for the remote music catalog."""

    client_id: str
    client_secret: str
    api_base: str = "https://api.spotify.com/v1"
    token_url: str = "https://accounts.spotify.com/api/token"
    market: str = "IT"
    timeout: float = Field(15.0, gt=0.0)
    token_refresh_buffer: float = Field(60.0, ge=0.0, description="Seconds before expiry to refresh")
    artist_cache_size: int = Field(512, ge=1, description="Artist genre lists kept in memory")

    @classmethod
    def from_env(cls) -> CatalogSettings:
        """Build settings from GENRE_GRAPH_* environment variables."""
        values = {
            "client_id": os.environ.get("GENRE_GRAPH_CLIENT_ID", ""),
            "client_secret": os.environ.get("GENRE_GRAPH_CLIENT_SECRET", ""),
        }
        market = os.environ.get("GENRE_GRAPH_MARKET")
        if market:
            values["market"] = market
        return cls(**values)
