"""Catalog client: track search enriched with every artist's genres.

Search track -> fetch genres of ALL its artists -> merge into a Track.
Failures never propagate: searches degrade to an empty list and artist
lookups to the "unknown" genre.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

import requests

from genre_graph.catalog.auth import ClientCredentialsAuth
from genre_graph.core.errors import CatalogError, GenreGraphError
from genre_graph.core.models import UNKNOWN_GENRE, CatalogSettings, Track

logger = logging.getLogger(__name__)

# Failures that degrade to an empty or default result
_RECOVERABLE = (
    GenreGraphError,
    requests.RequestException,
    AttributeError,
    KeyError,
    TypeError,
    ValueError,
)


class CatalogClient:
    """Searches the catalog and returns Tracks with merged genres."""

    def __init__(
        self,
        settings: CatalogSettings | None = None,
        auth: ClientCredentialsAuth | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings or CatalogSettings.from_env()
        self.session = session or requests.Session()
        self.auth = auth or ClientCredentialsAuth(self.settings, self.session)
        self._artist_genres: OrderedDict[str, list[str]] = OrderedDict()

    def search(self, query: str, limit: int = 5) -> list[Track]:
        """Search tracks by free text. Empty list on blank query or error."""
        query = query.strip()
        if not query:
            return []

        params = {
            "q": query,
            "type": "track",
            "limit": str(limit),
            "market": self.settings.market,
        }
        try:
            payload = self._get("/search", params=params)
            items = payload["tracks"]["items"]
            tracks = [self._enrich(item) for item in items]
        except _RECOVERABLE:
            logger.exception("Search failed for %r", query)
            return []

        logger.info("Search %r returned %d tracks", query, len(tracks))
        return tracks

    def get_track(self, track_id: str) -> Track | None:
        """Fetch one track with its genres, or None on error."""
        try:
            return self._enrich(self._get(f"/tracks/{track_id}"))
        except _RECOVERABLE:
            logger.exception("Failed to get track %s", track_id)
            return None

    def get_artist_genres(self, artist_id: str) -> list[str]:
        """Genres of an artist; ["unknown"] if the lookup fails."""
        cached = self._artist_genres.get(artist_id)
        if cached is not None:
            self._artist_genres.move_to_end(artist_id)
            return list(cached)
        try:
            payload = self._get(f"/artists/{artist_id}")
            genres = [str(genre) for genre in payload.get("genres") or []]
        except _RECOVERABLE as exc:
            logger.warning("Failed to get genres for artist %s: %s", artist_id, exc)
            return [UNKNOWN_GENRE]
        self._artist_genres[artist_id] = genres
        while len(self._artist_genres) > self.settings.artist_cache_size:
            self._artist_genres.popitem(last=False)
        return list(genres)

    def clear_cache(self) -> None:
        """Forget every memoized artist genre list."""
        self._artist_genres.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get(self, path: str, params: dict | None = None) -> dict:
        self.auth.authenticate()
        url = f"{self.settings.api_base}{path}"
        response = self.session.get(
            url, params=params, auth=self.auth, timeout=self.settings.timeout
        )
        if response.status_code == 401:
            logger.info("Access token rejected, refreshing once")
            self.auth.force_refresh()
            response = self.session.get(
                url, params=params, auth=self.auth, timeout=self.settings.timeout
            )
        response.raise_for_status()
        return response.json()

    def _enrich(self, item: dict) -> Track:
        artists = item.get("artists") or []
        if not artists:
            raise CatalogError(f"Track {item.get('id')} has no artists")

        genres: list[str] = []
        for artist in artists:
            genres.extend(self.get_artist_genres(artist["id"]))

        return Track(
            id=item["id"],
            title=item["name"],
            artist=", ".join(artist["name"] for artist in artists),
            artist_id=artists[0]["id"],
            genres=genres,
        )
