"""
Track Sources — paginated providers of the user's saved tracks.

A source hands out one TrackPage per call.  ``fetch_page(None)`` returns the
first page; each page carries the cursor for the next one, and the last page
has ``next_cursor=None``.  A source may also raise NoMorePages when asked for
a page past the end.  Any other exception means the library could not be
read and the caller must give up on the current rebuild.

The Spotify source does not authenticate by itself: it is given a callable
that returns a valid access token, so the OAuth flow stays outside this
package.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import requests
from loguru import logger

from .errors import NoMorePages, TrackSourceError
from .models import LibraryTrack, TrackPage


class TrackSource(Protocol):
    def fetch_page(self, cursor: Optional[str]) -> TrackPage:
        ...


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------

class StaticTrackSource:
    """Serves a fixed list of tracks in pages; cursors are stringified offsets."""

    def __init__(self, tracks: Sequence[LibraryTrack], page_size: int = 50) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._tracks = list(tracks)
        self.page_size = page_size
        self.calls = 0

    def fetch_page(self, cursor: Optional[str]) -> TrackPage:
        self.calls += 1
        offset = int(cursor) if cursor else 0
        if offset and offset >= len(self._tracks):
            raise NoMorePages()
        end = offset + self.page_size
        return TrackPage(
            items=self._tracks[offset:end],
            next_cursor=str(end) if end < len(self._tracks) else None,
            offset=offset,
            total=len(self._tracks),
        )


# ---------------------------------------------------------------------------
# Spotify saved tracks
# ---------------------------------------------------------------------------

SAVED_TRACKS_URL = "https://api.spotify.com/v1/me/tracks"
MAX_PAGE_SIZE = 50


def _parse_saved_track(item: Dict[str, Any]) -> Optional[LibraryTrack]:
    track = item.get("track") or {}
    track_id = track.get("id")
    if not track_id:
        # Local files have no id and can never match a playlist entry.
        return None
    return LibraryTrack(
        id=track_id,
        name=track.get("name") or "",
        album=(track.get("album") or {}).get("name") or "",
        artists=[a.get("name") or "" for a in track.get("artists") or []],
        added_at=item.get("added_at"),
    )


def parse_saved_tracks_page(payload: Dict[str, Any]) -> TrackPage:
    """Convert one ``/v1/me/tracks`` response body into a TrackPage."""
    items: List[LibraryTrack] = []
    for raw in payload.get("items") or []:
        track = _parse_saved_track(raw)
        if track is not None:
            items.append(track)
    return TrackPage(
        items=items,
        next_cursor=payload.get("next"),
        offset=payload.get("offset") or 0,
        total=payload.get("total"),
    )


class SpotifySavedTracksSource:
    """Pages through the current user's saved tracks on the Spotify Web API."""

    def __init__(
        self,
        token_provider: Callable[[], str],
        page_size: int = MAX_PAGE_SIZE,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ) -> None:
        self._token_provider = token_provider
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self._session = session or requests.Session()
        self.timeout = timeout

    def fetch_page(self, cursor: Optional[str]) -> TrackPage:
        url = cursor or f"{SAVED_TRACKS_URL}?limit={self.page_size}&offset=0"
        headers = {"Authorization": f"Bearer {self._token_provider()}"}
        logger.debug(f"Fetching saved tracks page {url}")

        try:
            response = self._session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TrackSourceError(f"Spotify request failed for {url}: {exc}") from exc

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TrackSourceError(
                f"Spotify request returned an error for {url}: status={response.status_code}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TrackSourceError(f"Spotify returned a non-JSON body for {url}") from exc

        return parse_saved_tracks_page(payload)
