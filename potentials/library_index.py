"""
Library Index — in-memory cache of the user's saved tracks.

Tracks are kept in a dict keyed by track id for exact lookups.  Every track is
also reduced to a composite search string (song name, album name, sorted
artist names) that is added to a PrefixTree, so "is there already a track
called X on album Y by Z" can be rejected without scanning the whole library.

The index is rebuilt as a whole: it has a single eviction time and there are
no element-wise evictions.  The snapshot helpers at the bottom of this module
persist the tracks and the eviction time as JSON; the tree is never written
to disk, it is rebuilt from the tracks on load.

Usage:
    index = LibraryIndex(lifetime=timedelta(days=1))
    for track in tracks:
        index.index_track(track.id, track)
    index.mark_fresh()
    index.get_by_id("4uLU6hMCjMI75M1A2tKUQC")
    index.get_by_song_album_artist_names("Song A", "X", ["Bob", "Ann"])
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from loguru import logger

from .errors import LibraryIndexCreateError
from .models import LibrarySnapshot, LibraryTrack
from .prefix_tree import PrefixTree

Clock = Callable[[], datetime]

DEFAULT_LIFETIME = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Composite search key
# ---------------------------------------------------------------------------

def track_index_string(track_name: str, album_name: str, artist_names: Iterable[str]) -> str:
    """
    Build the search string "[TrackName][AlbumName][ArtistNames...]".

    Artist names are sorted so that the same track fetched with a different
    artist order maps to the same string.  No delimiter is inserted, so
    ("AB", "C") and ("A", "BC") collide; the tree is only a pre-filter and
    the exact scan in ``get_by_song_album_artist_names`` tells them apart.
    """
    return track_name + album_name + "".join(sorted(artist_names))


def track_key(track: LibraryTrack) -> str:
    return track_index_string(track.name, track.album, track.artists)


# ---------------------------------------------------------------------------
# LibraryIndex
# ---------------------------------------------------------------------------

class LibraryIndex:
    """
    Tracks by id plus a prefix tree of every track's search string.

    The tree is append-only: re-indexing a track id with different metadata
    replaces the record but leaves the old search string in the tree.
    """

    def __init__(self, lifetime: timedelta = DEFAULT_LIFETIME, clock: Clock = utcnow) -> None:
        self._clock = clock
        self.lifetime = lifetime
        self._by_id: Dict[str, LibraryTrack] = {}
        self._search_tree = PrefixTree()
        # Stale until mark_fresh() is called once the rebuild is complete.
        self.eviction_time: datetime = clock()

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def index_track(self, track_id: str, track: LibraryTrack) -> None:
        """Store ``track`` under ``track_id`` and add its search string to the tree."""
        self._by_id[track_id] = track
        self._search_tree.add(track_key(track))

    def index_tracks(self, tracks: Iterable[LibraryTrack]) -> int:
        count = 0
        for track in tracks:
            self.index_track(track.id, track)
            count += 1
        return count

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def is_fresh(self) -> bool:
        return self._clock() < self.eviction_time

    def mark_fresh(self) -> None:
        """Push the eviction time one lifetime into the future."""
        self.eviction_time = self._clock() + self.lifetime

    def expire(self) -> None:
        self.eviction_time = self._clock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_by_id(self, track_id: str) -> Optional[LibraryTrack]:
        return self._by_id.get(track_id)

    def get_by_song_album_artist_names(
        self,
        song_name: str,
        album_name: str,
        artist_names: Iterable[str],
    ) -> List[LibraryTrack]:
        """
        Return every track whose name, album name and set of artist names
        match exactly (case-sensitive).

        The prefix tree only proves absence: if the search string is not in
        the tree the answer is empty; otherwise the whole index is scanned.
        """
        artist_names = list(artist_names)
        if not self._search_tree.contains(track_index_string(song_name, album_name, artist_names)):
            return []

        wanted: Set[str] = set(artist_names)
        return [
            t for t in self._by_id.values()
            if t.name == song_name and t.album == album_name and set(t.artists) == wanted
        ]

    def tracks(self) -> List[LibraryTrack]:
        return list(self._by_id.values())

    def dump_tree(self) -> Set[str]:
        return self._search_tree.words()

    @property
    def search_tree(self) -> PrefixTree:
        return self._search_tree

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, track_id: str) -> bool:
        return track_id in self._by_id

    # ------------------------------------------------------------------
    # Snapshot conversion
    # ------------------------------------------------------------------

    def to_snapshot(self) -> LibrarySnapshot:
        return LibrarySnapshot(expiration=self.eviction_time, tracks=self.tracks())

    @classmethod
    def from_snapshot(
        cls,
        snapshot: LibrarySnapshot,
        lifetime: timedelta = DEFAULT_LIFETIME,
        clock: Clock = utcnow,
    ) -> "LibraryIndex":
        """Rebuild an index (tree included) from a snapshot, keeping its expiration."""
        index = cls(lifetime=lifetime, clock=clock)
        index.index_tracks(snapshot.tracks)
        index.eviction_time = snapshot.expiration
        return index

    # ------------------------------------------------------------------
    # Repr
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        status = "fresh" if self.is_fresh() else "stale"
        return f"LibraryIndex({len(self._by_id)} tracks, {status}, evicts={self.eviction_time.isoformat()})"


# ---------------------------------------------------------------------------
# Snapshot persistence
# ---------------------------------------------------------------------------

def load_snapshot(path: Path, now: Optional[datetime] = None) -> LibrarySnapshot:
    """
    Read and validate the snapshot at ``path``.

    Raises LibraryIndexCreateError if the file is missing, cannot be decoded,
    or has already expired.
    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise LibraryIndexCreateError(f"Cannot read library snapshot {path}: {exc}") from exc

    try:
        snapshot = LibrarySnapshot.model_validate_json(raw)
    except ValueError as exc:
        raise LibraryIndexCreateError(f"Corrupt library snapshot {path}: {exc}") from exc

    if snapshot.is_expired(now or utcnow()):
        raise LibraryIndexCreateError(
            f"Library snapshot {path} expired at {snapshot.expiration.isoformat()}"
        )
    return snapshot


def write_snapshot(path: Path, snapshot: LibrarySnapshot) -> int:
    """
    Atomically write ``snapshot`` to ``path``, creating the directory first.

    Writes to a ``.tmp`` sibling, then uses ``Path.replace()`` for an atomic
    rename.  Returns the number of tracks written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    payload = snapshot.model_dump(mode="json")
    tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)
    logger.debug(f"Library snapshot of {len(snapshot.tracks)} tracks written → {path}")
    return len(snapshot.tracks)
