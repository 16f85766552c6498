"""
Library Service — keeps one LibraryIndex ready for lookups.

Every read first makes sure the index is fresh.  A stale index is replaced,
in this order of preference, by:

1. the snapshot in the cache directory, if it exists, decodes, and has not
   expired yet;
2. a full rebuild from the track source, drained page by page.

After a rebuild from the source the new snapshot is written back to the cache
directory.  Writing is best-effort: if it fails the in-memory index is still
used for the rest of the process lifetime.

States
------
- STALE                   : the index must be rebuilt before the next read.
- RESTORING_FROM_SNAPSHOT : reading the snapshot from the cache directory.
- REBUILDING_FROM_SOURCE  : draining the track source.
- FRESH                   : lookups are served from memory.

FRESH turns back into STALE purely with time; it is only noticed on the next
read, there is no background timer.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from loguru import logger

from .errors import LibraryIndexCreateError, NoMorePages
from .library_index import (
    DEFAULT_LIFETIME,
    Clock,
    LibraryIndex,
    load_snapshot,
    utcnow,
    write_snapshot,
)
from .models import LibraryTrack
from .track_source import TrackSource

DEFAULT_CACHE_NAME = "library.json"


class LibraryState(Enum):
    STALE = "stale"
    RESTORING_FROM_SNAPSHOT = "restoring_from_snapshot"
    REBUILDING_FROM_SOURCE = "rebuilding_from_source"
    FRESH = "fresh"


class LibraryService:
    """
    Owns the library index and rebuilds it on demand.

    Rebuilds are serialised with a lock: when several threads find the index
    stale at the same time, one of them rebuilds and the others wait and
    then read the result.
    """

    def __init__(
        self,
        source: TrackSource,
        cache_dir: Union[str, Path],
        lifetime: timedelta = DEFAULT_LIFETIME,
        cache_name: str = DEFAULT_CACHE_NAME,
        clock: Clock = utcnow,
        use_snapshot: bool = True,
    ) -> None:
        self._source = source
        self.cache_dir = Path(cache_dir)
        self.cache_name = cache_name
        self.lifetime = lifetime
        self._clock = clock
        self._library_index = LibraryIndex(lifetime=lifetime, clock=clock)
        self._state = LibraryState.STALE
        self._skip_snapshot = not use_snapshot
        self._lock = threading.Lock()

    # -- public properties ---------------------------------------------------

    @property
    def cache_path(self) -> Path:
        return self.cache_dir / self.cache_name

    @property
    def state(self) -> LibraryState:
        if self._state is LibraryState.FRESH and not self._library_index.is_fresh():
            return LibraryState.STALE
        return self._state

    @property
    def library_index(self) -> LibraryIndex:
        return self._library_index

    # -- lifecycle -----------------------------------------------------------

    def ready_library(self) -> None:
        """
        Make the index fresh, restoring or rebuilding it if needed.

        Raises whatever the track source raised if a rebuild from the source
        fails; the previous index is kept in that case.
        """
        if self._library_index.is_fresh():
            return

        with self._lock:
            # Another thread may have rebuilt while we waited for the lock.
            if self._library_index.is_fresh():
                return

            if not self._skip_snapshot:
                self._state = LibraryState.RESTORING_FROM_SNAPSHOT
                restored = self._restore_from_snapshot()
                if restored is not None:
                    self._library_index = restored
                    self._state = LibraryState.FRESH
                    return

            self._state = LibraryState.REBUILDING_FROM_SOURCE
            try:
                rebuilt = self._rebuild_from_source()
            except Exception as exc:
                logger.error(f"Failed to rebuild library index from source: {exc}")
                self._state = LibraryState.STALE
                raise

            self._library_index = rebuilt
            self._skip_snapshot = False
            self._state = LibraryState.FRESH
            self.persist_library()

    def invalidate(self) -> None:
        """Expire the index and skip the snapshot on the next rebuild."""
        with self._lock:
            self._library_index.expire()
            self._skip_snapshot = True
            self._state = LibraryState.STALE
        logger.info("Library index invalidated; the next read rebuilds from the source.")

    def persist_library(self) -> bool:
        """Write the current index to the cache directory.  Returns False on failure."""
        try:
            write_snapshot(self.cache_path, self._library_index.to_snapshot())
        except (OSError, ValueError) as exc:
            logger.warning(f"Could not persist library snapshot to {self.cache_path}: {exc}")
            return False
        return True

    # -- lookups -------------------------------------------------------------

    def get_by_id(self, track_id: str) -> Optional[LibraryTrack]:
        """Return the saved track with this id, rebuilding the index if stale."""
        self.ready_library()
        return self._library_index.get_by_id(track_id)

    def get_by_song_album_artist_names(
        self,
        song_name: str,
        album_name: str,
        artist_names: Iterable[str],
    ) -> List[LibraryTrack]:
        """Return all saved tracks with the same song name, album name and artists."""
        self.ready_library()
        return self._library_index.get_by_song_album_artist_names(song_name, album_name, artist_names)

    def dump_tree(self) -> Set[str]:
        self.ready_library()
        return self._library_index.dump_tree()

    # -- internal helpers ----------------------------------------------------

    def _restore_from_snapshot(self) -> Optional[LibraryIndex]:
        try:
            snapshot = load_snapshot(self.cache_path, now=self._clock())
        except LibraryIndexCreateError as exc:
            logger.info(f"No usable library snapshot, rebuilding from source: {exc}")
            return None

        index = LibraryIndex.from_snapshot(snapshot, lifetime=self.lifetime, clock=self._clock)
        logger.info(
            f"Restored library index of {len(index)} tracks from {self.cache_path} "
            f"(expires {snapshot.expiration.isoformat()})"
        )
        return index

    def _rebuild_from_source(self) -> LibraryIndex:
        """Drain the source into a new index.  The live index is not touched."""
        logger.info("Rebuilding library cache index...")
        index = LibraryIndex(lifetime=self.lifetime, clock=self._clock)
        cursor: Optional[str] = None
        while True:
            try:
                page = self._source.fetch_page(cursor)
            except NoMorePages:
                break
            total = page.total if page.total is not None else "?"
            logger.debug(f"Built {page.offset}/{total} tracks...")
            index.index_tracks(page.items)
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        index.mark_fresh()
        logger.info(f"Successfully built library cache of {len(index)} tracks.")
        return index

    def __repr__(self) -> str:
        return f"LibraryService({self.state.value}, index={self._library_index!r}, cache={self.cache_path})"
