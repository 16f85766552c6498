"""
Duplicate detection against the saved-track library.

A candidate (e.g. an entry of a playlist) is a duplicate when the library
already holds a track with the same id.  In aggressive mode a candidate is
also a duplicate when some saved track has the same song name, album name and
set of artist names, which catches re-releases of the same recording under a
different id.
"""

from typing import Iterable, List

from loguru import logger

from .library_service import LibraryService
from .models import LibraryTrack


def track_summary(track: LibraryTrack) -> str:
    """Human-readable one-liner for a track."""
    return f"{track.name}, {track.artist_string()}, on {track.album}, Track ID: {track.id}"


def is_duplicate(candidate: LibraryTrack, service: LibraryService, aggressive: bool = False) -> bool:
    if service.get_by_id(candidate.id) is not None:
        return True
    if not aggressive:
        return False
    matches = service.get_by_song_album_artist_names(candidate.name, candidate.album, candidate.artists)
    return len(matches) > 0


def find_duplicates(
    candidates: Iterable[LibraryTrack],
    service: LibraryService,
    aggressive: bool = False,
) -> List[LibraryTrack]:
    """Return the candidates that already exist in the library, in input order."""
    duplicates = [c for c in candidates if is_duplicate(c, service, aggressive=aggressive)]
    for track in duplicates:
        logger.debug(f"[DUPLICATE] {track_summary(track)}")
    return duplicates
