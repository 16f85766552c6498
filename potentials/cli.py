"""
potentials-library — inspect and refresh the cached saved-track library.

Usage:
    potentials-library                          # restore or rebuild the cache
    potentials-library --no-cache               # ignore library.json, rebuild from Spotify
    potentials-library --id 4uLU6hMCjMI75M1A2tKUQC
    potentials-library --song "Song A" --album X --artist Bob --artist Ann
    potentials-library --duplicates playlist.json
    potentials-library --offline tracks.json    # use a JSON track list instead of Spotify
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from .config import PotentialsConfig, load_config, resolve_config_path
from .duplicates import find_duplicates, track_summary
from .errors import ConfigError, PotentialsError
from .library_service import LibraryService
from .models import LibraryTrack
from .track_source import SpotifySavedTracksSource, StaticTrackSource, TrackSource

GREEN  = "\033[0;32m"
YELLOW = "\033[1;33m"
RED    = "\033[0;31m"
BOLD   = "\033[1m"
NC     = "\033[0m"

_TRACK_LIST = TypeAdapter(List[LibraryTrack])


def _read_track_list(path: str) -> List[LibraryTrack]:
    return _TRACK_LIST.validate_json(Path(path).read_text(encoding="utf-8"))


def _build_source(cfg: PotentialsConfig, offline: Optional[str]) -> TrackSource:
    if offline:
        return StaticTrackSource(_read_track_list(offline))

    token = cfg.access_token()
    if not token:
        raise ConfigError(
            "No Spotify access token configured. Set SPOTIFY_ACCESS_TOKEN or "
            "spotify.accessToken, or pass --offline."
        )
    return SpotifySavedTracksSource(lambda: token)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="potentials-library",
        description="Restore, rebuild and query the cached saved-track library.",
    )
    parser.add_argument("--config", default=None,
                        help=f"Path to YAML config file (default: {resolve_config_path()})")
    parser.add_argument("--no-cache", action="store_true",
                        help="Invalidate library.json and rebuild the library from scratch")
    parser.add_argument("--offline", metavar="FILE", default=None,
                        help="Read the library from a JSON list of tracks instead of Spotify")
    parser.add_argument("--dump-tree", action="store_true",
                        help="Print every search string in the prefix tree")
    parser.add_argument("--id", dest="track_id", default=None, help="Look up a saved track by id")
    parser.add_argument("--song", default=None, help="Song name for a name/album/artist lookup")
    parser.add_argument("--album", default="", help="Album name for a name/album/artist lookup")
    parser.add_argument("--artist", action="append", default=[],
                        help="Artist name for a name/album/artist lookup (repeatable)")
    parser.add_argument("--duplicates", metavar="FILE", default=None,
                        help="Report which tracks of a JSON track list are already saved")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    try:
        cfg = load_config(args.config)
        source = _build_source(cfg, args.offline)
    except (PotentialsError, OSError, ValidationError) as e:
        print(f"{RED}ERROR:{NC} {e}", file=sys.stderr)
        return 1

    service = LibraryService(
        source,
        cache_dir=cfg.cache.cache_dir,
        lifetime=cfg.cache.lifetime,
        use_snapshot=not args.no_cache,
    )

    try:
        service.ready_library()
    except Exception as e:
        print(f"{RED}ERROR:{NC} could not load the library: {e}", file=sys.stderr)
        return 1

    index = service.library_index
    print(f"{GREEN}✓{NC} {len(index)} saved tracks "
          f"(fresh until {index.eviction_time.isoformat()})")

    if args.dump_tree:
        for word in sorted(service.dump_tree()):
            print(f"  {word}")

    if args.track_id:
        track = service.get_by_id(args.track_id)
        if track is None:
            print(f"  {YELLOW}not found:{NC} {args.track_id}")
        else:
            print(f"  {track_summary(track)}")

    if args.song is not None:
        matches = service.get_by_song_album_artist_names(args.song, args.album, args.artist)
        print(f"{BOLD}{len(matches)} match(es){NC}")
        for track in matches:
            print(f"  {track_summary(track)}")

    if args.duplicates:
        try:
            candidates = _read_track_list(args.duplicates)
        except (OSError, ValidationError) as e:
            print(f"{RED}ERROR:{NC} {e}", file=sys.stderr)
            return 1
        duplicates = find_duplicates(candidates, service, aggressive=cfg.duplicates.aggressive)
        print(f"{BOLD}Found {len(duplicates)} duplicate track(s).{NC}")
        for track in duplicates:
            print(f"  [DUPLICATE] {track_summary(track)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
