"""Tests for the paginated track sources."""

from unittest.mock import MagicMock

import pytest
import requests
from potentials.errors import NoMorePages, TrackSourceError
from potentials.models import LibraryTrack
from potentials.track_source import (
    SAVED_TRACKS_URL,
    SpotifySavedTracksSource,
    StaticTrackSource,
    parse_saved_tracks_page,
)


def saved_item(id, name="Song", album="Album", artists=("Bob",), added_at="2024-01-01T00:00:00Z"):
    return {
        "added_at": added_at,
        "track": {
            "id": id,
            "name": name,
            "album": {"name": album},
            "artists": [{"name": a} for a in artists],
        },
    }


def make_response(payload=None, status=200, json_error=False):
    response = MagicMock()
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


class TestStaticTrackSource:
    def test_pages(self):
        tracks = [LibraryTrack(id=str(i), name=f"S{i}") for i in range(5)]
        source = StaticTrackSource(tracks, page_size=2)
        first = source.fetch_page(None)
        assert [t.id for t in first.items] == ["0", "1"]
        assert first.next_cursor == "2"
        assert first.total == 5
        last = source.fetch_page("4")
        assert [t.id for t in last.items] == ["4"]
        assert last.next_cursor is None

    def test_past_the_end_raises(self):
        source = StaticTrackSource([LibraryTrack(id="1", name="S")], page_size=1)
        with pytest.raises(NoMorePages):
            source.fetch_page("1")

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            StaticTrackSource([], page_size=0)


class TestParseSavedTracksPage:
    def test_parses_items(self):
        page = parse_saved_tracks_page({
            "items": [saved_item("a", name="One", album="LP", artists=["Bob", "Ann"])],
            "next": "https://api.spotify.com/v1/me/tracks?offset=50&limit=50",
            "offset": 0,
            "total": 120,
        })
        track = page.items[0]
        assert track.id == "a"
        assert track.name == "One"
        assert track.album == "LP"
        assert track.artists == ["Bob", "Ann"]
        assert track.added_at == "2024-01-01T00:00:00Z"
        assert page.next_cursor.endswith("offset=50&limit=50")
        assert page.total == 120

    def test_skips_local_tracks(self):
        page = parse_saved_tracks_page({"items": [saved_item(None), saved_item("b")], "next": None})
        assert [t.id for t in page.items] == ["b"]
        assert page.next_cursor is None

    def test_empty_payload(self):
        page = parse_saved_tracks_page({})
        assert page.items == []
        assert page.next_cursor is None
        assert page.offset == 0


class TestSpotifySavedTracksSource:
    def test_first_page_request(self):
        session = MagicMock()
        session.get.return_value = make_response({"items": [saved_item("a")], "next": None})
        source = SpotifySavedTracksSource(lambda: "tok", session=session)

        page = source.fetch_page(None)

        url = session.get.call_args.args[0]
        assert url.startswith(SAVED_TRACKS_URL)
        assert "limit=50" in url
        assert session.get.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert [t.id for t in page.items] == ["a"]

    def test_follows_cursor(self):
        session = MagicMock()
        session.get.return_value = make_response({"items": [], "next": None})
        source = SpotifySavedTracksSource(lambda: "tok", session=session)
        source.fetch_page("https://next.example/page2")
        assert session.get.call_args.args[0] == "https://next.example/page2"

    def test_page_size_clamped(self):
        source = SpotifySavedTracksSource(lambda: "tok", page_size=500, session=MagicMock())
        assert source.page_size == 50

    def test_http_error(self):
        session = MagicMock()
        session.get.return_value = make_response(status=401)
        source = SpotifySavedTracksSource(lambda: "tok", session=session)
        with pytest.raises(TrackSourceError, match="status=401"):
            source.fetch_page(None)

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("down")
        source = SpotifySavedTracksSource(lambda: "tok", session=session)
        with pytest.raises(TrackSourceError):
            source.fetch_page(None)

    def test_non_json_body(self):
        session = MagicMock()
        session.get.return_value = make_response(json_error=True)
        source = SpotifySavedTracksSource(lambda: "tok", session=session)
        with pytest.raises(TrackSourceError, match="non-JSON"):
            source.fetch_page(None)
