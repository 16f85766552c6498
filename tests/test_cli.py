"""Tests for the potentials-library command line."""

import json

import pytest
from potentials.cli import main


def write_tracks(path, tracks):
    path.write_text(json.dumps(tracks), encoding="utf-8")
    return path


@pytest.fixture
def offline(tmp_path):
    return write_tracks(tmp_path / "library.json.src", [
        {"id": "1", "name": "Song A", "album": "X", "artists": ["Bob", "Ann"]},
        {"id": "2", "name": "Song B", "album": "Y", "artists": ["Cid"]},
    ])


@pytest.fixture
def config(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(f"cache:\n  cacheDir: {tmp_path / 'cache'}\nduplicates:\n  aggressive: true\n")
    return p


class TestMain:
    def test_builds_cache_offline(self, offline, config, tmp_path, capsys):
        assert main(["--config", str(config), "--offline", str(offline)]) == 0
        assert "2 saved tracks" in capsys.readouterr().out
        assert (tmp_path / "cache" / "library.json").exists()

    def test_lookup_by_id(self, offline, config, capsys):
        assert main(["--config", str(config), "--offline", str(offline), "--id", "2"]) == 0
        assert "Song B, Cid, on Y, Track ID: 2" in capsys.readouterr().out

    def test_composite_lookup(self, offline, config, capsys):
        argv = ["--config", str(config), "--offline", str(offline),
                "--song", "Song A", "--album", "X", "--artist", "Ann", "--artist", "Bob"]
        assert main(argv) == 0
        assert "1 match(es)" in capsys.readouterr().out

    def test_dump_tree(self, offline, config, capsys):
        assert main(["--config", str(config), "--offline", str(offline), "--dump-tree"]) == 0
        out = capsys.readouterr().out
        assert "Song AXAnnBob" in out
        assert "Song BYCid" in out

    def test_duplicates_use_config_aggressiveness(self, offline, config, tmp_path, capsys):
        candidates = write_tracks(tmp_path / "candidates.json", [
            {"id": "99", "name": "Song A", "album": "X", "artists": ["Ann", "Bob"]},
            {"id": "100", "name": "Other", "album": "X", "artists": ["Bob"]},
        ])
        argv = ["--config", str(config), "--offline", str(offline), "--duplicates", str(candidates)]
        assert main(argv) == 0
        assert "Found 1 duplicate track(s)." in capsys.readouterr().out

    def test_missing_token_fails(self, config, monkeypatch, capsys):
        monkeypatch.delenv("SPOTIFY_ACCESS_TOKEN", raising=False)
        assert main(["--config", str(config)]) == 1
        assert "No Spotify access token" in capsys.readouterr().err

    def test_bad_offline_file_fails(self, config, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")
        assert main(["--config", str(config), "--offline", str(bad)]) == 1
