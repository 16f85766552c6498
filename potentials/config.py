"""
Configuration for potentials

Read from a YAML file laid out like::

    spotify:
      user: someone
      potentialsPlaylistID: 37i9dQZF1DX0XUsuxWHRQd
      accessToken: ...
    duplicates:
      aggressive: false
    cache:
      lifetimeNs: 86400000000000
      cacheDir: .data/cache

Durations are nanoseconds.  Every key is optional.  The config path can be
overridden with POTENTIALS_CONFIG_PATH and the Spotify token with
SPOTIFY_ACCESS_TOKEN.
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_CACHE_DIR = ".data/cache"
ONE_DAY_NS = 24 * 60 * 60 * 1_000_000_000


class CacheConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lifetime_ns: int = Field(ONE_DAY_NS, ge=0, alias="lifetimeNs", description="Library cache lifetime in nanoseconds")
    cache_dir: str = Field(DEFAULT_CACHE_DIR, alias="cacheDir", description="Directory holding library.json")

    @property
    def lifetime(self) -> timedelta:
        return timedelta(microseconds=self.lifetime_ns // 1000)


class DuplicatesConfig(BaseModel):
    """
    Duplicate detection behaviour.

    With ``aggressive`` enabled, a track also counts as a duplicate when a
    saved track has the same song name, album name and artist names.  Tracks
    are only matched by id otherwise.
    """

    aggressive: bool = False


class SpotifyConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: Optional[str] = None
    potentials_playlist_id: Optional[str] = Field(None, alias="potentialsPlaylistID")
    access_token: Optional[str] = Field(None, alias="accessToken")


class PotentialsConfig(BaseModel):
    spotify: SpotifyConfig = Field(default_factory=SpotifyConfig)
    duplicates: DuplicatesConfig = Field(default_factory=DuplicatesConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    def access_token(self) -> Optional[str]:
        """SPOTIFY_ACCESS_TOKEN from the environment, else the configured token."""
        return os.environ.get("SPOTIFY_ACCESS_TOKEN") or self.spotify.access_token


def resolve_config_path() -> Path:
    env_override = os.environ.get("POTENTIALS_CONFIG_PATH")
    if env_override:
        return Path(env_override).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Union[str, Path, None] = None) -> PotentialsConfig:
    """
    Load configuration from a YAML file.

    A missing file yields the defaults.  Unparseable YAML or invalid values
    raise ConfigError.
    """
    path = Path(path) if path is not None else resolve_config_path()
    if not path.is_file():
        logger.info(f"Config file {path} not found, using defaults.")
        return PotentialsConfig()

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    try:
        return PotentialsConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc
