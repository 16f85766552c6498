"""
Data Models for the potentials library cache

A saved track is reduced to the handful of fields duplicate detection needs:
its id, its name, its album name and its artist names.  The snapshot model is
the JSON document written to the cache directory after every rebuild.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Track models
# ---------------------------------------------------------------------------

class LibraryTrack(BaseModel):
    """One saved track in the user's library."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable track identifier on the remote service")
    name: str = Field(..., description="Track title")
    album: str = Field("", description="Album name")
    artists: List[str] = Field(default_factory=list, description="Artist names, in the order the service returned them")
    added_at: Optional[str] = Field(None, description="When the track was saved (ISO-8601, as reported by the service)")

    def artist_string(self) -> str:
        return ", ".join(self.artists)


class TrackPage(BaseModel):
    """One page of saved tracks returned by a track source."""

    items: List[LibraryTrack] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, description="Cursor for the following page, None on the last page")
    offset: int = Field(0, ge=0, description="Index of the first item of this page in the full library")
    total: Optional[int] = Field(None, ge=0, description="Total number of saved tracks, when the source knows it")


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class LibrarySnapshot(BaseModel):
    """
    Durable form of a LibraryIndex.

    Only the tracks and the expiration are stored; the prefix tree is rebuilt
    from the tracks when the snapshot is loaded.
    """

    expiration: datetime = Field(..., description="Time after which the snapshot must not be used")
    tracks: List[LibraryTrack] = Field(default_factory=list)

    @field_validator("expiration")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expiration
