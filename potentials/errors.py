"""
Exceptions raised by the potentials library core.
"""


class PotentialsError(Exception):
    """Base class for every error raised by potentials."""


class LibraryIndexCreateError(PotentialsError):
    """The on-disk library snapshot is missing, unreadable, corrupt or expired."""


class TrackSourceError(PotentialsError):
    """The remote track source failed while paging through the library."""


class NoMorePages(PotentialsError):
    """Raised by a track source when the last page has already been returned."""


class ConfigError(PotentialsError):
    """The configuration file could not be parsed or holds invalid values."""
