"""Data models for Discogs Tagger."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ReleaseType(Enum):
    """Kind of Discogs catalog entity."""
    RELEASE = "release"
    MASTER = "master"


class FileFormat(Enum):
    """Supported audio container formats."""
    MP3 = "mp3"
    FLAC = "flac"
    AIFF = "aiff"

    @property
    def uses_id3(self) -> bool:
        return self in (FileFormat.MP3, FileFormat.AIFF)


class Id3GenreMode(Enum):
    """How genres and styles are composed into the single ID3 genre frame."""
    NONE = "none"
    STYLES = "styles"
    GENRES = "genres"
    MERGE = "merge"


class FlacGenreMode(Enum):
    """How genres and styles are written into the FLAC GENRE/STYLE fields."""
    NONE = "none"
    BOTH = "both"
    STYLES_AS_GENRE = "styles_as_genre"
    GENRES = "genres"
    MERGE = "merge"


@dataclass(frozen=True)
class Track:
    """A single track from a Discogs tracklist."""
    title: str
    position: str
    position_int: int
    duration: str = ""
    artists: Optional[List[str]] = None


@dataclass(frozen=True)
class CatalogRecord:
    """A Discogs release or master.

    Records decoded from search hits only carry the summary fields plus
    whatever the hit itself contained (label, year, cover image). Full
    lookups additionally fill artists, tracks and release date.
    """
    id: int
    kind: ReleaseType
    title: str
    country: str = ""
    url: str = ""
    genres: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    artists: Optional[List[str]] = None
    extra_artists: Optional[List[str]] = None
    label: Optional[List[str]] = None
    released: Optional[str] = None
    year: Optional[int] = None
    art_url: Optional[str] = None
    tracks: Optional[List[Track]] = None


@dataclass
class SearchResults:
    """Parsed search response, split by entity kind."""
    releases: List[CatalogRecord] = field(default_factory=list)
    masters: List[CatalogRecord] = field(default_factory=list)
    dropped: int = 0

    def is_empty(self) -> bool:
        return not self.releases and not self.masters


@dataclass(frozen=True)
class LocalFileInfo:
    """Minimal tag information of a discovered audio file."""
    path: str
    title: str
    artists: List[str]
    format: FileFormat


@dataclass(frozen=True)
class TaggingConfig:
    """Which fields to write and how. Fixed for the whole batch run."""
    title: bool = True
    artist: bool = True
    album: bool = True
    label: bool = True
    date: bool = True
    track: bool = True
    art: bool = True
    id3_genre_mode: Id3GenreMode = Id3GenreMode.GENRES
    flac_genre_mode: FlacGenreMode = FlacGenreMode.BOTH
    artist_separator: str = ", "
    fuzziness: int = 80
    overwrite: bool = True
    id3v23: bool = False


@dataclass
class FileTags:
    """Current state of the tag fields managed by this tool."""
    title: Optional[str] = None
    artists: List[str] = field(default_factory=list)
    album: Optional[str] = None
    label: Optional[str] = None
    date: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    track_number: Optional[int] = None
    has_front_cover: bool = False


@dataclass
class ProcessingStats:
    """Statistics for a processing run."""
    total_files: int = 0
    tagged: int = 0
    unmatched: int = 0
    failed: int = 0
    malformed_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
