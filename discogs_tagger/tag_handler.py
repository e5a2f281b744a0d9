"""Tag reading and writing for ID3 (MP3, AIFF) and FLAC files using mutagen."""

from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from mutagen import MutagenError
from mutagen.aiff import AIFF
from mutagen.flac import FLAC, Picture
from mutagen.id3 import (
    ID3, ID3NoHeaderError, APIC, PictureType,
    TALB, TCON, TDAT, TDRC, TIT2, TPE1, TPUB, TRCK, TYER,
)

from discogs_tagger.config import eprint
from discogs_tagger.discogs_client import DiscogsClient, DiscogsClientError
from discogs_tagger.models import (
    CatalogRecord, FileFormat, FileTags, FlacGenreMode, Id3GenreMode,
    LocalFileInfo, TaggingConfig, Track,
)
from discogs_tagger.utils import clean_artist, parse_artist_tag

ID3_GENRE_SEPARATOR = ", "
ART_MIME = "image/jpeg"
ART_DESCRIPTION = "Cover"


class TagError(Exception):
    """Raised when a file's tags can't be read."""


class MissingTagError(TagError):
    """Raised when a file lacks the title or artist needed for matching."""


class TagWriteError(TagError):
    """Raised when tags can't be written back to a file."""


def compose_id3_genre(record: CatalogRecord, mode: Id3GenreMode) -> List[str]:
    """Genre values for the single ID3 genre frame."""
    if mode == Id3GenreMode.STYLES:
        return sorted(record.styles)
    if mode == Id3GenreMode.GENRES:
        return sorted(record.genres)
    if mode == Id3GenreMode.MERGE:
        return sorted(set(record.genres) | set(record.styles))
    return []


def compose_flac_genres(record: CatalogRecord,
                        mode: FlacGenreMode) -> Dict[str, List[str]]:
    """Values per FLAC field ('genre', 'style') for the given mode."""
    if mode == FlacGenreMode.BOTH:
        return {"genre": sorted(record.genres), "style": sorted(record.styles)}
    if mode == FlacGenreMode.STYLES_AS_GENRE:
        return {"genre": sorted(record.styles)}
    if mode == FlacGenreMode.GENRES:
        return {"genre": sorted(record.genres)}
    if mode == FlacGenreMode.MERGE:
        return {"genre": sorted(set(record.genres) | set(record.styles))}
    return {}


def resolve_artists(record: CatalogRecord, track: Track) -> List[str]:
    """Track artists override release artists; disambiguation is stripped."""
    artists = track.artists or record.artists or []
    return [clean_artist(a) for a in artists]


def resolve_label(record: CatalogRecord) -> Optional[str]:
    if record.label:
        return clean_artist(record.label[0])
    return None


def resolve_date(record: CatalogRecord) -> Tuple[Optional[int], Optional[date]]:
    """
    Work out the release year and, if known, the exact day.

    Returns:
        (year, day) tuple; day is None unless 'released' is a valid YYYY-MM-DD
    """
    day = None
    released = record.released or ""
    if len(released) == 10:
        try:
            day = datetime.strptime(released, "%Y-%m-%d").date()
        except ValueError:
            day = None

    year = record.year
    if year is None and released[:4].isdigit():
        year = int(released[:4])
    if day is not None:
        year = day.year
    return year, day


class TagHandler:
    """Handles reading and writing tags using mutagen."""

    SUPPORTED_EXTENSIONS = {
        ".mp3": FileFormat.MP3,
        ".flac": FileFormat.FLAC,
        ".aiff": FileFormat.AIFF,
        ".aif": FileFormat.AIFF,
    }

    def __init__(self, client: Optional[DiscogsClient] = None):
        """
        Initialize tag handler.

        Args:
            client: Discogs client used to download cover art
        """
        self.client = client

    @classmethod
    def is_supported(cls, file_path: str) -> bool:
        """Check if file format is supported."""
        return Path(file_path).suffix.lower() in cls.SUPPORTED_EXTENSIONS

    @classmethod
    def get_format(cls, file_path: str) -> Optional[FileFormat]:
        """Get audio format from file extension."""
        return cls.SUPPORTED_EXTENSIONS.get(Path(file_path).suffix.lower())

    # Reading

    def read_file_info(self, file_path: str) -> LocalFileInfo:
        """
        Read the title and artists needed for matching.

        Args:
            file_path: Path to audio file

        Returns:
            LocalFileInfo for the file

        Raises:
            MissingTagError: title or artist tag is absent
            TagError: unsupported or unreadable file
        """
        file_format = self.get_format(file_path)
        if file_format is None:
            raise TagError(f"Unsupported format: {file_path}")

        tags = self.read_tags(file_path, file_format)
        if not tags.title:
            raise MissingTagError(f"Missing title tag: {file_path}")

        # A single value may hold several artists, multiple values are kept as-is
        if len(tags.artists) == 1:
            artists = parse_artist_tag(tags.artists[0])
        else:
            artists = [a.strip() for a in tags.artists if a.strip()]
        if not artists:
            raise MissingTagError(f"Missing artist tag: {file_path}")

        return LocalFileInfo(
            path=file_path,
            title=tags.title,
            artists=artists,
            format=file_format,
        )

    def read_tags(self, file_path: str,
                  file_format: Optional[FileFormat] = None) -> FileTags:
        """
        Read the managed tag fields from an audio file.

        Args:
            file_path: Path to audio file
            file_format: Format, detected from the extension if omitted

        Returns:
            FileTags with current values
        """
        file_format = file_format or self.get_format(file_path)
        if file_format is None:
            raise TagError(f"Unsupported format: {file_path}")

        try:
            if file_format.uses_id3:
                _, tags = self._load_id3(file_path, file_format)
                return self._read_id3_tags(tags)
            return self._read_flac_tags(FLAC(file_path))
        except (MutagenError, OSError) as e:
            raise TagError(f"Can't read tags from {file_path}: {e}") from e

    def _load_id3(self, file_path: str, file_format: FileFormat):
        """Load ID3 tags through the right container; returns (container, tags)."""
        if file_format == FileFormat.AIFF:
            audio = AIFF(file_path)
            if audio.tags is None:
                audio.add_tags()
            return audio, audio.tags
        try:
            return None, ID3(file_path)
        except ID3NoHeaderError:
            return None, ID3()

    def _read_id3_tags(self, tags: ID3) -> FileTags:
        date_str = self._get_tag_str(tags, "TDRC") or self._get_tag_str(tags, "TYER")
        track_num, _total = self._parse_track_disc(self._get_tag_str(tags, "TRCK") or "")
        artist_frame = tags.get("TPE1")
        genre_frame = tags.get("TCON")

        return FileTags(
            title=self._get_tag_str(tags, "TIT2"),
            artists=[str(a) for a in artist_frame.text] if artist_frame else [],
            album=self._get_tag_str(tags, "TALB"),
            label=self._get_tag_str(tags, "TPUB"),
            date=date_str,
            # Kept whole, Discogs genres may contain ", " themselves
            genres=[str(g) for g in genre_frame.text] if genre_frame else [],
            track_number=track_num,
            has_front_cover=self._id3_has_front_cover(tags),
        )

    def _read_flac_tags(self, audio: FLAC) -> FileTags:
        tags = audio.tags or {}
        track_num, _total = self._parse_track_disc(
            tags.get("tracknumber", [""])[0]
        )

        return FileTags(
            title=tags.get("title", [None])[0],
            artists=list(tags.get("artist", [])),
            album=tags.get("album", [None])[0],
            label=tags.get("label", [None])[0],
            date=tags.get("date", [None])[0],
            genres=list(tags.get("genre", [])),
            styles=list(tags.get("style", [])),
            track_number=track_num,
            has_front_cover=self._flac_has_front_cover(audio),
        )

    # Writing

    @staticmethod
    def _should_write(config: TaggingConfig, enabled: bool, present: bool) -> bool:
        """Write an enabled field unless it's already set and overwrite is off."""
        return enabled and (config.overwrite or not present)

    def write_tags(self, config: TaggingConfig, info: LocalFileInfo,
                   record: CatalogRecord, track: Track) -> None:
        """
        Write resolved metadata to a file.

        Args:
            config: Tagging options
            info: File to write
            record: Full Discogs record
            track: Matched track from the record

        Raises:
            TagWriteError: the file couldn't be read or saved
        """
        try:
            if info.format.uses_id3:
                self._write_id3_tags(config, info, record, track)
            else:
                self._write_flac_tags(config, info.path, record, track)
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Error writing tags to {info.path}: {e}") from e

    def _fetch_art(self, record: CatalogRecord) -> Optional[bytes]:
        """Download cover art; failures are reported and yield None."""
        if self.client is None:
            eprint("No Discogs client available, skipping album art")
            return None
        try:
            return self.client.download_art(record.art_url)
        except DiscogsClientError as e:
            eprint(f"Error downloading album art, ignoring: {e}")
            return None

    def _write_id3_tags(self, config: TaggingConfig, info: LocalFileInfo,
                        record: CatalogRecord, track: Track) -> None:
        container, tags = self._load_id3(info.path, info.format)

        # Title and artist are always overwritten once a match exists
        if config.title:
            tags.setall("TIT2", [TIT2(encoding=3, text=track.title)])
        if config.artist:
            artists = resolve_artists(record, track)
            if artists:
                tags.setall("TPE1", [TPE1(encoding=3, text=config.artist_separator.join(artists))])

        if self._should_write(config, config.album, "TALB" in tags):
            tags.setall("TALB", [TALB(encoding=3, text=record.title)])

        label = resolve_label(record)
        if label and self._should_write(config, config.label, "TPUB" in tags):
            tags.setall("TPUB", [TPUB(encoding=3, text=label)])

        has_date = any(key in tags for key in ("TDRC", "TYER", "TDAT"))
        if self._should_write(config, config.date, has_date):
            self._write_id3_date(tags, record, config.id3v23)

        genres = compose_id3_genre(record, config.id3_genre_mode)
        if genres and self._should_write(config, True, "TCON" in tags):
            tags.setall("TCON", [TCON(encoding=3, text=ID3_GENRE_SEPARATOR.join(genres))])

        if self._should_write(config, config.track, "TRCK" in tags):
            tags.setall("TRCK", [TRCK(encoding=3, text=str(track.position_int))])

        if record.art_url and self._should_write(
                config, config.art, self._id3_has_front_cover(tags)):
            data = self._fetch_art(record)
            if data is not None:
                self._replace_id3_front_cover(tags, data)

        v2_version = 4
        if config.id3v23:
            # mutagen keeps frames in v2.4 form until converted explicitly
            tags.update_to_v23()
            v2_version = 3
        if container is not None:
            container.save(v2_version=v2_version)
        else:
            tags.save(info.path, v2_version=v2_version)

    def _write_id3_date(self, tags: ID3, record: CatalogRecord, id3v23: bool) -> None:
        year, day = resolve_date(record)
        if year is None:
            return

        if id3v23:
            tags.delall("TDRC")
            tags.setall("TYER", [TYER(encoding=3, text=f"{year:04d}")])
            if day is not None:
                tags.setall("TDAT", [TDAT(encoding=3, text=day.strftime("%d%m"))])
            else:
                tags.delall("TDAT")
        else:
            tags.delall("TYER")
            tags.delall("TDAT")
            value = day.isoformat() if day is not None else f"{year:04d}"
            tags.setall("TDRC", [TDRC(encoding=3, text=value)])

    def _replace_id3_front_cover(self, tags: ID3, data: bytes) -> None:
        others = [f for f in tags.getall("APIC") if f.type != PictureType.COVER_FRONT]
        tags.delall("APIC")
        for frame in others:
            tags.add(frame)
        tags.add(APIC(
            encoding=3,
            mime=ART_MIME,
            type=PictureType.COVER_FRONT,
            desc=ART_DESCRIPTION,
            data=data,
        ))

    def _write_flac_tags(self, config: TaggingConfig, file_path: str,
                         record: CatalogRecord, track: Track) -> None:
        audio = FLAC(file_path)
        if audio.tags is None:
            audio.add_tags()
        tags = audio.tags

        if config.title:
            tags["title"] = [track.title]
        if config.artist:
            artists = resolve_artists(record, track)
            if artists:
                tags["artist"] = artists

        if self._should_write(config, config.album, "album" in tags):
            tags["album"] = [record.title]

        label = resolve_label(record)
        if label and self._should_write(config, config.label, "label" in tags):
            tags["label"] = [label]

        if self._should_write(config, config.date, "date" in tags):
            if record.released:
                tags["date"] = [record.released]
            elif record.year is not None:
                tags["date"] = [str(record.year)]

        for key, values in compose_flac_genres(record, config.flac_genre_mode).items():
            if values and self._should_write(config, True, key in tags):
                tags[key] = values

        if self._should_write(config, config.track, "tracknumber" in tags):
            tags["tracknumber"] = [str(track.position_int)]

        if record.art_url and self._should_write(
                config, config.art, self._flac_has_front_cover(audio)):
            data = self._fetch_art(record)
            if data is not None:
                self._replace_flac_front_cover(audio, data)

        audio.save()

    def _replace_flac_front_cover(self, audio: FLAC, data: bytes) -> None:
        audio.metadata_blocks = [
            block for block in audio.metadata_blocks
            if not (block.code == Picture.code and block.type == PictureType.COVER_FRONT)
        ]
        picture = Picture()
        picture.type = PictureType.COVER_FRONT
        picture.mime = ART_MIME
        picture.desc = ART_DESCRIPTION
        picture.data = data
        audio.add_picture(picture)

    # Helpers

    def _id3_has_front_cover(self, tags: ID3) -> bool:
        return any(f.type == PictureType.COVER_FRONT for f in tags.getall("APIC"))

    def _flac_has_front_cover(self, audio: FLAC) -> bool:
        return any(p.type == PictureType.COVER_FRONT for p in audio.pictures)

    def _get_tag_str(self, tags, key: str) -> Optional[str]:
        """Get string value from ID3 tag."""
        tag = tags.get(key)
        if tag:
            value = str(tag.text[0]) if tag.text else ""
            return value if value else None
        return None

    def _parse_track_disc(self, value: str) -> tuple:
        """
        Parse track/disc string like '3/12' or '3'.

        Returns:
            (number, total) tuple
        """
        if not value:
            return None, None

        parts = value.split("/")
        try:
            num = int(parts[0]) if parts[0].strip() else None
            total = int(parts[1]) if len(parts) > 1 and parts[1].strip() else None
            return num, total
        except ValueError:
            return None, None
