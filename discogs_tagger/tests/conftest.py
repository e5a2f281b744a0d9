"""Shared test fixtures for discogs_tagger tests."""

import struct

import pytest
from mutagen.aiff import AIFF
from mutagen.flac import FLAC
from mutagen.id3 import ID3, TIT2, TPE1

from discogs_tagger.models import (
    CatalogRecord, FileFormat, LocalFileInfo, ReleaseType, TaggingConfig, Track
)


def _flac_stream_header() -> bytes:
    """'fLaC' marker plus a single STREAMINFO block (44.1kHz, 2ch, 16 bit)."""
    streaminfo = (
        struct.pack(">HH", 4096, 4096)
        + b"\x00" * 6
        + bytes([0x0A, 0xC4, 0x42, 0xF0, 0x00, 0x00, 0x00, 0x00])
        + b"\x00" * 16
    )
    return b"fLaC" + bytes([0x80, 0x00, 0x00, len(streaminfo)]) + streaminfo


def _aiff_stream() -> bytes:
    """FORM container with a COMM (44.1kHz, 2ch, 16 bit) and an empty SSND chunk."""
    comm = struct.pack(">hLh", 2, 0, 16) + bytes([0x40, 0x0E, 0xAC, 0x44, 0, 0, 0, 0, 0, 0])
    ssnd = struct.pack(">LL", 0, 0)
    body = (
        b"AIFF"
        + b"COMM" + struct.pack(">L", len(comm)) + comm
        + b"SSND" + struct.pack(">L", len(ssnd)) + ssnd
    )
    return b"FORM" + struct.pack(">L", len(body)) + body


@pytest.fixture
def sample_track():
    """A single Discogs track."""
    return Track(title="Intro", position="1", position_int=1, duration="3:45")


@pytest.fixture
def sample_record(sample_track):
    """A fully fetched Discogs release."""
    return CatalogRecord(
        id=12345,
        kind=ReleaseType.RELEASE,
        title="Test Album",
        country="UK",
        url="https://www.discogs.com/release/12345",
        genres=["Electronic", "Pop"],
        styles=["Techno", "House"],
        artists=["DJ X (2)", "MC Y"],
        label=["Test Label (3)", "Other Label"],
        released="2020-01-15",
        year=2020,
        art_url="https://i.discogs.com/cover.jpg",
        tracks=[
            sample_track,
            Track(title="Second Song", position="2", position_int=2),
        ],
    )


@pytest.fixture
def tagging_config():
    """Config writing every field, with art disabled."""
    return TaggingConfig(art=False)


@pytest.fixture
def mp3_file(tmp_path):
    """An MP3-named file holding only an ID3 tag with title and artist."""
    path = tmp_path / "song.mp3"
    path.write_bytes(b"\x00" * 256)
    tags = ID3()
    tags.add(TIT2(encoding=3, text="intro"))
    tags.add(TPE1(encoding=3, text="DJ X; MC Y"))
    tags.save(str(path))
    return str(path)


@pytest.fixture
def flac_file(tmp_path):
    """A header-only FLAC stream with title and artist comments."""
    path = tmp_path / "song.flac"
    path.write_bytes(_flac_stream_header())
    audio = FLAC(str(path))
    audio.add_tags()
    audio["title"] = ["intro"]
    audio["artist"] = ["DJ X", "MC Y"]
    audio.save()
    return str(path)


@pytest.fixture
def mp3_info(mp3_file):
    return LocalFileInfo(path=mp3_file, title="intro", artists=["DJ X", "MC Y"],
                         format=FileFormat.MP3)


@pytest.fixture
def flac_info(flac_file):
    return LocalFileInfo(path=flac_file, title="intro", artists=["DJ X", "MC Y"],
                         format=FileFormat.FLAC)


@pytest.fixture
def aiff_file(tmp_path):
    """A sample-less AIFF with an embedded ID3 chunk holding title and artist."""
    path = tmp_path / "song.aiff"
    path.write_bytes(_aiff_stream())
    audio = AIFF(str(path))
    audio.add_tags()
    audio.tags.add(TIT2(encoding=3, text="intro"))
    audio.tags.add(TPE1(encoding=3, text="DJ X / MC Y"))
    audio.save()
    return str(path)


@pytest.fixture
def aiff_info(aiff_file):
    return LocalFileInfo(path=aiff_file, title="intro", artists=["DJ X", "MC Y"],
                         format=FileFormat.AIFF)
