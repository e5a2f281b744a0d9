#!/usr/bin/env python3
"""
Discogs Tagger - match audio files against Discogs and write their tags.

Usage:
    python -m discogs_tagger /path/to/music [options]
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from discogs_tagger.config import (
    load_config, validate_config, eprint, get_discogs_token_instructions
)
from discogs_tagger.discogs_client import DiscogsClient, DiscogsClientError
from discogs_tagger.matcher import TrackMatcher
from discogs_tagger.models import (
    FlacGenreMode, Id3GenreMode, LocalFileInfo, ProcessingStats, TaggingConfig
)
from discogs_tagger.tag_handler import TagError, TagHandler


class TaggerProcessor:
    """Runs match-then-write over every discovered file, one at a time."""

    def __init__(self, client: DiscogsClient, tagging_config: TaggingConfig,
                 quiet: bool = False):
        """
        Initialize processor.

        Args:
            client: Authorized Discogs client
            tagging_config: Fields and modes to write
            quiet: Suppress per-file output
        """
        self.client = client
        self.config = tagging_config
        self.quiet = quiet
        self.stats = ProcessingStats()

        self.matcher = TrackMatcher(client)
        self.tag_handler = TagHandler(client)

    def print(self, *args, **kwargs):
        """Print unless quiet mode."""
        if not self.quiet:
            print(*args, **kwargs)

    def discover(self, path: str) -> List[LocalFileInfo]:
        """
        Collect taggable files under a path.

        Files missing title or artist are recorded as malformed and skipped.

        Args:
            path: Audio file or folder (searched recursively)

        Returns:
            LocalFileInfo list in path order
        """
        path_obj = Path(path)
        if path_obj.is_file():
            candidates = [path_obj]
        else:
            candidates = sorted(p for p in path_obj.rglob("*") if p.is_file())

        files = []
        for file_path in candidates:
            if not TagHandler.is_supported(str(file_path)):
                continue
            try:
                files.append(self.tag_handler.read_file_info(str(file_path)))
            except TagError as e:
                eprint(f"Malformed file (skipping): {file_path.name} - {e}")
                self.stats.malformed_files.append(str(file_path))
        return files

    def process_file(self, info: LocalFileInfo) -> bool:
        """
        Match and tag one file. Errors are recorded, never raised.

        Returns:
            True if tags were written
        """
        name = Path(info.path).name
        try:
            result = self.matcher.match(info, self.config.fuzziness)
        except DiscogsClientError as e:
            self.stats.failed += 1
            self.stats.errors.append(f"{name}: {e}")
            self.print(f"  FAIL  {name}: {e}")
            return False

        if result is None:
            self.stats.unmatched += 1
            self.print(f"  MISS  {name}")
            return False

        track, record = result
        try:
            self.tag_handler.write_tags(self.config, info, record, track)
        except TagError as e:
            self.stats.failed += 1
            self.stats.errors.append(f"{name}: {e}")
            self.print(f"  FAIL  {name}: {e}")
            return False

        self.stats.tagged += 1
        self.print(f"  OK    {name} -> {record.title} / {track.title}")
        return True

    def process(self, path: str) -> ProcessingStats:
        """
        Main entry point for processing.

        Args:
            path: Path to process (file or folder)
        """
        files = self.discover(path)
        self.stats.total_files = len(files)
        self.print(f"Found {len(files)} file(s) to tag")

        for info in files:
            self.process_file(info)

        self.show_summary()
        return self.stats

    def show_summary(self) -> None:
        stats = self.stats
        print(
            f"\nDone: {stats.tagged} tagged, {stats.unmatched} unmatched, "
            f"{stats.failed} failed, {len(stats.malformed_files)} skipped "
            f"(of {stats.total_files + len(stats.malformed_files)})"
        )
        for error in stats.errors:
            eprint(f"  {error}")


def build_tagging_config(args: argparse.Namespace, config: dict) -> TaggingConfig:
    """Combine CLI flags with values from the environment."""
    fuzziness = args.fuzziness if args.fuzziness is not None else config["fuzziness"]
    separator = args.separator if args.separator is not None else config["artist_separator"]

    return TaggingConfig(
        title=not args.no_title,
        artist=not args.no_artist,
        album=not args.no_album,
        label=not args.no_label,
        date=not args.no_date,
        track=not args.no_track,
        art=not args.no_art,
        id3_genre_mode=Id3GenreMode(args.id3_genre),
        flac_genre_mode=FlacGenreMode(args.flac_genre),
        artist_separator=separator,
        fuzziness=fuzziness,
        overwrite=not args.keep_existing,
        id3v23=args.id3v23,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser."""
    parser = argparse.ArgumentParser(
        description="Match MP3, AIFF and FLAC files against Discogs and "
                    "write the release metadata into their tags.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Tag every supported file below a folder
  python -m discogs_tagger /path/to/music

  # Keep tags that are already filled in
  python -m discogs_tagger /path/to/music --keep-existing

  # Styles instead of genres, ID3v2.3 for older players
  python -m discogs_tagger /path/to/music --id3-genre styles --id3v23
"""
    )

    parser.add_argument(
        "path",
        help="Path to audio file or folder to process"
    )

    # Matching
    parser.add_argument(
        "--fuzziness",
        type=int,
        choices=range(0, 101),
        metavar="0-100",
        help="Minimum title similarity for non-exact matches (default: 80)"
    )

    # Tag handling
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Only fill empty fields (title and artist are always written)"
    )

    parser.add_argument(
        "--separator",
        help="Separator for multiple artists in ID3 tags (default: ', ')"
    )

    parser.add_argument(
        "--id3v23",
        action="store_true",
        help="Write ID3v2.3 instead of ID3v2.4"
    )

    parser.add_argument(
        "--id3-genre",
        choices=[m.value for m in Id3GenreMode],
        default=Id3GenreMode.GENRES.value,
        help="What goes into the ID3 genre frame (default: genres)"
    )

    parser.add_argument(
        "--flac-genre",
        choices=[m.value for m in FlacGenreMode],
        default=FlacGenreMode.BOTH.value,
        help="What goes into the FLAC GENRE/STYLE fields (default: both)"
    )

    for field_name in ("title", "artist", "album", "label", "date", "track", "art"):
        parser.add_argument(
            f"--no-{field_name}",
            action="store_true",
            help=f"Don't write the {field_name} field"
        )

    # Configuration
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: ./.env)"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress per-file output"
    )

    return parser


def create_client(token: str) -> Optional[DiscogsClient]:
    """Authorized, rate limited client, or None if the token is rejected."""
    client = DiscogsClient()
    client.authorize(token)
    client.enable_rate_limiting(True)
    if not client.validate_token():
        return None
    return client


def main():
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not os.path.exists(args.path):
        parser.error(f"Path does not exist: {args.path}")

    config = load_config(args.env_file)
    missing = validate_config(config)

    if missing:
        eprint(f"\nMissing required configuration: {', '.join(missing)}")
        if "DISCOGS_USER_TOKEN" in missing:
            eprint(get_discogs_token_instructions())
        sys.exit(1)

    client = create_client(config["discogs_user_token"])
    if client is None:
        eprint("Invalid Discogs token!")
        eprint(get_discogs_token_instructions())
        sys.exit(1)

    processor = TaggerProcessor(
        client, build_tagging_config(args, config), quiet=args.quiet
    )

    try:
        processor.process(args.path)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(1)


if __name__ == "__main__":
    main()
