"""
Discogs Tagger - Audio tag management with Discogs integration.

This package provides tools to:
- Search Discogs for releases and masters, with rate limiting and caching
- Match local MP3, AIFF and FLAC files to catalog tracks by title
- Write titles, artists, labels, dates, genres and cover art into their tags
"""

__version__ = "1.0.0"
