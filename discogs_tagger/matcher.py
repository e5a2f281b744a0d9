"""Match local audio files to tracks on Discogs releases and masters."""

from typing import List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from discogs_tagger.config import eprint
from discogs_tagger.discogs_client import DiscogsClient, DiscogsClientError
from discogs_tagger.models import CatalogRecord, LocalFileInfo, SearchResults, Track
from discogs_tagger.utils import clean_title

# Candidates taken from each of the master and release lists
CANDIDATES_PER_KIND = 2


def similarity(a: str, b: str) -> int:
    """Normalized Levenshtein similarity as a truncated 0-100 score."""
    return int(Levenshtein.normalized_similarity(a, b) * 100)


def match_track_in_record(record: CatalogRecord, title: str,
                          fuzziness: int) -> Tuple[Optional[Track], bool]:
    """
    Find the track matching a title in a record's tracklist.

    Args:
        record: Full record with tracklist
        title: Local file title
        fuzziness: Minimum similarity (0-100) for a non-exact match

    Returns:
        (track, exact) tuple; track is None when nothing clears the threshold
    """
    wanted = clean_title(title, strict=True)
    tracks = record.tracks or []

    for track in tracks:
        if clean_title(track.title, strict=True) == wanted:
            return track, True

    best_track = None
    best_score = -1
    for track in tracks:
        score = similarity(clean_title(track.title, strict=True), wanted)
        # strict '>' keeps the first track on ties
        if score > best_score:
            best_track, best_score = track, score

    if best_track is not None and best_score >= fuzziness:
        return best_track, False
    return None, False


class TrackMatcher:
    """Resolves a local file to a (Track, CatalogRecord) pair."""

    def __init__(self, client: DiscogsClient):
        self.client = client

    def search_candidates(self, info: LocalFileInfo) -> SearchResults:
        """Free-text search first, structured title/artist search as fallback."""
        artist = info.artists[0]
        results = self.client.search(query=f"{clean_title(info.title)} {artist}")
        if not results.releases:
            results = self.client.search(title=info.title, artist=artist)
        return results

    def candidates(self, results: SearchResults) -> List[CatalogRecord]:
        """Masters first, each kind capped, preserving relevance order."""
        return (results.masters[:CANDIDATES_PER_KIND]
                + results.releases[:CANDIDATES_PER_KIND])

    def match(self, info: LocalFileInfo,
              fuzziness: int) -> Optional[Tuple[Track, CatalogRecord]]:
        """
        Find the catalog track for a local file.

        Args:
            info: Local file with title and at least one artist
            fuzziness: Minimum similarity (0-100) for a non-exact match

        Returns:
            (Track, CatalogRecord) tuple, or None if nothing matched
        """
        results = self.search_candidates(info)
        if results.is_empty():
            return None

        for candidate in self.candidates(results):
            try:
                record = self.client.get_full_record(candidate)
            except DiscogsClientError as e:
                eprint(f"Skipping {candidate.kind.value} {candidate.id}: {e}")
                continue
            if record is None or not record.tracks:
                continue

            track, _exact = match_track_in_record(record, info.title, fuzziness)
            if track is not None:
                return track, record

        return None
