"""Discogs API client for fetching release and master metadata."""

import re
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import requests

from discogs_tagger.config import eprint
from discogs_tagger.models import CatalogRecord, ReleaseType, SearchResults, Track


class DiscogsClientError(Exception):
    """Raised when talking to the Discogs API fails."""


# (json key, extractor) pairs, tried in order until one yields a value
Strategy = Tuple[str, Callable[[object], Optional[object]]]


def _string(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def _string_list(value) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [v for v in value if isinstance(v, str)]


def _name_list(value) -> Optional[List[str]]:
    """List of objects carrying a 'name' key, e.g. artists or labels."""
    if not isinstance(value, list):
        return None
    return [v["name"] for v in value
            if isinstance(v, dict) and isinstance(v.get("name"), str)]


def _first_image_uri(value) -> Optional[str]:
    if not isinstance(value, list) or not value:
        return None
    first = value[0]
    if isinstance(first, dict):
        return _string(first.get("uri"))
    return None


def _year(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


# Search hits use singular keys, full records the plural ones
STYLE_STRATEGIES: Sequence[Strategy] = (("style", _string_list), ("styles", _string_list))
GENRE_STRATEGIES: Sequence[Strategy] = (("genre", _string_list), ("genres", _string_list))
LABEL_STRATEGIES: Sequence[Strategy] = (("label", _string_list), ("labels", _name_list))
ART_STRATEGIES: Sequence[Strategy] = (("cover_image", _string), ("images", _first_image_uri))


def extract(data: dict, strategies: Sequence[Strategy]):
    """Return the first value produced by the given extraction strategies."""
    for key, extractor in strategies:
        if key not in data:
            continue
        value = extractor(data[key])
        if value is not None:
            return value
    return None


def parse_track(data: dict, index: int) -> Optional[Track]:
    """
    Parse a tracklist entry.

    Args:
        data: Tracklist entry JSON
        index: 1-based index in the tracklist, used when position isn't numeric

    Returns:
        Track, or None if the entry has no title
    """
    title = _string(data.get("title"))
    if title is None:
        return None

    position = _string(data.get("position")) or ""
    if re.fullmatch(r"\d+", position):
        position_int = int(position)
    else:
        position_int = index

    return Track(
        title=title,
        position=position,
        position_int=position_int,
        duration=_string(data.get("duration")) or "",
        artists=_name_list(data.get("artists")),
    )


def parse_tracklist(entries) -> Optional[List[Track]]:
    """Parse a tracklist, skipping headings and entries without a title."""
    if not isinstance(entries, list):
        return None

    tracks = []
    # Fallback ordinal is the position in the raw list, headings included
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            continue
        if entry.get("type_", "track") != "track":
            continue
        track = parse_track(entry, index)
        if track is not None:
            tracks.append(track)
    return tracks


def parse_record(data: dict, kind: ReleaseType,
                 label: Optional[List[str]] = None) -> Optional[CatalogRecord]:
    """
    Decode a search hit, release or master JSON object.

    Args:
        data: Response JSON object
        kind: Whether this is a release or a master
        label: Label list overriding whatever the JSON contains; master
            detail responses carry no labels, the search hit does

    Returns:
        CatalogRecord, or None if title or id is missing
    """
    if not isinstance(data, dict):
        return None
    title = _string(data.get("title"))
    record_id = data.get("id")
    if title is None or not isinstance(record_id, int) or isinstance(record_id, bool):
        return None

    if label is None:
        label = extract(data, LABEL_STRATEGIES)

    return CatalogRecord(
        id=record_id,
        kind=kind,
        title=title,
        country=_string(data.get("country")) or "",
        url=_string(data.get("uri")) or "",
        genres=extract(data, GENRE_STRATEGIES) or [],
        styles=extract(data, STYLE_STRATEGIES) or [],
        artists=_name_list(data.get("artists")),
        extra_artists=_name_list(data.get("extraartists")),
        label=label,
        released=_string(data.get("released")),
        year=_year(data.get("year")),
        art_url=extract(data, ART_STRATEGIES),
        tracks=parse_tracklist(data.get("tracklist")),
    )


def parse_search_results(data: dict) -> SearchResults:
    """Split search hits into releases and masters, counting malformed ones."""
    results = SearchResults()
    hits = data.get("results") if isinstance(data, dict) else None
    if not isinstance(hits, list):
        return results

    for hit in hits:
        hit_type = hit.get("type") if isinstance(hit, dict) else None
        if hit_type == ReleaseType.RELEASE.value:
            target = results.releases
            kind = ReleaseType.RELEASE
        elif hit_type == ReleaseType.MASTER.value:
            target = results.masters
            kind = ReleaseType.MASTER
        else:
            # artists and labels can come back too, they're not dropped entries
            if not isinstance(hit, dict):
                results.dropped += 1
            continue

        record = parse_record(hit, kind)
        if record is None:
            results.dropped += 1
        else:
            target.append(record)

    if results.dropped:
        eprint(f"Discogs search: dropped {results.dropped} malformed result(s)")
    return results


class DiscogsClient:
    """Client for Discogs API."""

    BASE_URL = "https://api.discogs.com"
    USER_AGENT = "DiscogsTagger/1.0"

    # Requests per minute
    UNAUTHENTICATED_RATE = 25
    AUTHENTICATED_RATE = 60
    # Added on top of each computed delay to absorb timer jitter
    SAFETY_MARGIN = 0.010

    def __init__(self, timeout: float = 15):
        """
        Initialize Discogs client.

        Args:
            timeout: Per-request timeout in seconds
        """
        self.timeout = timeout
        self.token: Optional[str] = None
        self.rate_limit = self.UNAUTHENTICATED_RATE
        self.rate_limit_enabled = False
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.USER_AGENT})
        self._last_request_time: Optional[float] = None
        self._cache: Dict[Tuple[ReleaseType, int], Optional[CatalogRecord]] = {}

    def authorize(self, token: str) -> None:
        """Use a personal access token for all further requests."""
        self.token = token
        self.rate_limit = self.AUTHENTICATED_RATE
        self.session.headers.update({"Authorization": f"Discogs token={token}"})

    def enable_rate_limiting(self, enabled: bool = True) -> None:
        """Turn request pacing on or off (off by default)."""
        self.rate_limit_enabled = enabled

    def _respect_rate_limit(self) -> None:
        """Sleep so consecutive requests stay at least 60/rate seconds apart."""
        if not self.rate_limit_enabled or self._last_request_time is None:
            return

        delay = 60.0 / self.rate_limit
        elapsed = time.time() - self._last_request_time
        if elapsed < delay:
            time.sleep(delay - elapsed + self.SAFETY_MARGIN)

    def _get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        """GET wrapper applying rate limiting; transport errors are re-raised."""
        self._respect_rate_limit()
        try:
            return self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DiscogsClientError(f"Request to {url} failed: {e}") from e
        finally:
            # Measured from the response, so latency isn't charged to the next call
            self._last_request_time = time.time()

    def _get_json(self, url: str, params: Optional[dict] = None):
        resp = self._get(url, params=params)
        try:
            return resp.json()
        except ValueError as e:
            raise DiscogsClientError(
                f"Invalid JSON from {url} (HTTP {resp.status_code})"
            ) from e

    def validate_token(self) -> bool:
        """Check credentials with a throwaway search; True iff HTTP 200."""
        try:
            resp = self._get(f"{self.BASE_URL}/database/search", params={"q": "test"})
        except DiscogsClientError as e:
            eprint(f"Discogs token validation error: {e}")
            return False
        return resp.status_code == requests.codes.ok

    def search(self, query: Optional[str] = None, title: Optional[str] = None,
               artist: Optional[str] = None,
               result_type: str = "release,master") -> SearchResults:
        """
        Search Discogs for releases and masters.

        Either a free-text query or a (title, artist) pair is used, never both.

        Args:
            query: Free-text query
            title: Title for a structured search
            artist: Artist for a structured search
            result_type: Discogs 'type' filter

        Returns:
            SearchResults with every decodable hit
        """
        if query is not None and (title is not None or artist is not None):
            raise ValueError("Use either query or title/artist, not both")
        if query is None and (title is None or artist is None):
            raise ValueError("Either query or both title and artist are required")

        params = {"type": result_type}
        if query is not None:
            params["q"] = query
        else:
            params["title"] = title
            params["artist"] = artist

        data = self._get_json(f"{self.BASE_URL}/database/search", params=params)
        return parse_search_results(data)

    def _cached_fetch(self, kind: ReleaseType, record_id: int, url: str,
                      label: Optional[List[str]] = None) -> Optional[CatalogRecord]:
        key = (kind, record_id)
        if key in self._cache:
            return self._cache[key]

        record = parse_record(self._get_json(url), kind, label)
        self._cache[key] = record
        return record

    def get_release(self, release_id: int) -> Optional[CatalogRecord]:
        """
        Get full release details including tracklist.

        Args:
            release_id: Discogs release ID

        Returns:
            CatalogRecord if found, None otherwise
        """
        return self._cached_fetch(
            ReleaseType.RELEASE, release_id,
            f"{self.BASE_URL}/releases/{release_id}",
        )

    def get_master(self, master_id: int,
                   label: Optional[List[str]] = None) -> Optional[CatalogRecord]:
        """
        Get full master details including tracklist.

        Args:
            master_id: Discogs master ID
            label: Labels from the search hit, since masters don't carry them

        Returns:
            CatalogRecord if found, None otherwise
        """
        return self._cached_fetch(
            ReleaseType.MASTER, master_id,
            f"{self.BASE_URL}/masters/{master_id}",
            label,
        )

    def get_full_record(self, record: CatalogRecord) -> Optional[CatalogRecord]:
        """Fetch the full version of a search hit."""
        if record.kind == ReleaseType.MASTER:
            return self.get_master(record.id, record.label)
        return self.get_release(record.id)

    def download_art(self, url: str) -> bytes:
        """Download raw image bytes."""
        resp = self._get(url)
        try:
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise DiscogsClientError(f"Art download failed: {e}") from e
        return resp.content
