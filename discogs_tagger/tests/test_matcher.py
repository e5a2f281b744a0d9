"""Tests for matcher.py track resolution."""

from unittest.mock import Mock, patch

import pytest

from discogs_tagger.discogs_client import DiscogsClient, DiscogsClientError
from discogs_tagger.matcher import TrackMatcher, match_track_in_record, similarity
from discogs_tagger.models import (
    CatalogRecord, FileFormat, LocalFileInfo, ReleaseType, SearchResults, Track
)


def hit(record_id, kind=ReleaseType.RELEASE, label=None):
    """A search hit with no detail fields."""
    return CatalogRecord(id=record_id, kind=kind, title=f"Hit {record_id}", label=label)


def full(record_id, titles, kind=ReleaseType.RELEASE):
    """A full record with the given track titles."""
    tracks = [Track(title=t, position=str(i), position_int=i)
              for i, t in enumerate(titles, start=1)]
    return CatalogRecord(id=record_id, kind=kind, title=f"Album {record_id}",
                         artists=["DJ X"], tracks=tracks)


@pytest.fixture
def info():
    return LocalFileInfo(path="/music/intro.mp3", title="Intro",
                         artists=["DJ X", "MC Y"], format=FileFormat.MP3)


@pytest.fixture
def client():
    return Mock(spec=DiscogsClient)


@pytest.fixture
def matcher(client):
    return TrackMatcher(client)


class TestSimilarity:
    """Tests for similarity."""

    def test_identical(self):
        assert similarity("intro", "intro") == 100

    def test_completely_different(self):
        assert similarity("abc", "xyz") == 0

    def test_truncates(self):
        # 1 edit over 3 chars = 66.66...
        assert similarity("abc", "abd") == 66


class TestMatchTrackInRecord:
    """Tests for match_track_in_record."""

    def test_exact_match(self):
        track, exact = match_track_in_record(full(1, ["Other", "INTRO"]), "Intro", 80)
        assert track.title == "INTRO"
        assert exact is True

    def test_exact_match_ignores_feat(self):
        record = full(1, ["Intro (feat. Someone)"])
        track, exact = match_track_in_record(record, "Intro", 80)
        assert exact is True

    def test_exact_beats_earlier_fuzzy(self):
        record = full(1, ["Intros", "Intro"])
        track, exact = match_track_in_record(record, "Intro", 50)
        assert track.title == "Intro"

    def test_fuzzy_match_above_threshold(self):
        record = full(1, ["Something", "Intro Edit"])
        track, exact = match_track_in_record(record, "Intro Edt", 80)
        assert track.title == "Intro Edit"
        assert exact is False

    def test_below_threshold(self):
        track, _ = match_track_in_record(full(1, ["Completely Else"]), "Intro", 80)
        assert track is None

    def test_threshold_is_inclusive(self):
        with patch("discogs_tagger.matcher.similarity", return_value=80):
            track, _ = match_track_in_record(full(1, ["Nope"]), "Intro", 80)
        assert track.title == "Nope"

    def test_score_79_misses_80(self):
        with patch("discogs_tagger.matcher.similarity", return_value=79):
            track, _ = match_track_in_record(full(1, ["Nope"]), "Intro", 80)
        assert track is None

    def test_first_track_wins_ties(self):
        with patch("discogs_tagger.matcher.similarity", return_value=90):
            track, _ = match_track_in_record(full(1, ["First", "Second"]), "Intro", 80)
        assert track.title == "First"


class TestTrackMatcher:
    """Tests for TrackMatcher.match."""

    def test_intro_scenario(self, matcher, client, info):
        """Local 'Intro' by 'DJ X' matches catalog track 'intro' at position 1."""
        client.search.return_value = SearchResults(releases=[hit(1)])
        client.get_full_record.return_value = full(1, ["intro"])

        track, record = matcher.match(info, 80)

        assert track.title == "intro"
        assert track.position_int == 1
        assert record.id == 1
        client.search.assert_called_once_with(query="intro DJ X")

    def test_falls_back_to_structured_search(self, matcher, client, info):
        client.search.side_effect = [
            SearchResults(masters=[hit(9, ReleaseType.MASTER)]),
            SearchResults(releases=[hit(1)]),
        ]
        client.get_full_record.return_value = full(1, ["Intro"])

        result = matcher.match(info, 80)

        assert result is not None
        assert client.search.call_args_list[1].kwargs == {"title": "Intro", "artist": "DJ X"}
        client.get_full_record.assert_called_once_with(hit(1))

    def test_no_results(self, matcher, client, info):
        client.search.return_value = SearchResults()
        assert matcher.match(info, 80) is None
        assert client.search.call_count == 2
        client.get_full_record.assert_not_called()

    def test_masters_first_and_capped(self, matcher, client, info):
        masters = [hit(i, ReleaseType.MASTER) for i in (10, 11, 12)]
        releases = [hit(i) for i in (1, 2, 3)]
        client.search.return_value = SearchResults(releases=releases, masters=masters)
        client.get_full_record.side_effect = lambda c: full(c.id, ["Unrelated Title"])

        assert matcher.match(info, 80) is None

        fetched = [c.args[0].id for c in client.get_full_record.call_args_list]
        assert fetched == [10, 11, 1, 2]

    def test_exact_match_short_circuits(self, matcher, client, info):
        """A later candidate is never fetched once an exact match is found."""
        client.search.return_value = SearchResults(releases=[hit(1), hit(2)])
        client.get_full_record.side_effect = [
            full(1, ["Intro"]),
            full(2, ["Intro"]),
        ]

        track, record = matcher.match(info, 0)

        assert record.id == 1
        assert client.get_full_record.call_count == 1

    def test_exact_in_first_candidate_beats_later_candidate(self, matcher, client):
        info = LocalFileInfo(path="/x.flac", title="Intro (feat. Z)",
                             artists=["DJ X"], format=FileFormat.FLAC)
        client.search.return_value = SearchResults(releases=[hit(1), hit(2)])
        client.get_full_record.side_effect = [
            full(1, ["INTRO"]),
            full(2, ["Intro (feat. Z)"]),
        ]

        track, record = matcher.match(info, 100)

        assert record.id == 1
        assert track.title == "INTRO"

    def test_fuzzy_match_stops_at_first_candidate_clearing_threshold(self, matcher, client, info):
        client.search.return_value = SearchResults(releases=[hit(1), hit(2)])
        client.get_full_record.side_effect = [
            full(1, ["Intro Mix"]),
            full(2, ["Intro"]),
        ]

        track, record = matcher.match(info, 50)

        assert record.id == 1
        assert track.title == "Intro Mix"

    def test_below_threshold_is_no_match(self, matcher, client, info):
        client.search.return_value = SearchResults(releases=[hit(1)])
        client.get_full_record.return_value = full(1, ["Nope"])
        with patch("discogs_tagger.matcher.similarity", return_value=79):
            assert matcher.match(info, 80) is None

    def test_skips_failed_and_empty_candidates(self, matcher, client, info):
        client.search.return_value = SearchResults(
            masters=[hit(10, ReleaseType.MASTER, label=["L"])],
            releases=[hit(1), hit(2), ],
        )
        client.get_full_record.side_effect = [
            DiscogsClientError("boom"),
            CatalogRecord(id=1, kind=ReleaseType.RELEASE, title="No Tracks"),
            full(2, ["Intro"]),
        ]

        track, record = matcher.match(info, 80)

        assert record.id == 2

    def test_skips_not_found_candidates(self, matcher, client, info):
        client.search.return_value = SearchResults(releases=[hit(1)])
        client.get_full_record.return_value = None
        assert matcher.match(info, 80) is None

    def test_search_errors_propagate(self, matcher, client, info):
        client.search.side_effect = DiscogsClientError("down")
        with pytest.raises(DiscogsClientError):
            matcher.match(info, 80)
