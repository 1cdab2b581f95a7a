"""Tests for the analysis screen's table and details helpers."""

import pytest

from jellyfin_dedupe.models import DuplicateVerdict, MovieRecord, PlayState, PlayStatusDiscrepancy
from jellyfin_dedupe.ui.screens.analysis import (
    VIEW_ALL,
    VIEW_DUPLICATES,
    VIEW_MISMATCHES,
    describe_verdict,
    filter_verdicts,
    row_key,
    verdict_row,
)


def make_verdict(
    name: str,
    year: int = 2010,
    similarity: int = 100,
    path_a: str = "/a/movie.mkv",
    path_b: str = "/b/movie.mkv",
    discrepancies: list[PlayStatusDiscrepancy] | None = None,
) -> DuplicateVerdict:
    return DuplicateVerdict(
        movie_a=MovieRecord(id=f"{name}-a", name=name, production_year=year, path=path_a),
        movie_b=MovieRecord(id=f"{name}-b", name=name, production_year=year, path=path_b),
        similarity=similarity,
        is_duplicate=similarity >= 95,
        has_identical_play_status=not discrepancies,
        discrepancies=discrepancies or [],
    )


VERDICTS = [
    make_verdict("Zodiac", 2007),
    make_verdict("Heat", 1995, path_a="/movies/heat.mkv", path_b="/backup/heat-1080p.mkv"),
    make_verdict("Alien", 1979, similarity=60, path_a="/a/alien.mkv", path_b="/b/aliens-directors-cut.mkv"),
    make_verdict("alien", 1979),
]


class TestVerdictRow:
    """Tests for table cell rendering."""

    def test_row_cells(self) -> None:
        discrepancy = PlayStatusDiscrepancy(user_id="u", user_name="bob", movie_to_update="Heat-a", movie_name="Heat")
        verdict = make_verdict("Heat", 1995, similarity=97, discrepancies=[discrepancy])

        assert verdict_row(verdict) == ("Heat", "1995", "97%", "no", "1")

    def test_unknown_year(self) -> None:
        assert verdict_row(make_verdict("Untitled", 0))[1] == "?"

    def test_row_key_uses_both_ids(self) -> None:
        assert row_key(make_verdict("Heat")) == "Heat-a:Heat-b"


class TestFilterVerdicts:
    """Tests for view selection, search and ordering."""

    def test_duplicates_view_is_sorted_by_name_then_year(self) -> None:
        result = filter_verdicts(VERDICTS)

        assert [v.movie_a.name for v in result] == ["alien", "Heat", "Zodiac"]

    def test_mismatches_view(self) -> None:
        result = filter_verdicts(VERDICTS, view=VIEW_MISMATCHES)

        assert [v.similarity for v in result] == [60]

    def test_all_view(self) -> None:
        assert len(filter_verdicts(VERDICTS, view=VIEW_ALL)) == len(VERDICTS)

    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("HEAT", ["Heat"]),
            ("  zod ", ["Zodiac"]),
            ("1080p", ["Heat"]),
            ("nothing", []),
            ("", ["alien", "Heat", "Zodiac"]),
        ],
    )
    def test_search(self, query: str, expected: list[str]) -> None:
        result = filter_verdicts(VERDICTS, query, VIEW_DUPLICATES)

        assert [v.movie_a.name for v in result] == expected

    def test_search_matches_paths_in_all_view(self) -> None:
        result = filter_verdicts(VERDICTS, "directors-cut", VIEW_ALL)

        assert [v.movie_b.path for v in result] == ["/b/aliens-directors-cut.mkv"]


class TestDescribeVerdict:
    """Tests for the details panel text."""

    def test_describes_both_copies_and_users(self) -> None:
        verdict = DuplicateVerdict(
            movie_a=MovieRecord(
                id="m1",
                name="Heat",
                production_year=1995,
                path="/m/heat.mkv",
                provider_ids={"Tmdb": "949", "Imdb": "tt0113277"},
                play_states={"u1": PlayState(True, 2), "u2": PlayState(False)},
            ),
            movie_b=MovieRecord(
                id="m2",
                name="Heat",
                production_year=1995,
                play_states={"u1": PlayState(True), "u2": PlayState(True)},
            ),
            similarity=96,
            is_duplicate=True,
            has_identical_play_status=False,
            discrepancies=[PlayStatusDiscrepancy(user_id="u2", user_name="bob", movie_to_update="m1", movie_name="Heat")],
        )

        text = describe_verdict(verdict, {"u1": "alice", "u2": "bob"})

        assert text.startswith("Similarity: 96%  Duplicate: yes  Identical play status: no")
        assert "A: Heat (1995)" in text
        assert "Provider IDs: Imdb=tt0113277, Tmdb=949" in text
        assert "alice: played (2x)" in text
        assert "bob: not played" in text
        assert "Path: (none)" in text
        assert "Needs sync before deleting:" in text
        assert "bob has not played Heat (m1)" in text

    def test_unknown_users_show_their_id(self) -> None:
        verdict = make_verdict("Heat")
        verdict = DuplicateVerdict(
            movie_a=MovieRecord(id="m1", name="Heat", play_states={"u9": PlayState(True)}),
            movie_b=verdict.movie_b,
            similarity=100,
            is_duplicate=True,
            has_identical_play_status=False,
        )

        text = describe_verdict(verdict)

        assert "u9: played" in text
        assert "A: Heat (?)" in text
        assert "Needs sync" not in text
