"""Property-based tests for path similarity scoring."""

import pytest
from hypothesis import given, strategies as st

from jellyfin_dedupe.services.similarity import path_similarity, strip_extension


paths = st.text(max_size=60)
non_empty_paths = st.text(min_size=1, max_size=60)
file_stems = st.text(
    min_size=1,
    max_size=30,
    alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd")),
)
extensions = st.sampled_from(["mkv", "mp4", "avi", "m4v", "ts"])


@given(non_empty_paths)
def test_identical_paths_score_100(path: str) -> None:
    """Any path compared with itself is a perfect match."""
    assert path_similarity(path, path) == 100


def test_empty_paths_score_100() -> None:
    assert path_similarity("", "") == 100


@given(paths, paths)
def test_similarity_is_commutative(a: str, b: str) -> None:
    assert path_similarity(a, b) == path_similarity(b, a)


@given(paths, paths)
def test_similarity_is_bounded(a: str, b: str) -> None:
    assert 0 <= path_similarity(a, b) <= 100


@given(file_stems, extensions, extensions)
def test_extension_is_ignored(stem: str, ext_a: str, ext_b: str) -> None:
    """Files differing only in container format score 100."""
    assert path_similarity(f"/x/{stem}.{ext_a}", f"/x/{stem}.{ext_b}") == 100


def test_extension_stripping_example() -> None:
    assert path_similarity("/x/movie.mkv", "/x/movie.mp4") == 100


def test_nothing_in_common_scores_zero() -> None:
    assert path_similarity("aaaa", "bbbb") == 0


def test_one_empty_path_scores_zero() -> None:
    assert path_similarity("", "/m/movie.mkv") == 0


def test_threshold_boundary_values() -> None:
    """One edit in 20 characters is 95, one edit in 16 is 94."""
    assert path_similarity("a" * 20, "a" * 19 + "b") == 95
    assert path_similarity("a" * 16, "a" * 15 + "b") == 94


def test_distance_counts_code_points() -> None:
    """Multi-byte characters count as one edit, not several."""
    assert path_similarity("caf\u00e9", "cafe") == 75


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/x/movie.mkv", "/x/movie"),
        ("movie.tar.gz", "movie.tar"),
        ("noext", "noext"),
        (".hidden", ".hidden"),
        ("", ""),
        ("/dir.d/file", "/dir.d/file"),
        ("C:\\dir.d\\file", "C:\\dir.d\\file"),
        ("C:\\Movies\\Heat.mkv", "C:\\Movies\\Heat"),
    ],
)
def test_strip_extension(path: str, expected: str) -> None:
    assert strip_extension(path) == expected
