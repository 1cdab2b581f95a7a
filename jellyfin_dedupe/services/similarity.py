"""Path similarity scoring for duplicate detection."""

from rapidfuzz.distance import Levenshtein

PATH_SEPARATORS = ("/", "\\")


def strip_extension(path: str) -> str:
    """Drop the trailing file extension from a path.

    The path is returned unchanged when it has no dot, when the last dot is
    its first character, or when a path separator follows the last dot.
    """
    dot = path.rfind(".")
    if dot <= 0:
        return path
    if any(sep in path[dot + 1:] for sep in PATH_SEPARATORS):
        return path
    return path[:dot]


def path_similarity(path_a: str, path_b: str) -> int:
    """Score how alike two file paths are, from 0 (nothing shared) to 100 (identical).

    Extensions are ignored, so ``movie.mkv`` and ``movie.mp4`` score 100.
    The score is ``100 - floor(distance * 100 / longest)`` where ``distance``
    is the Levenshtein edit distance over code points.
    """
    a = strip_extension(path_a)
    b = strip_extension(path_b)

    longest = max(len(a), len(b))
    if longest == 0:
        return 100

    distance = Levenshtein.distance(a, b)
    return 100 - (distance * 100) // longest
