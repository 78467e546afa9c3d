"""Levenshtein edit distance and the similarity percentage derived from it."""

# Longer inputs are truncated so pasted text can't trigger a quadratic blowup
MAX_DISTANCE_INPUT = 1000


def levenshtein_distance(a: str, b: str) -> int:
    """Return the minimum number of single-character edits turning ``a`` into ``b``.

    Insertions, deletions and substitutions each cost 1. Inputs longer than
    ``MAX_DISTANCE_INPUT`` characters are truncated first.
    """
    a = a[:MAX_DISTANCE_INPUT]
    b = b[:MAX_DISTANCE_INPUT]

    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str, distance: int | None = None) -> float:
    """Return how alike two strings are as a percentage in [0, 100].

    ``100 * (1 - distance / max(len(a), len(b)))``; two empty strings are
    identical (100).
    """
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 100.0
    if distance is None:
        distance = levenshtein_distance(a, b)
    percent = 100 * (max_length - distance) / max_length
    return max(0.0, min(100.0, percent))
