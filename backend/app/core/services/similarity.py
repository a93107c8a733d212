from __future__ import annotations

SUBSTRING_SIMILARITY = 0.85


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance over code points."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized likeness of two tag names in [0, 1].

    Identical names score 1.0; a case-sensitive substring relation scores 0.85
    without computing the distance; otherwise `1 - distance / max(len)`.
    Two empty strings score 0.
    """
    if a == b:
        return 1.0 if a else 0.0

    if a in b or b in a:
        return SUBSTRING_SIMILARITY

    longest = max(len(a), len(b))
    return 1.0 - levenshtein_distance(a, b) / longest
