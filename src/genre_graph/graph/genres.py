"""Genre compatibility: partial word matching between genre labels.

Two labels match when one is a case-insensitive substring of the other,
so "rock" matches "indie rock" and "pop" matches "k-pop". There is
no stemming and no taxonomy.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence


def has_match(genre_a: str, genre_b: str) -> bool:
    """True if either genre label contains the other (case-insensitive)."""
    a = genre_a.lower()
    b = genre_b.lower()
    return a in b or b in a


def match_score(genre_a: str, genre_b: str) -> int:
    """Count word pairs where one word contains the other.

    Words are split on whitespace. Not used for connection decisions.
    """
    words_a = genre_a.lower().split()
    words_b = genre_b.lower().split()
    score = 0
    for word_a in words_a:
        for word_b in words_b:
            if word_a in word_b or word_b in word_a:
                score += 1
    return score


def are_compatible(genres_a: Iterable[str], genres_b: Iterable[str]) -> bool:
    """True if at least one genre of A matches one genre of B."""
    genres_b = list(genres_b)
    return any(has_match(a, b) for a in genres_a for b in genres_b)


def find_compatible_genres(
    target_genres: Sequence[str],
    all_genres: Iterable[str],
) -> list[str]:
    """Return the genres from all_genres matching any target genre."""
    return [
        genre for genre in all_genres
        if any(has_match(target, genre) for target in target_genres)
    ]


def genre_set_score(genres_a: Iterable[str], genres_b: Iterable[str]) -> int:
    """Sum of match_score over every genre pair of two tracks."""
    genres_b = list(genres_b)
    return sum(match_score(a, b) for a in genres_a for b in genres_b)


class GenreMatcher:
    """Injectable wrapper around the module-level matching functions."""

    def has_match(self, genre_a: str, genre_b: str) -> bool:
        return has_match(genre_a, genre_b)

    def match_score(self, genre_a: str, genre_b: str) -> int:
        return match_score(genre_a, genre_b)

    def are_compatible(self, genres_a: Iterable[str], genres_b: Iterable[str]) -> bool:
        return are_compatible(genres_a, genres_b)

    def find_compatible_genres(
        self, target_genres: Sequence[str], all_genres: Iterable[str]
    ) -> list[str]:
        return find_compatible_genres(target_genres, all_genres)

    def genre_set_score(self, genres_a: Iterable[str], genres_b: Iterable[str]) -> int:
        return genre_set_score(genres_a, genres_b)
