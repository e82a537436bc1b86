"""
Elo aggregation over the match ledger.

Ratings are never stored: they are recomputed from the full, ordered match
history on every read.
"""

import math

from ledger.constants import DEFAULT_RATING, ELO_SCALE, K_FACTOR
from ledger.models import normalize_matches


def expected_score(rating_a: float, rating_b: float) -> float:
    """Expected score of A against B under the logistic Elo model."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / ELO_SCALE))


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with .5 always going towards +infinity.

    2.5 -> 3, -2.5 -> -2. This is the rounding used for every rating update.
    """
    return math.floor(value + 0.5)


def aggregate(matches, k_factor: int = K_FACTOR, initial_rating: int = DEFAULT_RATING) -> dict[str, int]:
    """
    Fold a match history into current ratings.

    Matches are applied left to right in the order given; order matters,
    since every update depends on the ratings produced by earlier matches.
    A participant's first appearance starts from initial_rating.

    Args:
        matches: Sequence of Match objects (or raw stored dicts)
        k_factor: Maximum rating swing per match
        initial_rating: Rating for participants with no prior matches

    Returns:
        dict: {participant: rating}. Empty for an empty or non-sequence input.
    """
    if not isinstance(matches, (list, tuple)):
        return {}

    ratings = {}
    for match in normalize_matches(matches):
        rating_a = ratings.setdefault(match.participant_a, initial_rating)
        rating_b = ratings.setdefault(match.participant_b, initial_rating)

        expected_a = expected_score(rating_a, rating_b)
        expected_b = 1 - expected_a

        actual_a, actual_b = match.outcome.scores()

        ratings[match.participant_a] = round_half_up(rating_a + k_factor * (actual_a - expected_a))
        ratings[match.participant_b] = round_half_up(rating_b + k_factor * (actual_b - expected_b))

    return ratings


def leaderboard(ratings: dict[str, int]) -> list[tuple[str, int]]:
    """Ratings ordered highest first; equal ratings are ordered by name."""
    return sorted(ratings.items(), key=lambda item: (-item[1], item[0]))
