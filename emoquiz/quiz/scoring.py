"""Point values for graded answers."""

from emoquiz.quiz.types import MatchOutcome

BASE_POINTS: int = 10
MAX_TIME_BONUS: int = 5
MAX_POINTS_PER_QUESTION: int = BASE_POINTS + MAX_TIME_BONUS

# (upper bound on reaction/window ratio, bonus), checked in order.
_BONUS_TIERS: tuple[tuple[float, int], ...] = (
    (0.25, 5),
    (0.50, 4),
    (0.75, 2),
)
_LATE_BONUS = 1


def base_points(outcome: MatchOutcome) -> int:
    return BASE_POINTS if outcome == MatchOutcome.CORRECT else 0


def time_bonus(reaction_time_ms: float | None, window_duration_ms: float) -> int:
    """Speed bonus for an answer detected *reaction_time_ms* into the window.

    No reaction time means no bonus.
    """
    if reaction_time_ms is None:
        return 0
    if window_duration_ms <= 0:
        return _LATE_BONUS

    ratio = reaction_time_ms / window_duration_ms
    for limit, bonus in _BONUS_TIERS:
        if ratio <= limit:
            return bonus
    return _LATE_BONUS


def score(
    outcome: MatchOutcome,
    reaction_time_ms: float | None,
    window_duration_ms: float,
) -> tuple[int, int, int]:
    """Return ``(base, bonus, total)`` for a graded outcome."""
    base = base_points(outcome)
    bonus = (
        time_bonus(reaction_time_ms, window_duration_ms)
        if outcome == MatchOutcome.CORRECT
        else 0
    )
    return base, bonus, base + bonus
