import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

# (confidence) -> (points when correct, points when incorrect)
POINTS_MATRIX = {
    1: (1, -1),
    2: (3, -3),
    3: (5, -6),
}

DIFFICULTY_MULTIPLIERS = {
    'easy': 1,
    'medium': 1.5,
    'hard': 2,
    'mixed': 1,
}

MYTH_PATTERN = 'Myth perpetuation'


class InvalidInput(ValueError):
    """Raised for a confidence outside 1-3 or a non-boolean correctness flag."""


@dataclass(frozen=True)
class RoundResult:
    claim_id: str
    correct: bool
    points: int
    confidence: Optional[int]


@dataclass
class GameStats:
    total_correct: int = 0
    total_incorrect: int = 0
    max_streak: int = 0
    current_streak: int = 0
    ai_caught_correct: int = 0
    humble_correct: int = 0
    bold_correct: int = 0
    mixed_correct: int = 0
    myths_busted: int = 0
    perfect_game: bool = False
    game_completed: bool = True
    calibration_bonus: bool = False
    comeback: bool = False
    lowest_point: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_points(correct: bool, confidence: int, difficulty: Optional[str] = 'easy') -> int:
    """Points earned (or lost) for one answered claim.

    The confidence-3 row is asymmetric on purpose: a wrong high-confidence
    answer costs more than a right one earns. Totals are rounded away from
    zero, so -1.5 becomes -2 and 1.5 becomes 2.
    """
    if not isinstance(correct, bool):
        raise InvalidInput(f'correct must be a boolean, got {correct!r}')
    if isinstance(confidence, bool) or not isinstance(confidence, int) or confidence not in POINTS_MATRIX:
        raise InvalidInput(f'confidence must be 1, 2 or 3, got {confidence!r}')

    on_correct, on_incorrect = POINTS_MATRIX[confidence]
    base_points = on_correct if correct else on_incorrect
    multiplier = DIFFICULTY_MULTIPLIERS.get(difficulty, 1)
    total = base_points * multiplier

    if total > 0:
        return _round_half_up(total)
    return -_round_half_up(abs(total))


def _index_claims(claims) -> Mapping[str, Any]:
    if claims is None:
        return {}
    if isinstance(claims, Mapping):
        return claims
    return {c.id: c for c in claims}


def calculate_game_stats(
    results: Optional[Iterable[Any]],
    claims,
    final_score: int,
    predicted_score: int,
) -> GameStats:
    """Fold the ordered round results of a finished game into GameStats.

    Order matters: streaks and the lowest running score depend on it.
    Results whose claim is missing from ``claims`` still count towards the
    totals but get no claim-dependent attribution.
    """
    results = list(results or [])
    by_id = _index_claims(claims)
    stats = GameStats(calibration_bonus=abs(final_score - predicted_score) <= 2)

    running_score = 0
    current_streak = 0
    for result in results:
        claim = by_id.get(result.claim_id)
        if claim is None:
            logger.warning(f"[stats-unmatched] claim={result.claim_id} not in lookup, skipping attribution")

        if result.correct:
            stats.total_correct += 1
            current_streak += 1
            stats.max_streak = max(stats.max_streak, current_streak)

            if result.confidence == 1:
                stats.humble_correct += 1
            if result.confidence == 3:
                stats.bold_correct += 1

            if claim is not None:
                if claim.answer == 'MIXED':
                    stats.mixed_correct += 1
                if claim.source == 'ai-generated':
                    stats.ai_caught_correct += 1
                if claim.error_pattern == MYTH_PATTERN:
                    stats.myths_busted += 1
        else:
            stats.total_incorrect += 1
            current_streak = 0

        running_score += result.points
        stats.lowest_point = min(stats.lowest_point, running_score)

    stats.current_streak = current_streak
    stats.perfect_game = stats.total_correct == len(results) and len(results) > 0
    stats.comeback = stats.lowest_point < 0 and final_score > 0
    return stats
