import pytest

from truth_hunters.services.claims import Claim
from truth_hunters.services.games.scoring import (
    InvalidInput,
    RoundResult,
    calculate_game_stats,
    calculate_points,
)


@pytest.mark.parametrize('correct, confidence, expected', [
    (True, 1, 1), (False, 1, -1),
    (True, 2, 3), (False, 2, -3),
    (True, 3, 5), (False, 3, -6),
])
def test_base_points_easy(correct, confidence, expected):
    assert calculate_points(correct, confidence) == expected
    assert calculate_points(correct, confidence, 'easy') == expected


def test_medium_multiplier_rounds_away_from_zero():
    assert calculate_points(True, 1, 'medium') == 2    # 1.5 -> 2
    assert calculate_points(True, 2, 'medium') == 5    # 4.5 -> 5
    assert calculate_points(True, 3, 'medium') == 8    # 7.5 -> 8
    assert calculate_points(False, 1, 'medium') == -2  # -1.5 -> -2
    assert calculate_points(False, 2, 'medium') == -5  # -4.5 -> -5
    assert calculate_points(False, 3, 'medium') == -9


def test_hard_and_mixed_multipliers():
    assert calculate_points(True, 2, 'hard') == 6
    assert calculate_points(False, 3, 'hard') == -12
    assert calculate_points(True, 3, 'mixed') == 5
    assert calculate_points(False, 3, 'mixed') == -6


def test_unknown_or_missing_difficulty_uses_base_points():
    assert calculate_points(True, 3, 'legendary') == 5
    assert calculate_points(False, 2, None) == -3


@pytest.mark.parametrize('confidence', [0, 4, 1.5, None, '2', True])
def test_invalid_confidence_raises(confidence):
    with pytest.raises(InvalidInput):
        calculate_points(True, confidence)


@pytest.mark.parametrize('correct', [1, 'yes', None])
def test_non_boolean_correct_raises(correct):
    with pytest.raises(InvalidInput):
        calculate_points(correct, 1)


CLAIMS = [
    Claim(id='1', text='t', answer='TRUE', source='ai-generated', explanation='e', subject='s',
          difficulty='easy', error_pattern='Myth perpetuation'),
    Claim(id='2', text='t', answer='FALSE', source='expert-sourced', explanation='e', subject='s',
          difficulty='easy'),
    Claim(id='3', text='t', answer='MIXED', source='ai-generated', explanation='e', subject='s',
          difficulty='hard', error_pattern='Confident specificity'),
]


def rr(claim_id, correct, points, confidence):
    return RoundResult(claim_id=claim_id, correct=correct, points=points, confidence=confidence)


def test_empty_results_yield_zero_stats():
    stats = calculate_game_stats([], CLAIMS, 0, 0)
    assert stats.total_correct == 0
    assert stats.total_incorrect == 0
    assert stats.max_streak == 0
    assert stats.lowest_point == 0
    assert stats.perfect_game is False
    assert stats.comeback is False
    assert stats.game_completed is True

    assert calculate_game_stats(None, None, 0, 5).perfect_game is False


def test_counts_and_streak():
    results = [rr('1', True, 1, 1), rr('2', False, -3, 2), rr('3', True, 5, 3)]
    stats = calculate_game_stats(results, CLAIMS, 3, 3)
    assert stats.total_correct == 2
    assert stats.total_incorrect == 1
    assert stats.max_streak == 1
    assert stats.current_streak == 1


def test_max_streak_tracks_longest_run():
    results = [rr('1', True, 1, 1), rr('2', True, 3, 2), rr('3', False, -6, 3)]
    stats = calculate_game_stats(results, CLAIMS, -2, 0)
    assert stats.max_streak == 2
    assert stats.current_streak == 0


def test_perfect_game():
    results = [rr('1', True, 1, 1), rr('2', True, 3, 2)]
    assert calculate_game_stats(results, CLAIMS, 4, 4).perfect_game is True


def test_claim_dependent_attribution():
    results = [
        rr('1', True, 1, 1),    # ai + myth, humble
        rr('2', True, 5, 3),    # expert, bold
        rr('3', True, 3, 2),    # ai + MIXED
        rr('3', False, -6, 3),  # incorrect: no attribution
    ]
    stats = calculate_game_stats(results, CLAIMS, 3, 3)
    assert stats.ai_caught_correct == 2
    assert stats.myths_busted == 1
    assert stats.mixed_correct == 1
    assert stats.humble_correct == 1
    assert stats.bold_correct == 1


def test_unmatched_claim_ids_are_skipped():
    results = [rr('missing', True, 5, 3), rr('1', True, 1, 1)]
    stats = calculate_game_stats(results, {c.id: c for c in CLAIMS}, 6, 6)
    assert stats.total_correct == 2
    assert stats.bold_correct == 1
    assert stats.ai_caught_correct == 1
    assert stats.perfect_game is True


def test_comeback_and_lowest_point():
    # running: -3, -6, -1, +4
    results = [rr('2', False, -3, 2), rr('2', False, -3, 2), rr('3', True, 5, 3), rr('1', True, 5, 3)]
    stats = calculate_game_stats(results, CLAIMS, 4, 0)
    assert stats.lowest_point == -6
    assert stats.comeback is True


def test_no_comeback_when_never_negative_or_ending_non_positive():
    assert calculate_game_stats([rr('1', True, 1, 1)], CLAIMS, 1, 1).comeback is False
    assert calculate_game_stats([rr('2', False, -3, 2)], CLAIMS, -3, 0).comeback is False


def test_first_result_compared_against_zero():
    stats = calculate_game_stats([rr('1', True, 5, 3)], CLAIMS, 5, 5)
    assert stats.lowest_point == 0


def test_calibration_boundary():
    results = [rr('1', True, 1, 1)]
    assert calculate_game_stats(results, CLAIMS, 1, 3).calibration_bonus is True
    assert calculate_game_stats(results, CLAIMS, 1, -1).calibration_bonus is True
    assert calculate_game_stats(results, CLAIMS, 1, 4).calibration_bonus is False


def test_recomputation_is_idempotent():
    results = [rr('1', True, 1, 1), rr('2', False, -3, 2), rr('3', True, 5, 3)]
    first = calculate_game_stats(results, CLAIMS, 3, 1)
    second = calculate_game_stats(results, CLAIMS, 3, 1)
    assert first == second
    assert first.to_dict() == second.to_dict()
