import json
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from truth_hunters import db, socketio
from truth_hunters.models import Game, GameRound, Player, CustomClaim
from truth_hunters.services.claims import Claim, pick_claims
from .achievements import earned_achievements
from .scoring import GameStats, RoundResult, calculate_game_stats, calculate_points


class GameFlowError(ValueError):
    """An operation arrived in a stage where it is not allowed."""


def runtimes():
    return current_app.extensions['round_runtimes']


def catalog():
    return current_app.extensions['claims_catalog']


def leaderboard_feed():
    return current_app.extensions['leaderboard_feed']


def custom_claims() -> List[Claim]:
    return [Claim.from_dict(c.to_dict()) for c in CustomClaim.query.all()]


def claims_by_id() -> Dict[str, Claim]:
    return catalog().by_id(custom_claims())


def emit_state(game: Game) -> None:
    socketio.emit('state_update', {'game_code': game.game_code}, to=f"game:{game.game_code}", namespace='/ws')


def publish_summary(game: Game) -> None:
    leaderboard_feed().publish(game.summary())


@contextmanager
def _transition(game: Game):
    """Hold the runtime lock and work on a fresh copy of the game row.

    Timer expiry and forfeit callbacks take the same lock, so a stage check
    made inside this block still holds when the round is written.
    """
    with runtimes().lock:
        db.session.refresh(game)
        yield game


def create_game(team_name: str, players: Sequence[Tuple[str, str]], rounds: int, difficulty: str,
                class_code: Optional[str] = None) -> Game:
    pool = catalog().filtered(difficulty=difficulty, extra=custom_claims())
    chosen = pick_claims(pool, rounds, difficulty)
    game = Game(
        team_name=team_name,
        class_code=class_code.upper() if class_code else None,
        difficulty=difficulty,
        total_rounds=rounds,
        claim_order=json.dumps([c.id for c in chosen]),
        score=0,
    )
    db.session.add(game)
    for first_name, last_initial in players:
        game.players.append(Player(first_name=first_name, last_initial=last_initial))
    db.session.commit()
    current_app.logger.info(f"[game-create] game={game.game_code} team={team_name} rounds={rounds} difficulty={difficulty}")
    return game


def start_game(game: Game) -> Game:
    with _transition(game):
        if game.status == 'in_progress':
            return game
        if game.status != 'lobby':
            raise GameFlowError('Game is not in lobby')
        game.status = 'in_progress'
        game.stage = 'playing'
        game.current_round = 1
        db.session.add(game)
        db.session.commit()
        _begin_round(game)
    emit_state(game)
    publish_summary(game)
    return game


def _begin_round(game: Game) -> None:
    duration = int(current_app.config.get('ROUND_DURATION_SEC', 60))
    registry = runtimes()
    with registry.lock:
        registry.ensure(game.game_code).begin_round(duration)
    current_app.logger.info(f"[round-start] game={game.game_code} round={game.current_round} duration={duration}s")


def _record_round(game: Game, outcome: str, points: int, verdict: Optional[str] = None,
                  confidence: Optional[int] = None, correct: bool = False) -> GameRound:
    # caller holds the runtime lock
    runtime = runtimes().get(game.game_code)
    monitor = runtime.monitor if runtime else None
    record = GameRound(
        round_number=game.current_round,
        claim_id=game.current_claim_id,
        verdict=verdict,
        confidence=confidence,
        correct=correct,
        points=points,
        tab_switches=monitor.tab_switches if monitor else 0,
        time_hidden_ms=monitor.total_time_hidden if monitor else 0,
        outcome=outcome,
    )
    game.rounds.append(record)
    game.score = (game.score or 0) + points
    game.stage = 'result'
    if runtime:
        runtime.end_round()
    db.session.add(game)
    try:
        db.session.commit()
    except IntegrityError:
        # another worker already stored this round
        db.session.rollback()
        current_app.logger.warning(f"[round-close] game={game.game_code} round already recorded, dropping {outcome}")
        raise GameFlowError('Round already closed')
    current_app.logger.info(
        f"[round-close] game={game.game_code} round={game.current_round} outcome={outcome} points={points} score={game.score}"
    )
    emit_state(game)
    publish_summary(game)
    return record


def _require_playing(game: Game) -> None:
    if game.status != 'in_progress' or game.stage != 'playing':
        raise GameFlowError('Not accepting answers at this time')


def submit_answer(game: Game, verdict: str, confidence: int) -> Tuple[GameRound, Optional[Claim]]:
    """Score the team's verdict on the current claim.

    Raises InvalidInput (from the calculator) for a bad confidence; the
    round stays open in that case.
    """
    with _transition(game):
        _require_playing(game)
        claim = claims_by_id().get(game.current_claim_id)
        correct = claim is not None and verdict == claim.answer
        points = calculate_points(correct, confidence, game.difficulty)

        # a timer callback on this thread may have closed the round meanwhile
        _require_playing(game)
        runtime = runtimes().get(game.game_code)
        penalty = runtime.monitor.penalty if runtime else 0
        record = _record_round(game, 'answered', points - penalty, verdict=verdict, confidence=confidence,
                               correct=correct)
    return record, claim


def _open_round(game_code: str) -> Optional[Game]:
    game = Game.query.filter_by(game_code=game_code).first()
    if not game:
        return None
    db.session.refresh(game)
    if game.status != 'in_progress' or game.stage != 'playing':
        return None
    return game


def close_round_timeout(game_code: str) -> Optional[GameRound]:
    with runtimes().lock:
        game = _open_round(game_code)
        if game is None:
            return None
        try:
            record = _record_round(game, 'timeout', 0)
        except GameFlowError:
            return None
    socketio.emit('round_timeout', {'game_code': game.game_code, 'round': game.current_round},
                  to=f"game:{game.game_code}", namespace='/ws')
    return record


def close_round_forfeit(game_code: str) -> Optional[GameRound]:
    with runtimes().lock:
        game = _open_round(game_code)
        if game is None:
            return None
        runtime = runtimes().get(game_code)
        penalty = runtime.monitor.penalty if runtime else int(current_app.config.get('FORFEIT_PENALTY', 5))
        try:
            record = _record_round(game, 'forfeit', -penalty)
        except GameFlowError:
            return None
    socketio.emit('round_forfeit', {'game_code': game.game_code, 'round': game.current_round, 'penalty': penalty},
                  to=f"game:{game.game_code}", namespace='/ws')
    return record


def notify_tab_switch(game_code: str, count: int) -> None:
    current_app.logger.info(f"[tab-switch] game={game_code} count={count}")
    socketio.emit('tab_switch', {'game_code': game_code, 'count': count}, to=f"game:{game_code}", namespace='/ws')


def handle_visibility(game: Game, hidden: bool) -> Optional[Dict[str, Any]]:
    """Fan a tab visibility change out to the game's timer and integrity monitor."""
    registry = runtimes()
    runtime = registry.get(game.game_code)
    if runtime is None:
        return None
    with registry.lock:
        runtime.handle_visibility(hidden)
        return runtime.to_dict()


def advance_round(game: Game) -> Game:
    with _transition(game):
        if game.status != 'in_progress' or game.stage != 'result':
            raise GameFlowError('Round is still in progress')
        if (game.current_round or 0) >= game.total_rounds:
            raise GameFlowError('All rounds played; finish the game')
        game.current_round += 1
        game.stage = 'playing'
        db.session.add(game)
        db.session.commit()
        _begin_round(game)
    emit_state(game)
    return game


def round_results(game: Game) -> List[RoundResult]:
    return [RoundResult(claim_id=r.claim_id, correct=r.correct, points=r.points, confidence=r.confidence)
            for r in game.rounds]


def finish_game(game: Game, predicted_score: int) -> Tuple[GameStats, List[Dict[str, Any]]]:
    with _transition(game):
        if game.status != 'in_progress' or game.stage != 'result' or (game.current_round or 0) < game.total_rounds:
            raise GameFlowError('Game can only be finished after the last round')

        stats = calculate_game_stats(round_results(game), claims_by_id(), game.score, predicted_score)
        earned = [a.to_dict() for a in earned_achievements(stats)]

        game.predicted_score = predicted_score
        game.stats = json.dumps(stats.to_dict())
        game.achievements = json.dumps([a['id'] for a in earned])
        game.status = 'finished'
        game.stage = 'finished'
        game.finished_at = time.time()
        db.session.add(game)
        db.session.commit()

        runtimes().discard(game.game_code)
    current_app.logger.info(f"[finish] game={game.game_code} score={game.score} achievements={len(earned)}")
    emit_state(game)
    publish_summary(game)
    return stats, earned


def abandon_game(game: Game) -> None:
    code = game.game_code
    runtimes().discard(code)
    db.session.delete(game)
    db.session.commit()
    current_app.logger.info(f"[abandon] game={code}")
    socketio.emit('session_ended', {'game_code': code}, to=f"game:{code}", namespace='/ws')
