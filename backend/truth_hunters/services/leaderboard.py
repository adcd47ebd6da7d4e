import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from truth_hunters.models import Game

logger = logging.getLogger(__name__)

Summary = Dict[str, Any]


def _player_key(player: Mapping[str, Any]) -> str:
    return f"{player['first_name']}_{player['last_initial']}".lower()


def aggregate_player_scores(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Roll finished game records up per player.

    Every player on a team is credited with the team's score for that game.
    """
    players: Dict[str, Dict[str, Any]] = {}
    for game in records:
        for player in game.get('players') or []:
            key = _player_key(player)
            entry = players.setdefault(key, {
                'display_name': f"{player['first_name']} {player['last_initial']}.",
                'total_score': 0,
                'games_played': 0,
                'best_score': None,
            })
            entry['total_score'] += game['score']
            entry['games_played'] += 1
            best = entry['best_score']
            entry['best_score'] = game['score'] if best is None else max(best, game['score'])

    out = []
    for entry in players.values():
        if entry['games_played'] <= 0:
            continue
        entry['avg_score'] = int(round(entry['total_score'] / entry['games_played']))
        out.append(entry)
    out.sort(key=lambda p: p['best_score'], reverse=True)
    return out


def top_players(records: Iterable[Mapping[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    return aggregate_player_scores(records)[:limit]


def finished_game_records(class_code: Optional[str] = None) -> List[Dict[str, Any]]:
    query = Game.query.filter_by(status='finished')
    if class_code:
        query = query.filter_by(class_code=class_code.upper())
    records = []
    for g in query.all():
        records.append({
            'game_code': g.game_code,
            'team_name': g.team_name,
            'class_code': g.class_code,
            'score': g.score,
            'difficulty': g.difficulty,
            'total_rounds': g.total_rounds,
            'finished_at': g.finished_at,
            'players': [{'first_name': p.first_name, 'last_initial': p.last_initial} for p in g.players],
        })
    return records


def top_teams(limit: int = 10, class_code: Optional[str] = None) -> List[Dict[str, Any]]:
    records = finished_game_records(class_code)
    records.sort(key=lambda r: (r['score'], -(r['finished_at'] or 0)), reverse=True)
    return records[:limit]


class LeaderboardFeed:
    """In-process publish/subscribe for live session summaries."""

    def __init__(self):
        self._subscribers: List[Callable[[Summary], Any]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Summary], Any]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, summary: Summary) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(summary)
            except Exception:
                logger.exception(f"[leaderboard] subscriber failed for game={summary.get('game_code')}")
