import json
import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from truth_hunters import db
from truth_hunters.models import SavedGameState

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class GameStateStore:
    """Resumable client game state, keyed by a client-chosen session key.

    ``load`` treats missing, corrupt, wrong-version and stale entries alike:
    there is nothing to resume.
    """

    def __init__(self, max_age_hours: float = 24, clock=time.time):
        self.max_age_seconds = float(max_age_hours) * 3600
        self.clock = clock

    def save(self, key: str, state: Dict[str, Any]) -> bool:
        now = self.clock()
        payload = dict(state)
        payload['saved_at'] = now
        payload['version'] = STATE_VERSION
        try:
            row = db.session.get(SavedGameState, key)
            if row is None:
                row = SavedGameState(key=key)
            row.payload = json.dumps(payload)
            row.saved_at = now
            row.version = STATE_VERSION
            db.session.add(row)
            db.session.commit()
            return True
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            db.session.rollback()
            logger.warning(f"[saved-state] save failed key={key}: {exc}")
            return False

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        row = db.session.get(SavedGameState, key)
        if row is None:
            return None
        try:
            state = json.loads(row.payload)
        except (TypeError, ValueError):
            logger.warning(f"[saved-state] corrupt payload key={key}")
            return None
        if not isinstance(state, dict):
            return None
        if state.get('version', row.version) != STATE_VERSION:
            return None
        saved_at = state.get('saved_at', row.saved_at)
        if not isinstance(saved_at, (int, float)) or self.clock() - saved_at > self.max_age_seconds:
            return None
        return state

    def has_saved_game(self, key: str) -> bool:
        return self.load(key) is not None

    def clear(self, key: str) -> None:
        try:
            SavedGameState.query.filter_by(key=key).delete()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

    def summary(self, key: str) -> Optional[Dict[str, Any]]:
        state = self.load(key)
        if state is None:
            return None
        return {
            'team_name': state.get('team_name'),
            'current_round': state.get('current_round'),
            'total_rounds': state.get('total_rounds'),
            'score': state.get('score'),
            'saved_at': state.get('saved_at'),
        }
