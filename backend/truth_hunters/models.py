from truth_hunters import db
import json
import string
import random
import time


def _loads(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(64), nullable=False)
    last_initial = db.Column(db.String(4), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    game = db.relationship('Game', back_populates='players')

    @property
    def display_name(self):
        return f"{self.first_name} {self.last_initial}."

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_initial': self.last_initial,
            'display_name': self.display_name,
            'game_id': self.game_id,
        }


def generate_game_code(length=4):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(4), unique=True, index=True)
    team_name = db.Column(db.String(64), nullable=False)
    class_code = db.Column(db.String(32), nullable=True, index=True)
    status = db.Column(db.String(32), default='lobby')  # lobby, in_progress, finished
    stage = db.Column(db.String(32), nullable=True)  # playing, result, finished
    difficulty = db.Column(db.String(16), default='easy')
    score = db.Column(db.Integer, default=0, nullable=False)
    predicted_score = db.Column(db.Integer, nullable=True)
    current_round = db.Column(db.Integer, nullable=True)
    total_rounds = db.Column(db.Integer, nullable=False)
    claim_order = db.Column(db.Text, nullable=True)  # JSON-encoded list of claim ids
    stats = db.Column(db.Text, nullable=True)  # JSON-encoded GameStats once finished
    achievements = db.Column(db.Text, nullable=True)  # JSON-encoded achievement ids
    created_at = db.Column(db.Float, default=time.time)
    finished_at = db.Column(db.Float, nullable=True)
    players = db.relationship('Player', back_populates='game', cascade='all, delete-orphan')
    rounds = db.relationship('GameRound', back_populates='game', cascade='all, delete-orphan',
                             order_by='GameRound.round_number')

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()

    @property
    def claim_ids(self):
        return _loads(self.claim_order, [])

    @property
    def current_claim_id(self):
        ids = self.claim_ids
        idx = (self.current_round or 0) - 1
        return ids[idx] if 0 <= idx < len(ids) else None

    @property
    def current_round_record(self):
        for r in self.rounds:
            if r.round_number == self.current_round:
                return r
        return None

    def summary(self):
        """Live session summary pushed to leaderboard subscribers."""
        return {
            'game_code': self.game_code,
            'team_name': self.team_name,
            'class_code': self.class_code,
            'score': self.score,
            'status': self.status,
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'players': [p.display_name for p in self.players],
        }

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'team_name': self.team_name,
            'class_code': self.class_code,
            'status': self.status,
            'stage': self.stage,
            'difficulty': self.difficulty,
            'score': self.score,
            'predicted_score': self.predicted_score,
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'current_claim_id': self.current_claim_id,
            'players': [p.to_dict() for p in self.players],
            'rounds': [r.to_dict() for r in self.rounds],
            'stats': _loads(self.stats, None),
            'achievements': _loads(self.achievements, []),
        }


class GameRound(db.Model):
    """One submitted (or timed out / forfeited) claim evaluation."""
    __tablename__ = 'game_round'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    round_number = db.Column(db.Integer, nullable=False)
    claim_id = db.Column(db.String(64), nullable=False)
    verdict = db.Column(db.String(8), nullable=True)
    confidence = db.Column(db.Integer, nullable=True)
    correct = db.Column(db.Boolean, default=False, nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)
    tab_switches = db.Column(db.Integer, default=0, nullable=False)
    time_hidden_ms = db.Column(db.Integer, default=0, nullable=False)
    outcome = db.Column(db.String(16), default='answered', nullable=False)  # answered, timeout, forfeit
    game = db.relationship('Game', back_populates='rounds')

    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', name='uq_game_round_number'),)

    def to_dict(self):
        return {
            'round_number': self.round_number,
            'claim_id': self.claim_id,
            'verdict': self.verdict,
            'confidence': self.confidence,
            'correct': self.correct,
            'points': self.points,
            'tab_switches': self.tab_switches,
            'time_hidden_ms': self.time_hidden_ms,
            'outcome': self.outcome,
        }


class CustomClaim(db.Model):
    __tablename__ = 'custom_claim'
    id = db.Column(db.String(64), primary_key=True)
    text = db.Column(db.Text, nullable=False)
    answer = db.Column(db.String(8), nullable=False)
    source = db.Column(db.String(32), nullable=False)
    explanation = db.Column(db.Text, nullable=False)
    error_pattern = db.Column(db.String(64), nullable=True)
    subject = db.Column(db.String(64), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.Float, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'text': self.text,
            'answer': self.answer,
            'source': self.source,
            'explanation': self.explanation,
            'error_pattern': self.error_pattern,
            'subject': self.subject,
            'difficulty': self.difficulty,
        }


class SavedGameState(db.Model):
    __tablename__ = 'saved_game_state'
    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.Text, nullable=False)
    saved_at = db.Column(db.Float, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
