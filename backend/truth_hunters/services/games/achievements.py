from dataclasses import dataclass
from typing import Callable, List

from .scoring import GameStats


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    condition: Callable[[GameStats], bool]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
        }


ACHIEVEMENTS: List[Achievement] = [
    Achievement('first-truth', 'Truth Seeker', 'Get your first answer correct', '🔍',
                lambda s: s.total_correct >= 1),
    Achievement('streak-3', 'On Fire', 'Get 3 correct answers in a row', '🔥',
                lambda s: s.max_streak >= 3),
    Achievement('streak-5', 'Unstoppable', 'Get 5 correct answers in a row', '⚡',
                lambda s: s.max_streak >= 5),
    Achievement('ai-detector', 'AI Detector', 'Correctly identify 3 AI-generated claims', '🤖',
                lambda s: s.ai_caught_correct >= 3),
    Achievement('calibrated', 'Well Calibrated', 'Predict your final score within ±2 points', '🎯',
                lambda s: s.calibration_bonus),
    Achievement('humble-learner', 'Humble Learner', 'Use low confidence and get it right 3+ times', '🌱',
                lambda s: s.humble_correct >= 3),
    Achievement('risk-taker', 'Calculated Risk', 'Use high confidence and get it right 3+ times', '💎',
                lambda s: s.bold_correct >= 3),
    Achievement('perfect-round', 'Perfect Game', 'Get every answer correct in a game', '👑',
                lambda s: s.perfect_game),
    Achievement('myth-buster', 'Myth Buster', 'Correctly identify 3 myth perpetuation errors', '💥',
                lambda s: s.myths_busted >= 3),
    Achievement('mixed-master', 'Nuance Navigator', 'Correctly identify 3 MIXED claims', '⚖️',
                lambda s: s.mixed_correct >= 3),
    Achievement('team-player', 'Team Spirit', 'Complete a full game with your team', '🤝',
                lambda s: s.game_completed),
    Achievement('comeback-kid', 'Comeback Kid', 'Win after being in negative points', '🚀',
                lambda s: s.comeback),
]


def earned_achievements(stats: GameStats) -> List[Achievement]:
    return [a for a in ACHIEVEMENTS if a.condition(stats)]
