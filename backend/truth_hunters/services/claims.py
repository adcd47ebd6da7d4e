"""Claims reference data: the bundled dataset plus instructor-authored claims.

The catalog is owned by the Flask app (``app.extensions['claims_catalog']``)
rather than living in module globals, and loads the bundled file once.
"""

import json
import logging
import os
import random
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_CLAIMS_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'data', 'claims.json')

ANSWERS = ('TRUE', 'FALSE', 'MIXED')
SOURCES = ('ai-generated', 'expert-sourced')
DIFFICULTIES = ('easy', 'medium', 'hard')
GAME_DIFFICULTIES = DIFFICULTIES + ('mixed',)
REQUIRED_FIELDS = ('id', 'text', 'answer', 'source', 'explanation', 'subject', 'difficulty')


class ClaimsLoadError(ValueError):
    pass


@dataclass(frozen=True)
class Claim:
    id: str
    text: str
    answer: str
    source: str
    explanation: str
    subject: str
    difficulty: str
    error_pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Claim':
        return cls(
            id=str(data['id']),
            text=data['text'],
            answer=data['answer'],
            source=data['source'],
            explanation=data['explanation'],
            subject=data['subject'],
            difficulty=data['difficulty'],
            error_pattern=data.get('error_pattern'),
        )

    def to_dict(self, reveal: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if not reveal:
            for hidden in ('answer', 'explanation', 'error_pattern', 'source'):
                data.pop(hidden, None)
        return data


def validate_claims(claims: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Check required fields, enum values and id uniqueness."""
    ids = set()
    duplicates: List[str] = []
    invalid_claims: List[Dict[str, Any]] = []
    total = 0

    for index, claim in enumerate(claims):
        total += 1
        missing = [f for f in REQUIRED_FIELDS if not claim.get(f)]
        if missing:
            invalid_claims.append({'index': index, 'id': claim.get('id'),
                                   'reason': f"Missing required field(s): {', '.join(missing)}"})
            continue

        if claim['id'] in ids:
            duplicates.append(claim['id'])
        else:
            ids.add(claim['id'])

        if claim['answer'] not in ANSWERS:
            invalid_claims.append({'index': index, 'id': claim['id'], 'reason': f"Invalid answer: {claim['answer']}"})
        if claim['source'] not in SOURCES:
            invalid_claims.append({'index': index, 'id': claim['id'], 'reason': f"Invalid source: {claim['source']}"})
        if claim['difficulty'] not in DIFFICULTIES:
            invalid_claims.append({'index': index, 'id': claim['id'],
                                   'reason': f"Invalid difficulty: {claim['difficulty']}"})

    return {
        'valid': not duplicates and not invalid_claims,
        'duplicates': duplicates,
        'invalid_claims': invalid_claims,
        'total_claims': total,
    }


class ClaimsCatalog:
    def __init__(self, path: Optional[str] = None):
        self.path = path or DEFAULT_CLAIMS_PATH
        self._claims: Optional[List[Claim]] = None
        self._error_patterns: List[Dict[str, str]] = []

    @property
    def is_loaded(self) -> bool:
        return self._claims is not None

    def load(self) -> List[Claim]:
        if self._claims is not None:
            return self._claims
        try:
            with open(self.path, encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            raise ClaimsLoadError(f'Failed to load claims database: {exc}') from exc

        records = raw.get('claims', []) if isinstance(raw, dict) else raw
        report = validate_claims(records)
        if not report['valid']:
            logger.warning(f"[claims] validation failed: {report['duplicates']} {report['invalid_claims']}")
        try:
            claims = [Claim.from_dict(r) for r in records]
        except (KeyError, TypeError) as exc:
            raise ClaimsLoadError(f'Malformed claim record: {exc}') from exc

        self._error_patterns = raw.get('error_patterns', []) if isinstance(raw, dict) else []
        self._claims = claims
        logger.info(f"[claims] loaded {len(claims)} claims from {self.path}")
        return claims

    def error_patterns(self) -> List[Dict[str, str]]:
        self.load()
        return list(self._error_patterns)

    def all(self, extra: Sequence[Claim] = ()) -> List[Claim]:
        return list(self.load()) + list(extra)

    def by_id(self, extra: Sequence[Claim] = ()) -> Dict[str, Claim]:
        return {c.id: c for c in self.all(extra)}

    def filtered(self, difficulty: Optional[str] = None, subjects: Optional[Iterable[str]] = None,
                 extra: Sequence[Claim] = ()) -> List[Claim]:
        wanted_subjects = set(subjects) if subjects else None
        out = []
        for claim in self.all(extra):
            if difficulty and difficulty != 'mixed' and claim.difficulty != difficulty:
                continue
            if wanted_subjects and claim.subject not in wanted_subjects:
                continue
            out.append(claim)
        return out


def pick_claims(claims: Sequence[Claim], count: int, difficulty: str = 'mixed',
                rng: Optional[random.Random] = None) -> List[Claim]:
    """Choose ``count`` claims for a game; 'mixed' draws from every difficulty."""
    rng = rng or random.Random()
    pool = [c for c in claims if difficulty == 'mixed' or c.difficulty == difficulty]
    if len(pool) < count:
        raise ClaimsLoadError(f'Only {len(pool)} {difficulty} claims available, {count} requested')
    return rng.sample(pool, count)
