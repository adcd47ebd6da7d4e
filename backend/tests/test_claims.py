import json
import random

import pytest

from truth_hunters.services.claims import (
    ClaimsCatalog,
    ClaimsLoadError,
    pick_claims,
    validate_claims,
)


def test_bundled_database_is_valid_and_varied():
    catalog = ClaimsCatalog()
    claims = catalog.load()
    assert len(claims) >= 30
    assert {c.difficulty for c in claims} == {'easy', 'medium', 'hard'}
    assert {c.source for c in claims} == {'ai-generated', 'expert-sourced'}
    assert {c.answer for c in claims} == {'TRUE', 'FALSE', 'MIXED'}
    assert len(catalog.error_patterns()) >= 4


def test_load_is_memoized():
    catalog = ClaimsCatalog()
    assert catalog.is_loaded is False
    first = catalog.load()
    assert catalog.is_loaded is True
    assert catalog.load() is first


def test_failed_load_raises_and_can_retry(tmp_path):
    path = tmp_path / 'claims.json'
    catalog = ClaimsCatalog(str(path))
    with pytest.raises(ClaimsLoadError):
        catalog.load()
    assert catalog.is_loaded is False

    path.write_text(json.dumps({'claims': [{
        'id': 'x-1', 'text': 'Claim', 'answer': 'TRUE', 'source': 'expert-sourced',
        'explanation': 'Because', 'subject': 'Physics', 'difficulty': 'easy',
    }]}))
    assert [c.id for c in catalog.load()] == ['x-1']


def test_validate_claims_reports_problems():
    report = validate_claims([
        {'id': 'a', 'text': 't', 'answer': 'TRUE', 'source': 'expert-sourced', 'explanation': 'e',
         'subject': 's', 'difficulty': 'easy'},
        {'id': 'a', 'text': 't', 'answer': 'MAYBE', 'source': 'expert-sourced', 'explanation': 'e',
         'subject': 's', 'difficulty': 'impossible'},
        {'id': 'b', 'text': ''},
    ])
    assert report['valid'] is False
    assert report['duplicates'] == ['a']
    reasons = [r['reason'] for r in report['invalid_claims']]
    assert 'Invalid answer: MAYBE' in reasons
    assert 'Invalid difficulty: impossible' in reasons
    assert any(r.startswith('Missing required field') for r in reasons)
    assert report['total_claims'] == 3


def test_filtered_by_difficulty_and_subject():
    catalog = ClaimsCatalog()
    easy = catalog.filtered(difficulty='easy')
    assert easy and all(c.difficulty == 'easy' for c in easy)
    assert len(catalog.filtered(difficulty='mixed')) == len(catalog.load())
    biology = catalog.filtered(subjects=['Biology'])
    assert biology and all(c.subject == 'Biology' for c in biology)


def test_pick_claims():
    claims = ClaimsCatalog().load()
    picked = pick_claims(claims, 5, 'hard', rng=random.Random(7))
    assert len(picked) == 5
    assert len({c.id for c in picked}) == 5
    assert all(c.difficulty == 'hard' for c in picked)

    with pytest.raises(ClaimsLoadError):
        pick_claims(claims, 500, 'easy')


def test_hidden_fields_while_playing():
    claim = ClaimsCatalog().load()[0]
    hidden = claim.to_dict(reveal=False)
    assert 'answer' not in hidden
    assert 'explanation' not in hidden
    assert hidden['text'] == claim.text
