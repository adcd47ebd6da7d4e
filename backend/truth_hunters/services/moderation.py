"""Name and free-text checks for content typed in by students."""

import re
from dataclasses import dataclass
from typing import Optional

from markupsafe import Markup

BLOCKED_WORDS = frozenset({
    'ass', 'asshole', 'bastard', 'bitch', 'bollocks', 'crap', 'damn', 'dick',
    'douche', 'fuck', 'fucker', 'fucking', 'hell', 'piss', 'prick', 'shit',
    'slut', 'twat', 'wanker', 'whore',
})

LEET_MAP = str.maketrans({
    '0': 'o', '1': 'i', '3': 'e', '4': 'a', '5': 's', '7': 't',
    '@': 'a', '$': 's', '!': 'i',
})

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_WORD_SPLIT = re.compile(r'[^\w*]+', re.UNICODE)
_WHITESPACE = re.compile(r'\s+')

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
CLAIM_MAX_LENGTH = 500


@dataclass(frozen=True)
class NameCheck:
    is_valid: bool
    cleaned: str
    error: Optional[str] = None

    def to_dict(self):
        return {'is_valid': self.is_valid, 'cleaned': self.cleaned, 'error': self.error}


def _word_is_blocked(word: str) -> bool:
    if not word:
        return False
    if '*' not in word:
        return word in BLOCKED_WORDS
    # "f*ck": a masked letter matches any single character
    pattern = re.compile(re.escape(word).replace(r'\*', '.'))
    return any(pattern.fullmatch(blocked) for blocked in BLOCKED_WORDS)


def is_content_appropriate(text) -> bool:
    """Whole-word blocklist match, so 'class' and 'scrap' pass."""
    if not text or not isinstance(text, str):
        return True
    normalized = text.lower().translate(LEET_MAP)
    return not any(_word_is_blocked(w) for w in _WORD_SPLIT.split(normalized))


def sanitize_input(text, max_length: int = NAME_MAX_LENGTH) -> str:
    if not text or not isinstance(text, str):
        return ''
    clean = _CONTROL_CHARS.sub('', text).strip()[:max_length]
    return (
        clean.replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;')
        .replace("'", '&#39;')
    )


def sanitize_claim_text(text) -> str:
    if not text or not isinstance(text, str):
        return ''
    clean = Markup(text).striptags()
    clean = _WHITESPACE.sub(' ', clean).strip()
    clean = _CONTROL_CHARS.sub('', clean)
    return clean[:CLAIM_MAX_LENGTH]


def validate_name(name) -> NameCheck:
    if not name or not isinstance(name, str) or not name.strip():
        return NameCheck(False, '', 'Name cannot be empty')
    cleaned = sanitize_input(name)
    if len(cleaned) < NAME_MIN_LENGTH:
        return NameCheck(False, cleaned, f'Name must be at least {NAME_MIN_LENGTH} characters')
    if not is_content_appropriate(name):
        return NameCheck(False, cleaned, 'Please choose an appropriate name')
    return NameCheck(True, cleaned)
