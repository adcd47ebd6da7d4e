import pytest

from truth_hunters.services.moderation import (
    is_content_appropriate,
    sanitize_claim_text,
    sanitize_input,
    validate_name,
)


@pytest.mark.parametrize('text', [
    'Maya', 'class', 'scrap', 'Shell', 'assessment', 'assistant', 'José', 'Hello world', '', None,
])
def test_clean_text_passes(text):
    assert is_content_appropriate(text) is True


@pytest.mark.parametrize('text', ['shit', 'what the HELL', 'sh1t', 'f*ck', 'b!tch'])
def test_blocked_words_are_caught(text):
    assert is_content_appropriate(text) is False


def test_sanitize_input_escapes_and_truncates():
    assert sanitize_input('<b>Leo</b>') == '&lt;b&gt;Leo&lt;/b&gt;'
    assert sanitize_input('  Tom & "Jo"  ') == 'Tom &amp; &quot;Jo&quot;'
    assert sanitize_input('a\x00b\x1fc') == 'abc'
    assert sanitize_input('x' * 80) == 'x' * 50
    assert sanitize_input(None) == ''
    assert sanitize_input(42) == ''


def test_sanitize_claim_text_strips_markup():
    assert sanitize_claim_text('<p>Water   boils at <b>100C</b></p>') == 'Water boils at 100C'
    assert len(sanitize_claim_text('y' * 900)) == 500
    assert sanitize_claim_text('') == ''


def test_validate_name():
    ok = validate_name('  Maya ')
    assert ok.is_valid is True
    assert ok.cleaned == 'Maya'
    assert ok.error is None

    assert validate_name('').error == 'Name cannot be empty'
    assert validate_name('   ').error == 'Name cannot be empty'
    assert validate_name('A').error == 'Name must be at least 2 characters'
    assert validate_name('sh1t').error == 'Please choose an appropriate name'
    assert validate_name('sh1t').to_dict()['is_valid'] is False
