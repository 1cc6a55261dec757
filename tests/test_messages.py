# tests/test_messages.py
"""Tests for the localized message catalog."""

import pytest

from bsl_checkers.messages import get_message, has_messages, normalize_language


class TestMessages:

    def test_english(self):
        assert get_message("UsingObjectNotAvailableUnix", "message", "en", "Mail") == \
            'Check the platform type before using "Mail"'

    def test_russian(self):
        assert get_message("UsingObjectNotAvailableUnix", "name", "ru") == \
            "Использование объектов, недоступных в Unix"

    def test_unknown_language_falls_back_to_english(self):
        assert get_message("UsingObjectNotAvailableUnix", "name", "fr") == \
            "Using of objects not available in Unix"

    def test_unknown_key_raises(self):
        with pytest.raises(KeyError):
            get_message("UsingObjectNotAvailableUnix", "nope", "en")

    def test_unknown_code_raises(self):
        with pytest.raises(KeyError):
            get_message("NoSuchCode", "name", "ru")

    def test_has_messages(self):
        assert has_messages("UsingObjectNotAvailableUnix")
        assert not has_messages("NoSuchCode")

    @pytest.mark.parametrize("raw, expected", [
        ("ru", "ru"), ("ru-RU", "ru"), ("EN_us", "en"), ("", "en"), ("xx", "en"),
    ])
    def test_normalize_language(self, raw, expected):
        assert normalize_language(raw) == expected
