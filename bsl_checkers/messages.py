"""
bsl_checkers/messages.py
════════════════════════

Localized diagnostic names and message templates.

Each checker code owns a ``name`` (short title used in listings and
SARIF rule descriptors) and a ``message`` template formatted with
``str.format`` positional arguments.

Russian is the primary language of BSL code bases; English is the
fallback for any language without a catalog.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES: Tuple[str, ...] = ("en", "ru")

_CATALOG: Dict[str, Dict[str, Dict[str, str]]] = {
    "en": {
        "UsingObjectNotAvailableUnix": {
            "name": "Using of objects not available in Unix",
            "message": 'Check the platform type before using "{0}"',
        },
        "checkerInternalError": {
            "name": "Checker internal error",
            "message": "Checker '{0}' failed: {1}",
        },
    },
    "ru": {
        "UsingObjectNotAvailableUnix": {
            "name": "Использование объектов, недоступных в Unix",
            "message": 'Проверьте тип платформы перед использованием "{0}"',
        },
        "checkerInternalError": {
            "name": "Внутренняя ошибка диагностики",
            "message": "Диагностика '{0}' завершилась с ошибкой: {1}",
        },
    },
}


def normalize_language(language: str) -> str:
    """Reduce ``"ru_RU"``-style tags to a supported catalog key."""
    lang = (language or "").strip().lower().replace("-", "_").split("_", 1)[0]
    return lang if lang in _CATALOG else DEFAULT_LANGUAGE


def get_message(code: str, key: str, language: str = DEFAULT_LANGUAGE, *args: Any) -> str:
    """Look up and format the *key* template of checker *code*.

    Falls back to English for unknown languages; raises ``KeyError`` when
    neither catalog knows the code/key pair.
    """
    lang = normalize_language(language)
    entry = _CATALOG[lang].get(code) or _CATALOG[DEFAULT_LANGUAGE][code]
    template = entry[key]
    return template.format(*args) if args else template


def has_messages(code: str) -> bool:
    return code in _CATALOG[DEFAULT_LANGUAGE]


__all__ = [
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "normalize_language",
    "get_message",
    "has_messages",
]
