# parley/nlp/language_id.py
from __future__ import annotations

import re
from typing import Optional, Protocol

from parley.contracts import Language

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ru": "Russian",
    "ar": "Arabic",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
}

PLACEHOLDER_TEXTS = frozenset(
    {
        "[inaudible]",
        "[transcribing...]",
        "no speech detected",
        "still listening",
    }
)

# First match wins. Kana is checked before Han so Japanese with kanji is not
# reported as Chinese.
_SCRIPT_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("ja", re.compile(r"[぀-ゟ゠-ヿ]")),
    ("zh", re.compile(r"[一-鿿]")),
    ("ko", re.compile(r"[가-힯]")),
    ("ar", re.compile(r"[؀-ۿ]")),
    ("ru", re.compile(r"[Ѐ-ӿ]")),
    ("es", re.compile(r"[áéíóúüñ¿¡]", flags=re.IGNORECASE)),
    ("de", re.compile(r"[äöüß]", flags=re.IGNORECASE)),
    ("fr", re.compile(r"[àâçéèêëîïôùûüÿœæ]", flags=re.IGNORECASE)),
)
_LATIN = re.compile(r"[a-z]", flags=re.IGNORECASE)


class LanguageDetector(Protocol):
    def __call__(self, text: str) -> Optional[Language]:
        ...


def language_for(code: str) -> Language:
    code = (code or "").strip().lower()
    return Language(code=code, name=LANGUAGE_NAMES.get(code, code))


def is_placeholder(text: str) -> bool:
    t = (text or "").strip().lower()
    return not t or t in PLACEHOLDER_TEXTS


def detect_language(text: str) -> Optional[Language]:
    if is_placeholder(text):
        return None
    for code, pattern in _SCRIPT_RULES:
        if pattern.search(text):
            return language_for(code)
    if _LATIN.search(text):
        return language_for("en")
    return None


class HeuristicLanguageDetector:
    """
    Character-range detector. Swap in any callable with the same signature
    to use a real language-identification library.
    """

    def __call__(self, text: str) -> Optional[Language]:
        return detect_language(text)
