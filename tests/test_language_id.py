from __future__ import annotations

from parley.contracts import Language
from parley.nlp.language_id import HeuristicLanguageDetector, detect_language, is_placeholder, language_for


def _code(text: str) -> str | None:
    lang = detect_language(text)
    return None if lang is None else lang.code


def test_detect_language_by_script() -> None:
    assert _code("你好，很高兴见到你") == "zh"
    assert _code("こんにちは、元気ですか") == "ja"
    assert _code("안녕하세요") == "ko"
    assert _code("مرحبا بكم") == "ar"
    assert _code("Привет, как дела?") == "ru"


def test_detect_language_by_diacritics_then_latin_fallback() -> None:
    assert _code("¿Dónde está la estación?") == "es"
    assert _code("pingüino") == "es"
    assert _code("Schöne Straße") == "de"
    assert _code("Très bien, merci") == "fr"
    assert _code("Hello there") == "en"


def test_detect_language_returns_none_without_letters_or_for_placeholders() -> None:
    assert detect_language("12345 !!") is None
    assert detect_language("") is None
    assert detect_language("[inaudible]") is None
    assert detect_language("  Still listening ") is None


def test_language_equality_is_by_code_only() -> None:
    assert Language("en", "English") == Language("en", "Anglais")
    assert hash(Language("en", "English")) == hash(Language("en"))
    assert language_for("ZH").name == "Chinese"
    assert language_for("xx").name == "xx"


def test_detector_is_a_plain_callable() -> None:
    detector = HeuristicLanguageDetector()
    assert detector("Hello") == Language("en")
    assert is_placeholder("[Transcribing...]")
    assert not is_placeholder("hello")
