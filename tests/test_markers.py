from __future__ import annotations

from parley.nlp.markers import format_translation, is_translation_message, normalize_prefix, strip_marker


def test_format_translation_is_read_back_as_translation() -> None:
    tagged = format_translation("en", "fr", " bonjour ")
    assert tagged == "[en → fr] bonjour"
    assert is_translation_message(tagged)
    assert strip_marker(tagged) == "bonjour"


def test_plain_text_is_not_a_translation() -> None:
    assert not is_translation_message("hello [world]")
    assert not is_translation_message("")
    assert strip_marker("hello") == "hello"


def test_normalize_prefix_collapses_whitespace_and_case() -> None:
    assert normalize_prefix("  Hello   WORLD  ") == "hello world"
    assert normalize_prefix("abcdef", max_chars=3) == "abc"
