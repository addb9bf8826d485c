from __future__ import annotations

from parley.contracts import Language
from parley.session.direction import DirectionResolver, TranslationDirection
from parley.session.pair_lock import LanguagePairLocker
from parley.session.speakers import SpeakerRegistry

EN = Language("en", "English")
ZH = Language("zh", "Chinese")
KO = Language("ko", "Korean")


def _setup() -> tuple[SpeakerRegistry, LanguagePairLocker, DirectionResolver]:
    reg = SpeakerRegistry()
    locker = LanguagePairLocker()
    return reg, locker, DirectionResolver(reg, locker)


def _codes(direction: TranslationDirection | None) -> tuple[str, str] | None:
    if direction is None:
        return None
    return direction.source.code, direction.target.code


def test_no_pair_means_no_direction() -> None:
    reg, _, resolver = _setup()
    reg.upsert("s1", ZH)
    assert resolver.resolve("s1") is None
    assert resolver.resolve_reply(None) is None


def test_speakers_on_each_side_get_inverse_directions() -> None:
    reg, locker, resolver = _setup()
    for sid, lang in (("s1", ZH), ("s2", EN)):
        reg.upsert(sid, lang)
        locker.observe(sid, lang, reg)

    a = resolver.resolve("s1")
    b = resolver.resolve("s2")
    assert _codes(a) == ("zh", "en")
    assert _codes(b) == ("en", "zh")
    assert a is not None and b is not None
    assert a.inverse() == b
    assert b.inverse() == a


def test_unknown_speaker_gets_default_direction() -> None:
    _, locker, resolver = _setup()
    locker.select(ZH, EN)
    assert _codes(resolver.resolve("server-item")) == ("zh", "en")
    assert _codes(resolver.resolve(None)) == ("zh", "en")


def test_language_drift_defaults_to_source_to_target() -> None:
    reg, locker, resolver = _setup()
    locker.select(ZH, EN)
    reg.upsert("s3", KO)
    assert _codes(resolver.resolve("s3")) == ("zh", "en")


def test_reply_direction_is_inverse_of_last_user_direction() -> None:
    _, locker, resolver = _setup()
    locker.select(ZH, EN)
    zh_en = TranslationDirection(ZH, EN)
    assert _codes(resolver.resolve_reply(zh_en)) == ("en", "zh")
    assert _codes(resolver.resolve_reply(zh_en.inverse())) == ("zh", "en")


def test_reply_direction_without_matching_user_direction_uses_target_to_source() -> None:
    _, locker, resolver = _setup()
    locker.select(ZH, EN)
    assert _codes(resolver.resolve_reply(None)) == ("en", "zh")
    stale = TranslationDirection(KO, EN)
    assert _codes(resolver.resolve_reply(stale)) == ("en", "zh")


def test_identity_direction_flag() -> None:
    assert TranslationDirection(EN, Language("en")).is_identity
    assert not TranslationDirection(EN, ZH).is_identity
    assert str(TranslationDirection(EN, ZH)) == "en → zh"


def test_direction_for_a_stated_language() -> None:
    _, locker, resolver = _setup()
    assert resolver.resolve_for_language("zh") is None
    locker.select(ZH, EN)
    assert _codes(resolver.resolve_for_language("zh")) == ("zh", "en")
    assert _codes(resolver.resolve_for_language("EN")) == ("en", "zh")
    assert _codes(resolver.resolve_for_language("ko")) == ("zh", "en")
    assert _codes(resolver.resolve_for_language(None)) == ("zh", "en")
