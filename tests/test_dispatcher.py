from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from parley.contracts import Language, TranslationError, TranslationRequest, TranslationResult
from parley.nlp.translator.stub import StubTranslator
from parley.session.direction import TranslationDirection
from parley.session.dispatcher import DispatchStatus, RecentWindow, SkipReason, TranslationDispatcher

EN = Language("en", "English")
FR = Language("fr", "French")
EN_FR = TranslationDirection(EN, FR)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeTranslator:
    def __init__(self) -> None:
        self.calls: list[TranslationRequest] = []

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self.calls.append(req)
        return StubTranslator().translate(req)


class FailingTranslator:
    def __init__(self) -> None:
        self.calls = 0

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self.calls += 1
        raise ConnectionError("connection reset by peer")


class FakeSink:
    def __init__(self) -> None:
        self.appended: list[tuple[str, str, str, bool]] = []

    def append(self, id: str, role: str, content: str, is_streaming: bool = False) -> None:
        self.appended.append((id, role, content, is_streaming))


def _dispatcher(translator=None, *, cache: bool = False, clock: FakeClock | None = None):
    clock = clock or FakeClock()
    sink = FakeSink()
    d = TranslationDispatcher(
        translator or FakeTranslator(),
        sink,
        dedup_window=RecentWindow(window_sec=5.0, clock=clock),
        cache=RecentWindow(window_sec=300.0, clock=clock) if cache else None,
    )
    return d, sink, clock


def test_identity_direction_is_skipped_without_calling_translator() -> None:
    translator = FakeTranslator()
    d, sink, _ = _dispatcher(translator)
    result = d.dispatch("Hello", TranslationDirection(EN, Language("en")))
    assert result.status == DispatchStatus.SKIPPED
    assert result.reason == SkipReason.IDENTITY
    assert translator.calls == []
    assert sink.appended == []


def test_translation_of_translation_is_skipped() -> None:
    translator = FakeTranslator()
    d, _, _ = _dispatcher(translator)
    for direction in (EN_FR, EN_FR.inverse()):
        result = d.dispatch("[en → fr] hello", direction)
        assert result.reason == SkipReason.ALREADY_TRANSLATED
    assert translator.calls == []


def test_empty_and_placeholder_text_is_skipped() -> None:
    d, _, _ = _dispatcher()
    assert d.dispatch("   ", EN_FR).reason == SkipReason.EMPTY
    assert d.dispatch("[inaudible]", EN_FR).reason == SkipReason.EMPTY
    assert d.dispatch("No speech detected", EN_FR).reason == SkipReason.EMPTY


def test_translated_result_is_tagged_and_emitted() -> None:
    translator = FakeTranslator()
    d, sink, _ = _dispatcher(translator)
    result = d.dispatch("Hello world", EN_FR, speaker_id="s1")
    assert result.status == DispatchStatus.TRANSLATED
    assert result.translated_text == "<fr>Hello world</fr>"
    assert result.message is not None
    assert result.message.content == "[en → fr] <fr>Hello world</fr>"
    assert result.message.id.startswith("translation-s1-")
    assert sink.appended == [(result.message.id, "assistant", result.message.content, False)]
    req = translator.calls[0]
    assert (req.text, req.source_lang, req.target_lang) == ("Hello world", "en", "fr")


def test_duplicate_within_window_calls_translator_once() -> None:
    translator = FakeTranslator()
    d, sink, clock = _dispatcher(translator)
    first = d.dispatch("Hello world...", EN_FR)
    clock.now = 0.8
    second = d.dispatch("  hello   WORLD... ", EN_FR)
    assert first.status == DispatchStatus.TRANSLATED
    assert second.status == DispatchStatus.SKIPPED
    assert second.reason == SkipReason.DUPLICATE
    assert len(translator.calls) == 1
    assert len(sink.appended) == 1


def test_same_text_other_direction_is_not_a_duplicate() -> None:
    translator = FakeTranslator()
    d, _, _ = _dispatcher(translator)
    d.dispatch("taxi", EN_FR)
    assert d.dispatch("taxi", EN_FR.inverse()).status == DispatchStatus.TRANSLATED
    assert len(translator.calls) == 2


def test_repeat_after_window_is_translated_again() -> None:
    translator = FakeTranslator()
    d, sink, clock = _dispatcher(translator)
    d.dispatch("Good morning", EN_FR)
    clock.now = 6.0
    assert d.dispatch("Good morning", EN_FR).status == DispatchStatus.TRANSLATED
    assert len(translator.calls) == 2
    assert len(sink.appended) == 2


def test_repeat_after_window_is_served_from_cache() -> None:
    translator = FakeTranslator()
    d, sink, clock = _dispatcher(translator, cache=True)
    d.dispatch("Good morning", EN_FR)
    clock.now = 6.0
    result = d.dispatch("Good morning", EN_FR)
    assert result.status == DispatchStatus.TRANSLATED
    assert result.cached
    assert len(translator.calls) == 1
    assert len(sink.appended) == 2


def test_echoed_translation_is_not_translated_back() -> None:
    translator = FakeTranslator()
    d, _, _ = _dispatcher(translator)
    first = d.dispatch("Hello", EN_FR)
    echo = d.dispatch(first.translated_text or "", EN_FR.inverse())
    assert echo.reason == SkipReason.DUPLICATE
    assert len(translator.calls) == 1


def test_translator_failure_is_reported_not_raised_or_retried() -> None:
    translator = FailingTranslator()
    d, sink, _ = _dispatcher(translator)
    result = d.dispatch("Hello", EN_FR)
    assert result.status == DispatchStatus.FAILED
    assert isinstance(result.error, TranslationError)
    assert "ConnectionError" in str(result.error)
    assert sink.appended == []

    redelivered = d.dispatch("Hello", EN_FR)
    assert redelivered.reason == SkipReason.DUPLICATE
    assert translator.calls == 1


def test_empty_translator_output_counts_as_failure() -> None:
    class _Blank:
        def translate(self, req: TranslationRequest) -> TranslationResult:
            return TranslationResult(source_text=req.text, translated_text="  ", provider="blank")

    d, sink, _ = _dispatcher(_Blank())
    assert d.dispatch("Hello", EN_FR).status == DispatchStatus.FAILED
    assert sink.appended == []


def test_result_for_closed_session_is_discarded() -> None:
    d, sink, _ = _dispatcher()
    result = d.dispatch("Hello", EN_FR, is_current=lambda: False)
    assert result.status == DispatchStatus.DISCARDED
    assert sink.appended == []


def test_submit_runs_off_thread_and_dedups_on_caller_thread() -> None:
    release = threading.Event()

    class _Slow(FakeTranslator):
        def translate(self, req: TranslationRequest) -> TranslationResult:
            release.wait(timeout=5)
            return super().translate(req)

    translator = _Slow()
    d, sink, _ = _dispatcher(translator)
    with ThreadPoolExecutor(max_workers=2) as pool:
        d.executor = pool
        first = d.submit("Hello world", EN_FR)
        second = d.submit("Hello world", EN_FR)
        assert not first.done()
        assert second.done()
        assert second.result().reason == SkipReason.DUPLICATE
        release.set()
        assert first.result(timeout=5).status == DispatchStatus.TRANSLATED
    assert len(translator.calls) == 1
    assert len(sink.appended) == 1


def test_submit_without_executor_runs_inline() -> None:
    d, _, _ = _dispatcher()
    fut = d.submit("Hello", EN_FR)
    assert fut.done()
    assert fut.result().status == DispatchStatus.TRANSLATED


def test_recent_window_prunes_expired_and_overflow_on_insert() -> None:
    clock = FakeClock()
    window = RecentWindow(window_sec=5.0, max_entries=3, clock=clock)
    assert window.reserve("a")
    clock.now = 3.0
    assert window.reserve("b")
    assert not window.reserve("b")
    clock.now = 6.0
    window.put("c")
    assert len(window) == 2
    assert "a" not in window
    window.put("d")
    window.put("e")
    assert len(window) == 3
    assert "b" not in window
    assert window.get("e") is None
    window.put("f", "value")
    assert window.get("f") == "value"
