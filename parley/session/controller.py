from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from parley.app.logging_setup import log_event
from parley.app.state import SessionStateTracker
from parley.contracts import FunctionCall, Language, TranscriptEvent
from parley.live import realtime_events as ev
from parley.nlp.language_id import LanguageDetector, HeuristicLanguageDetector, is_placeholder, language_for
from parley.nlp.markers import is_translation_message, strip_marker
from parley.session.direction import DirectionResolver, TranslationDirection
from parley.session.dispatcher import (
    DispatchResult,
    DispatchStatus,
    MessageSink,
    RecentWindow,
    TranslationDispatcher,
    Translator,
)
from parley.session.pair_lock import LanguagePairLocker, LockedLanguagePair, PairTransition
from parley.session.speakers import SpeakerRegistry

LanguageLike = Union[Language, str]


def _as_language(value: LanguageLike) -> Language:
    return value if isinstance(value, Language) else language_for(value)


class SessionController:
    """
    Owns the per-session speaker registry, pair locker, direction resolver and
    dispatcher, and reduces the realtime event stream over them.

    `handle_event` must be called from a single thread (the transport's
    delivery path). Translations run on a worker pool when `async_translate`
    is set, so a slow translator never blocks the next event.
    """

    def __init__(
        self,
        translator: Translator,
        sink: MessageSink,
        *,
        detector: Optional[LanguageDetector] = None,
        async_translate: bool = True,
        max_workers: int = 4,
        dedup_window_sec: float = 5.0,
        cache_ttl_sec: float = 300.0,
        cache_max_entries: int = 256,
        prefix_chars: int = 64,
        clock: Optional[Callable[[], float]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.sink = sink
        self.detector: LanguageDetector = detector or HeuristicLanguageDetector()
        self.async_translate = async_translate
        self.max_workers = max(1, int(max_workers))
        self._logger = logger or logging.getLogger(__name__)

        window_kwargs: dict[str, Any] = {} if clock is None else {"clock": clock}
        self.registry = SpeakerRegistry()
        self.locker = LanguagePairLocker(logger=self._logger)
        self.resolver = DirectionResolver(self.registry, self.locker, logger=self._logger)
        self.dispatcher = TranslationDispatcher(
            translator,
            sink,
            dedup_window=RecentWindow(window_sec=dedup_window_sec, **window_kwargs),
            cache=(
                RecentWindow(window_sec=cache_ttl_sec, max_entries=cache_max_entries, **window_kwargs)
                if cache_ttl_sec > 0
                else None
            ),
            prefix_chars=prefix_chars,
            logger=self._logger,
        )
        self.state = SessionStateTracker()

        self._executor: Optional[ThreadPoolExecutor] = None
        self._generation = 0
        self._last_user_direction: Optional[TranslationDirection] = None
        self._finalized_items: set[str] = set()
        self._created_items: set[str] = set()
        # Texts we emitted as translations, to recognise their echo as new items.
        self._translations = RecentWindow(
            window_sec=max(cache_ttl_sec, dedup_window_sec),
            max_entries=cache_max_entries,
            **window_kwargs,
        )
        self._pending: set["Future[DispatchResult]"] = set()
        self._lock = threading.Lock()

    # -- lifecycle -----------------------------------------------------------

    @property
    def pair(self) -> Optional[LockedLanguagePair]:
        return self.locker.pair

    @property
    def last_user_direction(self) -> Optional[TranslationDirection]:
        return self._last_user_direction

    def connect(self) -> None:
        self.state.set_connecting()
        if self.async_translate and self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="parley-translate",
            )
        self.dispatcher.executor = self._executor

    def select_pair(self, source: LanguageLike, target: LanguageLike) -> LockedLanguagePair:
        """Explicit user choice; starts a fresh speaker history."""
        pair = LockedLanguagePair(source=_as_language(source), target=_as_language(target))
        # Translations still running for the previous pair are discarded.
        self._bump_generation()
        self.reset()
        return self.locker.select(pair.source, pair.target)

    def reset(self) -> None:
        self.registry.reset()
        self.locker.reset()
        self._last_user_direction = None

    def _bump_generation(self) -> None:
        with self._lock:
            self._generation += 1

    def teardown(self) -> None:
        self._bump_generation()
        self.reset()
        self._finalized_items.clear()
        self._created_items.clear()
        self._translations.clear()
        executor, self._executor = self._executor, None
        self.dispatcher.executor = None
        if executor is not None:
            # In-flight translations finish on their own; their results are discarded.
            executor.shutdown(wait=False)
        self.state.set_disconnected()
        log_event(self._logger, logging.INFO, "session_teardown", generation=self._generation)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # -- event reduction -----------------------------------------------------

    def handle_event(self, event: Union[Mapping[str, Any], TranscriptEvent]) -> Optional["Future[DispatchResult]"]:
        parsed = event if isinstance(event, TranscriptEvent) else ev.parse_server_event(event)
        if parsed is None:
            return None

        etype = parsed.event_type
        if etype == ev.SESSION_CREATED:
            if parsed.session_id:
                self.state.set_connected(parsed.session_id)
                log_event(self._logger, logging.INFO, "session_created", session_id=parsed.session_id)
            return None
        if etype == ev.ITEM_CREATED:
            self._handle_item_created(parsed)
            return None
        if etype == ev.AUDIO_TRANSCRIPT_DELTA:
            if parsed.item_id and parsed.text:
                self.sink.append(parsed.item_id, "assistant", parsed.text, True)
            return None
        if etype == ev.INPUT_TRANSCRIPTION_COMPLETED:
            return self.handle_user_utterance(parsed.text, parsed.item_id, speaker_hint=parsed.speaker_hint)
        if etype in (ev.AUDIO_TRANSCRIPT_DONE, ev.ASSISTANT_RESPONSE_DONE, ev.OUTPUT_ITEM_DONE):
            return self.handle_assistant_reply(parsed.text, parsed.item_id)
        if etype == ev.RESPONSE_DONE:
            futures = self.handle_function_calls(parsed.function_calls)
            return futures[-1] if futures else None
        return None

    def _handle_item_created(self, event: TranscriptEvent) -> None:
        item_id = event.item_id
        if not item_id or item_id in self._created_items:
            return
        text = event.text
        if text and is_translation_message(text):
            if strip_marker(text).strip() in self._translations:
                log_event(self._logger, logging.DEBUG, "duplicate_translation_item", item_id=item_id)
                return
        if event.role == "user" and not text:
            text = ev.TRANSCRIBING
        self._created_items.add(item_id)
        self.sink.append(item_id, event.role, text, False)

    def _redelivered(self, item_id: Optional[str]) -> bool:
        if not item_id:
            return False
        if item_id in self._finalized_items:
            log_event(self._logger, logging.DEBUG, "event_redelivered", item_id=item_id)
            return True
        self._finalized_items.add(item_id)
        return False

    def handle_user_utterance(
        self,
        text: str,
        item_id: Optional[str] = None,
        *,
        speaker_hint: Optional[str] = None,
    ) -> Optional["Future[DispatchResult]"]:
        if self._redelivered(item_id):
            return None
        text = (text or "").strip()
        if item_id:
            self.sink.append(item_id, "user", text or ev.INAUDIBLE, False)
        if is_placeholder(text) or is_translation_message(text):
            return None

        language = self.detector(text)
        if language is None:
            log_event(self._logger, logging.INFO, "language_undetected", item_id=item_id, chars=len(text))
            return None

        speaker_id = speaker_hint
        if not speaker_id:
            same_language = self.registry.find_by_language(language.code)
            if same_language is not None:
                speaker_id = same_language.speaker_id
            else:
                speaker_id = f"user-{item_id or len(self.registry) + 1}"

        before = self.locker.pair
        self.registry.upsert(speaker_id, language)
        transition = self.locker.observe(speaker_id, language, self.registry)
        if transition == PairTransition.EXTENDED and before is not None and self.locker.pair is not None:
            for dropped in set(before.speakers) - set(self.locker.pair.speakers):
                if dropped and dropped != speaker_id:
                    self.registry.deactivate(dropped)

        direction = self.resolver.resolve(speaker_id)
        if direction is None:
            log_event(
                self._logger,
                logging.INFO,
                "translation_waiting_for_pair",
                speaker_id=speaker_id,
                language=language.code,
            )
            return None
        self._last_user_direction = direction
        return self._submit(text, direction, speaker_id)

    def handle_assistant_reply(self, text: str, item_id: Optional[str] = None) -> Optional["Future[DispatchResult]"]:
        if self._redelivered(item_id):
            return None
        text = (text or "").strip()
        if item_id and text:
            self.sink.append(item_id, "assistant", text, False)
        if is_placeholder(text) or is_translation_message(text):
            return None
        direction = self.resolver.resolve_reply(self._last_user_direction)
        if direction is None:
            return None
        return self._submit(text, direction, "assistant")

    def handle_function_calls(self, calls: Iterable[FunctionCall]) -> List["Future[DispatchResult]"]:
        """
        Act on the model's tool calls. `translate_text` is re-pointed at the
        locked pair: the stated source language decides the direction and the
        model's own target is ignored. Redelivered calls are dropped by the
        dispatcher's duplicate window.
        """
        futures: List["Future[DispatchResult]"] = []
        for call in calls:
            if call.name == "detect_language":
                detected = self.detector(str(call.arguments.get("text") or ""))
                log_event(
                    self._logger,
                    logging.DEBUG,
                    "function_call_detect_language",
                    call_id=call.call_id,
                    language=detected.code if detected is not None else None,
                )
                continue
            if call.name != "translate_text":
                log_event(self._logger, logging.DEBUG, "function_call_ignored", function=call.name, call_id=call.call_id)
                continue

            text = str(call.arguments.get("text") or "").strip()
            source_code = call.arguments.get("source_language")
            direction = self.resolver.resolve_for_language(str(source_code) if source_code else None)
            if direction is None:
                log_event(self._logger, logging.INFO, "function_call_waiting_for_pair", call_id=call.call_id)
                continue
            log_event(
                self._logger,
                logging.DEBUG,
                "function_call_translate",
                call_id=call.call_id,
                requested_source=source_code,
                requested_target=call.arguments.get("target_language"),
                direction=str(direction),
            )
            futures.append(self._submit(text, direction, "tool"))
        return futures

    def _submit(self, text: str, direction: TranslationDirection, speaker_id: str) -> "Future[DispatchResult]":
        generation = self._generation

        def _is_current() -> bool:
            return generation == self._generation

        fut = self.dispatcher.submit(text, direction, speaker_id=speaker_id, is_current=_is_current)
        with self._lock:
            self._pending.add(fut)
        fut.add_done_callback(self._on_dispatch_done)
        return fut

    def _on_dispatch_done(self, fut: "Future[DispatchResult]") -> None:
        with self._lock:
            self._pending.discard(fut)
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            log_event(self._logger, logging.ERROR, "translate_worker_crash", error=f"{type(exc).__name__}: {exc}")
            return
        result = fut.result()
        if result.status == DispatchStatus.TRANSLATED and result.translated_text:
            self._translations.put(result.translated_text.strip())
