from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable, Optional, Protocol, Tuple

from parley.app.diagnostics import describe_exception, hint_for_exception
from parley.app.logging_setup import log_event
from parley.contracts import TranscriptMessage, TranslationError, TranslationRequest
from parley.nlp.language_id import is_placeholder
from parley.nlp.markers import format_translation, is_translation_message, normalize_prefix
from parley.session.clock import LogicalClock
from parley.session.direction import TranslationDirection


class Translator(Protocol):
    def translate(self, req: TranslationRequest):
        ...


class MessageSink(Protocol):
    def append(self, id: str, role: str, content: str, is_streaming: bool = False) -> None:
        ...


class RecentWindow:
    """
    Bounded key -> (timestamp, value) map with a time horizon.
    Expired entries are pruned lazily on insert; there is no background timer.
    """

    def __init__(
        self,
        window_sec: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_sec = max(0.0, float(window_sec))
        self.max_entries = max(1, int(max_entries))
        self.clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _fresh(self, ts: float, now: float) -> bool:
        return (now - ts) < self.window_sec

    def _prune(self, now: float) -> None:
        while self._entries:
            key, (ts, _) = next(iter(self._entries.items()))
            if self._fresh(ts, now):
                break
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def reserve(self, key: Hashable, value: Any = None) -> bool:
        """Insert `key` unless a fresh entry exists. Returns True if inserted."""
        with self._lock:
            now = self.clock()
            entry = self._entries.get(key)
            if entry is not None and self._fresh(entry[0], now):
                return False
            self._entries.pop(key, None)
            self._entries[key] = (now, value)
            self._prune(now)
            return True

    def put(self, key: Hashable, value: Any = None) -> None:
        with self._lock:
            now = self.clock()
            self._entries.pop(key, None)
            self._entries[key] = (now, value)
            self._prune(now)

    def get(self, key: Hashable) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not self._fresh(entry[0], self.clock()):
                return None
            return entry[1]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and self._fresh(entry[0], self.clock())


class DispatchStatus(str, Enum):
    TRANSLATED = "translated"
    SKIPPED = "skipped"
    FAILED = "failed"
    DISCARDED = "discarded"


class SkipReason(str, Enum):
    EMPTY = "empty"
    ALREADY_TRANSLATED = "already_translated"
    IDENTITY = "identity"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    direction: TranslationDirection
    source_text: str
    translated_text: Optional[str] = None
    message: Optional[TranscriptMessage] = None
    reason: Optional[SkipReason] = None
    error: Optional[TranslationError] = None
    cached: bool = False

    @property
    def skipped(self) -> bool:
        return self.status == DispatchStatus.SKIPPED


DedupKey = Tuple[str, str, str]


class TranslationDispatcher:
    """
    Sends one utterance to the translator and emits the tagged result.

    Skips are decided on the caller's thread, before any I/O, so two
    back-to-back deliveries of the same utterance never both reach the
    translator. Translator failures end here: they are logged and reported
    as FAILED, never raised.
    """

    def __init__(
        self,
        translator: Translator,
        sink: Optional[MessageSink] = None,
        *,
        dedup_window: Optional[RecentWindow] = None,
        cache: Optional[RecentWindow] = None,
        prefix_chars: int = 64,
        executor: Optional[Executor] = None,
        ids: Optional[LogicalClock] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.translator = translator
        self.sink = sink
        self.dedup_window = dedup_window if dedup_window is not None else RecentWindow(window_sec=5.0)
        self.cache = cache
        self.prefix_chars = prefix_chars
        self.executor = executor
        self._ids = ids or LogicalClock()
        self._logger = logger or logging.getLogger(__name__)

    def key_for(self, text: str, direction: TranslationDirection) -> DedupKey:
        prefix = normalize_prefix(text, self.prefix_chars)
        digest = hashlib.sha1(prefix.encode("utf-8")).hexdigest()
        return digest, direction.source.code, direction.target.code

    def check(self, text: str, direction: TranslationDirection) -> Optional[SkipReason]:
        """Run the skip checks and reserve the dedup slot when the request passes."""
        if is_placeholder(text):
            return SkipReason.EMPTY
        if is_translation_message(text):
            return SkipReason.ALREADY_TRANSLATED
        if direction.is_identity:
            return SkipReason.IDENTITY
        if not self.dedup_window.reserve(self.key_for(text, direction)):
            return SkipReason.DUPLICATE
        return None

    def dispatch(
        self,
        text: str,
        direction: TranslationDirection,
        *,
        speaker_id: Optional[str] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> DispatchResult:
        text = (text or "").strip()
        reason = self.check(text, direction)
        if reason is not None:
            return self._skipped(text, direction, reason)
        return self._run(text, direction, speaker_id, is_current)

    def submit(
        self,
        text: str,
        direction: TranslationDirection,
        *,
        speaker_id: Optional[str] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> "Future[DispatchResult]":
        text = (text or "").strip()
        reason = self.check(text, direction)
        if reason is not None or self.executor is None:
            fut: "Future[DispatchResult]" = Future()
            if reason is not None:
                fut.set_result(self._skipped(text, direction, reason))
            else:
                fut.set_result(self._run(text, direction, speaker_id, is_current))
            return fut
        return self.executor.submit(self._run, text, direction, speaker_id, is_current)

    def _skipped(self, text: str, direction: TranslationDirection, reason: SkipReason) -> DispatchResult:
        level = logging.DEBUG if reason in (SkipReason.DUPLICATE, SkipReason.EMPTY) else logging.INFO
        log_event(
            self._logger,
            level,
            "translate_skipped",
            reason=reason.value,
            direction=str(direction),
            chars=len(text),
        )
        return DispatchResult(
            status=DispatchStatus.SKIPPED,
            direction=direction,
            source_text=text,
            reason=reason,
        )

    def _run(
        self,
        text: str,
        direction: TranslationDirection,
        speaker_id: Optional[str],
        is_current: Optional[Callable[[], bool]],
    ) -> DispatchResult:
        key = self.key_for(text, direction)
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None:
            translated = str(cached)
            dur_ms = 0.0
        else:
            t0 = time.perf_counter()
            try:
                translated = self._call_translator(text, direction)
            except TranslationError as exc:
                summary = describe_exception(exc)
                log_event(
                    self._logger,
                    logging.WARNING,
                    "translate_failed",
                    direction=str(direction),
                    chars=len(text),
                    error=summary,
                    hint=hint_for_exception(summary),
                )
                return DispatchResult(
                    status=DispatchStatus.FAILED,
                    direction=direction,
                    source_text=text,
                    error=exc,
                )
            dur_ms = (time.perf_counter() - t0) * 1000.0
            if self.cache is not None:
                self.cache.put(key, translated)

        # An echo of our own output in the other direction must not start a chain.
        self.dedup_window.put(self.key_for(translated, direction.inverse()))

        if is_current is not None and not is_current():
            log_event(self._logger, logging.INFO, "translate_discarded", direction=str(direction))
            return DispatchResult(
                status=DispatchStatus.DISCARDED,
                direction=direction,
                source_text=text,
                translated_text=translated,
            )

        message = TranscriptMessage(
            id=f"translation-{speaker_id or 'assistant'}-{self._ids.tick()}",
            role="assistant",
            content=format_translation(direction.source.code, direction.target.code, translated),
        )
        if self.sink is not None:
            self.sink.append(message.id, message.role, message.content, False)
        log_event(
            self._logger,
            logging.INFO,
            "translate_done",
            direction=str(direction),
            chars=len(text),
            ms=round(dur_ms, 2),
            cached=cached is not None,
        )
        return DispatchResult(
            status=DispatchStatus.TRANSLATED,
            direction=direction,
            source_text=text,
            translated_text=translated,
            message=message,
            cached=cached is not None,
        )

    def _call_translator(self, text: str, direction: TranslationDirection) -> str:
        req = TranslationRequest(
            text=text,
            source_lang=direction.source.code,
            target_lang=direction.target.code,
            requested_at=time.time(),
        )
        try:
            res = self.translator.translate(req)
        except Exception as exc:
            raise TranslationError(f"{type(exc).__name__}: {exc}") from exc
        out = getattr(res, "translated_text", None) or getattr(res, "text", None) or ""
        out = str(out).strip()
        if not out:
            raise TranslationError("translator returned empty text")
        return out
