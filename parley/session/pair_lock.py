from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from parley.app.logging_setup import log_event
from parley.contracts import InvalidLanguagePairError, Language
from parley.session.speakers import SpeakerRegistry


class PairState(str, Enum):
    NO_PAIR = "no_pair"
    LOCKED = "locked"


class PairTransition(str, Enum):
    NONE = "none"
    LOCKED = "locked"
    EXTENDED = "extended"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LockedLanguagePair:
    source: Language
    target: Language
    speakers: Tuple[Optional[str], Optional[str]] = (None, None)

    def __post_init__(self) -> None:
        if self.source.code == self.target.code:
            raise InvalidLanguagePairError(
                f"source and target must differ, got {self.source.code!r} twice"
            )

    @property
    def codes(self) -> Tuple[str, str]:
        return self.source.code, self.target.code

    def side_of(self, code: str) -> Optional[str]:
        if code == self.source.code:
            return "source"
        if code == self.target.code:
            return "target"
        return None


class LanguagePairLocker:
    """
    NoPair/Locked state machine over the stream of (speaker, language)
    observations.

    Only `reset()` returns to NoPair. Any proposed pair with identical codes
    is rejected and the previous pair is kept.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._pair: Optional[LockedLanguagePair] = None
        self._last_used: Optional[str] = None
        self._logger = logger or logging.getLogger(__name__)

    @property
    def pair(self) -> Optional[LockedLanguagePair]:
        return self._pair

    @property
    def state(self) -> PairState:
        return PairState.LOCKED if self._pair is not None else PairState.NO_PAIR

    @property
    def last_used_code(self) -> Optional[str]:
        return self._last_used

    def select(self, source: Language, target: Language) -> LockedLanguagePair:
        pair = LockedLanguagePair(source=source, target=target)
        self._pair = pair
        self._last_used = None
        log_event(self._logger, logging.INFO, "pair_selected", source=source.code, target=target.code)
        return pair

    def reset(self) -> None:
        if self._pair is not None:
            log_event(self._logger, logging.INFO, "pair_reset", source=self._pair.source.code,
                      target=self._pair.target.code)
        self._pair = None
        self._last_used = None

    def observe(self, speaker_id: str, language: Language, registry: SpeakerRegistry) -> PairTransition:
        if self._pair is None:
            return self._try_lock(registry)

        side = self._pair.side_of(language.code)
        if side is not None:
            self._last_used = language.code
            self._claim_side(side, speaker_id)
            return PairTransition.UNCHANGED
        return self._extend(speaker_id, language)

    def _claim_side(self, side: str, speaker_id: str) -> None:
        # A selected pair starts without speakers; the first voice on each side owns it.
        pair = self._pair
        assert pair is not None
        source_id, target_id = pair.speakers
        if side == "source" and source_id is None:
            self._pair = replace(pair, speakers=(speaker_id, target_id))
        elif side == "target" and target_id is None:
            self._pair = replace(pair, speakers=(source_id, speaker_id))

    def _try_lock(self, registry: SpeakerRegistry) -> PairTransition:
        recent = registry.distinct_recent_languages(limit=2)
        if len(recent) < 2:
            return PairTransition.NONE
        newer, older = recent[0], recent[1]
        if not self._accept(older.language, newer.language):
            return PairTransition.REJECTED
        self._pair = LockedLanguagePair(
            source=older.language,
            target=newer.language,
            speakers=(older.speaker_id, newer.speaker_id),
        )
        self._last_used = newer.language.code
        log_event(
            self._logger,
            logging.INFO,
            "pair_locked",
            source=older.language.code,
            target=newer.language.code,
            speakers=[older.speaker_id, newer.speaker_id],
        )
        return PairTransition.LOCKED

    def _extend(self, speaker_id: str, language: Language) -> PairTransition:
        pair = self._pair
        assert pair is not None
        # Keep the most recently used side; with no usage yet, keep the source.
        if self._last_used == pair.target.code:
            replaced = "source"
            new_source, new_target = language, pair.target
            speakers = (speaker_id, pair.speakers[1])
        else:
            replaced = "target"
            new_source, new_target = pair.source, language
            speakers = (pair.speakers[0], speaker_id)

        if not self._accept(new_source, new_target):
            return PairTransition.REJECTED
        self._pair = replace(pair, source=new_source, target=new_target, speakers=speakers)
        self._last_used = language.code
        log_event(
            self._logger,
            logging.INFO,
            "pair_extended",
            replaced_side=replaced,
            source=new_source.code,
            target=new_target.code,
            speaker_id=speaker_id,
        )
        return PairTransition.EXTENDED

    def _accept(self, source: Language, target: Language) -> bool:
        if source.code != target.code:
            return True
        log_event(
            self._logger,
            logging.WARNING,
            "pair_update_rejected",
            source=source.code,
            target=target.code,
            kept=list(self._pair.codes) if self._pair is not None else None,
        )
        return False
