from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from parley.app.logging_setup import log_event
from parley.contracts import Language
from parley.session.pair_lock import LanguagePairLocker, LockedLanguagePair
from parley.session.speakers import SpeakerRegistry


@dataclass(frozen=True)
class TranslationDirection:
    source: Language
    target: Language

    @property
    def is_identity(self) -> bool:
        return self.source.code == self.target.code

    def inverse(self) -> "TranslationDirection":
        return TranslationDirection(source=self.target, target=self.source)

    def belongs_to(self, pair: LockedLanguagePair) -> bool:
        return {self.source.code, self.target.code} == set(pair.codes)

    def __str__(self) -> str:
        return f"{self.source.code} → {self.target.code}"


class DirectionResolver:
    def __init__(
        self,
        registry: SpeakerRegistry,
        locker: LanguagePairLocker,
        logger: logging.Logger | None = None,
    ) -> None:
        self.registry = registry
        self.locker = locker
        self._logger = logger or logging.getLogger(__name__)

    def resolve(self, speaker_id: Optional[str]) -> Optional[TranslationDirection]:
        pair = self.locker.pair
        if pair is None:
            return None
        default = TranslationDirection(source=pair.source, target=pair.target)

        speaker = self.registry.get(speaker_id) if speaker_id else None
        if speaker is None:
            return default

        code = speaker.language.code
        if code == pair.source.code:
            return default
        if code == pair.target.code:
            return default.inverse()

        log_event(
            self._logger,
            logging.WARNING,
            "direction_language_drift",
            speaker_id=speaker_id,
            speaker_language=code,
            pair=list(pair.codes),
        )
        return default

    def resolve_for_language(self, code: Optional[str]) -> Optional[TranslationDirection]:
        """Direction for text already known to be in `code`, e.g. a model tool call."""
        pair = self.locker.pair
        if pair is None:
            return None
        default = TranslationDirection(source=pair.source, target=pair.target)
        if (code or "").strip().lower() == pair.target.code:
            return default.inverse()
        return default

    def resolve_reply(self, last_user_direction: Optional[TranslationDirection]) -> Optional[TranslationDirection]:
        """The assistant answers in the other language, so replies go the opposite way."""
        pair = self.locker.pair
        if pair is None:
            return None
        if last_user_direction is not None and last_user_direction.belongs_to(pair):
            return last_user_direction.inverse()
        return TranslationDirection(source=pair.target, target=pair.source)
