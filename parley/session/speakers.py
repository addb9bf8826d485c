from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from parley.contracts import Language
from parley.session.clock import LogicalClock


@dataclass
class Speaker:
    speaker_id: str
    language: Language
    last_spoken_at: int
    is_active: bool = True


class SpeakerRegistry:
    """
    Session-scoped set of inferred speakers.

    Entries are never removed during a session; `deactivate` only flips the
    activity flag. Recency is measured with the injected logical clock so that
    "who spoke last" is deterministic.
    """

    def __init__(self, clock: Optional[LogicalClock] = None) -> None:
        self.clock = clock or LogicalClock()
        self._speakers: Dict[str, Speaker] = {}

    def __len__(self) -> int:
        return len(self._speakers)

    def __contains__(self, speaker_id: object) -> bool:
        return speaker_id in self._speakers

    def get(self, speaker_id: str) -> Optional[Speaker]:
        return self._speakers.get(speaker_id)

    def upsert(self, speaker_id: str, language: Language) -> Speaker:
        now = self.clock.tick()
        speaker = self._speakers.get(speaker_id)
        if speaker is None:
            speaker = Speaker(speaker_id=speaker_id, language=language, last_spoken_at=now)
            self._speakers[speaker_id] = speaker
            return speaker
        speaker.language = language
        speaker.last_spoken_at = now
        speaker.is_active = True
        return speaker

    def deactivate(self, speaker_id: str) -> None:
        speaker = self._speakers.get(speaker_id)
        if speaker is not None:
            speaker.is_active = False

    def active_speakers(self) -> List[Speaker]:
        active = [s for s in self._speakers.values() if s.is_active]
        active.sort(key=lambda s: s.last_spoken_at, reverse=True)
        return active

    def find_by_language(self, code: str) -> Optional[Speaker]:
        for speaker in self.active_speakers():
            if speaker.language.code == code:
                return speaker
        return None

    def distinct_recent_languages(self, limit: int = 2) -> List[Speaker]:
        """Most recent speaker per language, newest first, at most `limit`."""
        out: List[Speaker] = []
        seen: set[str] = set()
        for speaker in self.active_speakers():
            if speaker.language.code in seen:
                continue
            seen.add(speaker.language.code)
            out.append(speaker)
            if len(out) >= limit:
                break
        return out

    def reset(self) -> None:
        self._speakers.clear()
