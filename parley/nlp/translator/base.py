from __future__ import annotations

from abc import ABC, abstractmethod

from parley.contracts import TranslationRequest, TranslationResult


class Translator(ABC):
    """
    Backend contract for the dispatcher.

    `translate` may block and is called from worker threads. Backends raise on
    failure instead of returning the source text, so a failed call is never
    shown to the user as a translation.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def translate(self, req: TranslationRequest) -> TranslationResult: ...

    def _result(self, req: TranslationRequest, translated: str) -> TranslationResult:
        return TranslationResult(source_text=req.text, translated_text=translated, provider=self.name)
