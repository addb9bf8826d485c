from __future__ import annotations

from parley.contracts import TranslationRequest, TranslationResult

from .base import Translator


class StubTranslator(Translator):
    """Offline backend that tags the text with the target code, e.g. `<zh>hello</zh>`."""

    @property
    def name(self) -> str:
        return "stub"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        tag = req.target_lang
        return self._result(req, f"<{tag}>{req.text}</{tag}>")
