from __future__ import annotations
import os
from typing import Any, Optional
from .base import Translator
from parley.contracts import TranslationRequest, TranslationResult
from parley.nlp.language_id import LANGUAGE_NAMES

_SYSTEM_PROMPT = (
    "You are a strict translation system. Your only task is to translate text from "
    "{source} to {target}. Do not interpret, understand, or make assumptions about the text. "
    "Do not add any explanations or additional text. Only output the direct translation. "
    "If you cannot translate a word or phrase, keep it in the original language."
)


class OpenAIChatTranslator(Translator):
    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.3,
        max_tokens: int = 150,
        api_key: Optional[str] = None,
        client: Any = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._client = client

    @property
    def name(self) -> str:
        return "openai"

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            api_key = self._api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY is not set")
            self._client = OpenAI(api_key=api_key)
        return self._client

    def translate(self, req: TranslationRequest) -> TranslationResult:
        system = _SYSTEM_PROMPT.format(
            source=LANGUAGE_NAMES.get(req.source_lang, req.source_lang),
            target=LANGUAGE_NAMES.get(req.target_lang, req.target_lang),
        )
        completion = self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": req.text},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        content = (completion.choices[0].message.content or "").strip()
        if not content:
            raise RuntimeError("empty translation from chat completion")
        return self._result(req, content)
