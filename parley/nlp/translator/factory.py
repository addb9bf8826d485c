from __future__ import annotations
import os
from typing import Any
from .base import Translator
from .argos import ArgosTranslator
from .openai_chat import OpenAIChatTranslator
from .stub import StubTranslator

def get_translator(provider: str | None = None, **options: Any) -> Translator:
    provider = (provider or os.getenv("PARLEY_TRANSLATOR", "argos")).lower().strip()

    if provider == "stub":
        return StubTranslator()
    if provider == "argos":
        return ArgosTranslator(auto_install=bool(options.get("argos_auto_install", True)))
    if provider == "openai":
        return OpenAIChatTranslator(
            model=str(options.get("openai_model", "gpt-3.5-turbo")),
            temperature=float(options.get("openai_temperature", 0.3)),
            max_tokens=int(options.get("openai_max_tokens", 150)),
        )

    raise ValueError(f"Unknown translator provider: {provider}")
