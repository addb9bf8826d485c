from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from parley.nlp.translator.base import Translator
from parley.nlp.translator.factory import get_translator
from parley.session.controller import SessionController
from parley.ui.bridge import TranscriptBus


@dataclass(frozen=True)
class SessionServices:
    translator: Translator
    bus: TranscriptBus
    controller: SessionController


def build_session_services(args: Any, logger: logging.Logger | None = None) -> SessionServices:
    translator = get_translator(
        str(args.translator),
        openai_model=args.openai_model,
        openai_temperature=args.openai_temperature,
        openai_max_tokens=args.openai_max_tokens,
        argos_auto_install=args.argos_auto_install,
    )
    bus = TranscriptBus(maxsize=max(1, int(args.queue_maxsize)))
    controller = SessionController(
        translator,
        bus,
        async_translate=bool(args.async_translate),
        max_workers=max(1, int(args.max_workers)),
        dedup_window_sec=max(0.0, float(args.dedup_window_sec)),
        cache_ttl_sec=max(0.0, float(args.cache_ttl_sec)),
        cache_max_entries=max(1, int(args.cache_max_entries)),
        prefix_chars=max(8, int(args.prefix_chars)),
        logger=logger,
    )
    return SessionServices(translator=translator, bus=bus, controller=controller)
