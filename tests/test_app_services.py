from __future__ import annotations

from types import SimpleNamespace

from parley.app.config import load_default_config
from parley.app.services import build_session_services
from parley.nlp.translator.stub import StubTranslator
from parley.ui.bridge import TranscriptBus


def test_build_session_services_wires_controller_to_bus() -> None:
    values = load_default_config()
    values.update({"translator": "stub", "async_translate": False, "queue_maxsize": 0, "prefix_chars": 2})
    services = build_session_services(SimpleNamespace(**values))

    assert isinstance(services.translator, StubTranslator)
    assert isinstance(services.bus, TranscriptBus)
    assert services.controller.sink is services.bus
    assert services.controller.dispatcher.prefix_chars == 8
    assert services.controller.async_translate is False
