from __future__ import annotations

import logging
import traceback

from parley.app.config import resolve_args
from parley.app.diagnostics import hint_for_exception, summarize_exception
from parley.app.logging_setup import setup_app_logger
from parley.app.services import build_session_services
from parley.contracts import InvalidLanguagePairError
from parley.live.realtime_events import iter_jsonl_events
from parley.ui.bridge import TranscriptBus


def _print_messages(bus: TranscriptBus, enabled: bool) -> int:
    messages = bus.drain()
    if enabled:
        for m in messages:
            if m.is_streaming:
                continue
            print(f"[{m.role:9s}] {m.content}")
    return len(messages)


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(level=logging.DEBUG if args.debug else logging.INFO)
    logger.info(
        "app_start",
        extra={"events_path": str(args.events), "translator": str(args.translator), "argv": argv or []},
    )

    services = build_session_services(args, logger=logger)
    controller = services.controller
    bus = services.bus
    controller.connect()

    if args.source_lang and args.target_lang:
        try:
            controller.select_pair(args.source_lang, args.target_lang)
        except InvalidLanguagePairError as exc:
            print(f"Invalid language pair: {exc}")
            controller.teardown()
            return 2

    events = 0
    try:
        for event in iter_jsonl_events(args.events):
            controller.handle_event(event)
            events += 1
            _print_messages(bus, bool(args.print_console))
    except (OSError, ValueError):
        summary = summarize_exception(traceback.format_exc())
        controller.state.set_error(summary)
        logger.exception("replay_failed", extra={"events": events})
        print(f"Replay failed: {summary}\n{hint_for_exception(summary)}\nSee log: {log_path}")
        return 1
    finally:
        if not controller.wait_idle(timeout=float(args.wait_timeout_sec)):
            logger.warning("replay_pending_translations_dropped")
        _print_messages(bus, bool(args.print_console))
        pair = controller.pair
        logger.info(
            "app_stop",
            extra={
                "events": events,
                "pair": list(pair.codes) if pair is not None else None,
                "last_error": controller.state.last_error,
            },
        )
        controller.teardown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
