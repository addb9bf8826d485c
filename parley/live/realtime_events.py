# parley/live/realtime_events.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

from parley.contracts import FunctionCall, TranscriptEvent

SESSION_CREATED = "session.created"
ITEM_CREATED = "conversation.item.created"
INPUT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
ASSISTANT_RESPONSE_DONE = "conversation.item.assistant.response.done"
OUTPUT_ITEM_DONE = "response.output_item.done"
RESPONSE_DONE = "response.done"

INAUDIBLE = "[inaudible]"
TRANSCRIBING = "[Transcribing...]"


def _speaker_hint(event: Mapping[str, Any], item: Mapping[str, Any]) -> Optional[str]:
    for source in (event, item):
        for key in ("speaker_id", "speaker"):
            value = source.get(key)
            if value:
                return str(value)
    return None


def _item_text(item: Mapping[str, Any]) -> str:
    content = item.get("content") or []
    if not content:
        return ""
    first = content[0] or {}
    return str(first.get("text") or first.get("transcript") or "")


def _function_calls(output: Any) -> tuple[FunctionCall, ...]:
    calls: list[FunctionCall] = []
    for out in output or []:
        if not isinstance(out, Mapping) or out.get("type") != "function_call" or not out.get("name"):
            continue
        raw = out.get("arguments")
        if not raw:
            continue
        try:
            arguments = json.loads(raw) if isinstance(raw, str) else raw
        except ValueError:
            # Truncated arguments; nothing to act on.
            continue
        if not isinstance(arguments, dict):
            continue
        calls.append(FunctionCall(name=str(out["name"]), arguments=arguments, call_id=out.get("call_id")))
    return tuple(calls)


def parse_server_event(event: Mapping[str, Any]) -> Optional[TranscriptEvent]:
    """
    Reduce a realtime server event to the fields the session core consumes.
    Returns None for event types the core does not handle.
    """
    etype = str(event.get("type") or "")
    item = event.get("item") or {}

    if etype == SESSION_CREATED:
        session = event.get("session") or {}
        return TranscriptEvent(
            event_type=etype,
            item_id=None,
            text="",
            session_id=session.get("id"),
        )

    if etype == ITEM_CREATED:
        role = item.get("role")
        if role not in ("user", "assistant") or not item.get("id"):
            return None
        return TranscriptEvent(
            event_type=etype,
            item_id=str(item["id"]),
            text=_item_text(item),
            is_final=False,
            role=role,
            speaker_hint=_speaker_hint(event, item),
        )

    if etype == INPUT_TRANSCRIPTION_COMPLETED:
        transcript = event.get("transcript")
        if not transcript or transcript == "\n":
            transcript = INAUDIBLE
        return TranscriptEvent(
            event_type=etype,
            item_id=event.get("item_id"),
            text=str(transcript),
            role="user",
            speaker_hint=_speaker_hint(event, item),
        )

    if etype == AUDIO_TRANSCRIPT_DELTA:
        return TranscriptEvent(
            event_type=etype,
            item_id=event.get("item_id"),
            text=str(event.get("delta") or ""),
            is_final=False,
            role="assistant",
        )

    if etype == AUDIO_TRANSCRIPT_DONE:
        return TranscriptEvent(
            event_type=etype,
            item_id=event.get("item_id"),
            text=str(event.get("transcript") or ""),
            role="assistant",
        )

    if etype == ASSISTANT_RESPONSE_DONE:
        output = (event.get("response") or {}).get("output") or []
        text = ""
        if output:
            first = output[0] or {}
            text = str(first.get("arguments") or first.get("text") or first.get("transcript") or "")
        return TranscriptEvent(
            event_type=etype,
            item_id=event.get("item_id"),
            text=text,
            role="assistant",
        )

    if etype == RESPONSE_DONE:
        response = event.get("response") or {}
        calls = _function_calls(response.get("output"))
        if not calls:
            return None
        return TranscriptEvent(
            event_type=etype,
            item_id=response.get("id"),
            text="",
            role="assistant",
            function_calls=calls,
        )

    if etype == OUTPUT_ITEM_DONE:
        if item.get("type") != "message" or item.get("role") != "assistant":
            return None
        return TranscriptEvent(
            event_type=etype,
            item_id=item.get("id"),
            text=_item_text(item),
            role="assistant",
        )

    return None


def iter_jsonl_events(path: str | Path) -> Iterator[dict[str, Any]]:
    """Yield recorded server events, one JSON object per line. Blank lines are skipped."""
    with Path(path).open("r", encoding="utf-8-sig") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            loaded = json.loads(line)
            if not isinstance(loaded, dict):
                raise ValueError(f"{path}:{lineno}: event must be a JSON object")
            yield loaded
