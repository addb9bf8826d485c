# parley/nlp/markers.py
from __future__ import annotations

import re

# Read back by the session core to avoid translating its own output; the
# format must stay stable.
_MARKER = re.compile(r"\[([\w-]+) → ([\w-]+)\]")
_MARKER_PREFIX = re.compile(r"^\s*\[[\w-]+ → [\w-]+\]\s*")
_WS = re.compile(r"\s+")


def format_translation(source_code: str, target_code: str, text: str) -> str:
    return f"[{source_code} → {target_code}] {text.strip()}"


def is_translation_message(text: str) -> bool:
    if not text:
        return False
    return _MARKER.search(text) is not None


def strip_marker(text: str) -> str:
    return _MARKER_PREFIX.sub("", text or "", count=1)


def normalize_prefix(text: str, max_chars: int = 64) -> str:
    t = _WS.sub(" ", (text or "").strip()).casefold()
    return t[: max(1, int(max_chars))]
