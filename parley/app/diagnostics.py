from __future__ import annotations

import traceback

UNKNOWN_ERROR = "Unknown translation error."

# Traceback frames and carets never carry the error text itself.
_NOISE_PREFIXES = ("Traceback ", "File ", "^", "~", "During handling", "The above exception")

# First match wins; needles are compared against the lowercased summary.
_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("openai_api_key", "api key", "401"), "OpenAI credentials are missing or invalid. Set OPENAI_API_KEY and retry."),
    (
        ("no argos package", "argos model"),
        "No offline model for this language pair. Enable argos_auto_install or pick another translator.",
    ),
    (("no module named",), "A required package is missing in this virtualenv. Reinstall dependencies and retry."),
    (("config file not found",), "Configured JSON file is missing. Update the config path or restore the file."),
    (("rate limit", "429"), "Translation backend is rate limiting requests. Slow down or switch provider."),
    (("timeout", "timed out", "connection"), "Translation backend unreachable. Check network access."),
)


def _clip(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3].rstrip() + "..."


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    """Pick the line of a formatted traceback that names the error."""
    lines = [ln.strip() for ln in str(detail or "").splitlines() if ln.strip()]
    if not lines:
        return UNKNOWN_ERROR
    meaningful = [ln for ln in lines if not ln.startswith(_NOISE_PREFIXES)]
    return _clip(meaningful[-1] if meaningful else lines[-1], max_len)


def describe_exception(exc: BaseException, *, max_len: int = 220) -> str:
    return summarize_exception("".join(traceback.format_exception_only(type(exc), exc)), max_len=max_len)


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    for needles, hint in _HINTS:
        if any(n in s for n in needles):
            return hint
    return "Check logs for full traceback."
