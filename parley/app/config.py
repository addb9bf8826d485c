from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from platformdirs import user_config_dir


@dataclass(frozen=True)
class Option:
    key: str
    default: Any
    help: str
    type: Optional[Callable[[str], Any]] = None


# Every option is both a config.json key and a CLI flag (`--dedup-window-sec`).
# Bool options become --flag/--no-flag switches.
OPTIONS: tuple[Option, ...] = (
    Option("translator", "argos", "stub|argos|openai"),
    Option("source_lang", None, "pre-select the source language code"),
    Option("target_lang", None, "pre-select the target language code"),
    Option("async_translate", True, "translate on a worker pool instead of inline"),
    Option("max_workers", 4, "translation worker threads", int),
    Option("dedup_window_sec", 5.0, "suppress identical translation requests within this many seconds", float),
    Option("cache_ttl_sec", 300.0, "reuse finished translations for this long (0 disables the cache)", float),
    Option("cache_max_entries", 256, "translation cache size", int),
    Option("prefix_chars", 64, "leading characters compared when detecting duplicate requests", int),
    Option("openai_model", "gpt-3.5-turbo", "chat completion model"),
    Option("openai_temperature", 0.3, "chat completion temperature", float),
    Option("openai_max_tokens", 150, "chat completion token limit", int),
    Option("argos_auto_install", True, "download missing Argos language packages"),
    Option("queue_maxsize", 200, "max transcript messages buffered for the console", int),
    Option("wait_timeout_sec", 30.0, "how long to wait for in-flight translations at the end of the replay", float),
    Option("print_console", True, "print transcript messages to console"),
    Option("debug", False, "log duplicate drops and other debug events"),
)
DEFAULTS: dict[str, Any] = {opt.key: opt.default for opt in OPTIONS}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS)


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("Parley", "Parley"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _read_config(path: Path) -> dict[str, Any]:
    # utf-8-sig: files saved by Notepad start with a BOM.
    loaded = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return {k: v for k, v in loaded.items() if k in DEFAULTS}


def _write_config(path: Path, values: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    known = {k: values[k] for k in CONFIG_KEYS if k in values}
    path.write_text(json.dumps(known, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_default_config() -> dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    path = app_paths().config_path
    if not path.exists():
        _write_config(path, defaults or load_default_config())
    return path


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    """Defaults overlaid with the known keys of the chosen config file."""
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists()
    return {**load_default_config(), **_read_config(chosen)}, chosen


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="parley",
        description="Replay recorded realtime events through the two-speaker translation session.",
    )
    p.add_argument("events", help="JSONL file of realtime server events")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    for opt in OPTIONS:
        flag = "--" + opt.key.replace("_", "-")
        default = defaults.get(opt.key, opt.default)
        if isinstance(opt.default, bool):
            p.add_argument(flag, action=argparse.BooleanOptionalAction, default=bool(default), help=opt.help)
        elif opt.type is not None:
            p.add_argument(flag, type=opt.type, default=default, help=opt.help)
        else:
            p.add_argument(flag, default=default, help=opt.help)
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    return parser_with_defaults(defaults).parse_args(argv)
