from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .llm_client import DEFAULT_ENDPOINT, CompletionConfig

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, str] = {
    "openai_api_key": "sk-...",
    "initial_prompt": (
        "you are a helpful and smart assistant. "
        "you are given a text and you need to answer the question based on the text."
    ),
    "model": "gpt-4o-mini",
}


@dataclass
class Settings:
    openai_api_key: str = DEFAULT_SETTINGS["openai_api_key"]
    initial_prompt: str = DEFAULT_SETTINGS["initial_prompt"]
    model: str = DEFAULT_SETTINGS["model"]
    endpoint: str = DEFAULT_ENDPOINT
    # empty means no timeout
    timeout_s: float | None = None
    telegram_bot_token: str = ""
    # bot only: send answers as Telegram Markdown
    render_markdown: bool = True
    # keys we don't know about are kept so saving doesn't drop them
    extra: dict[str, Any] = field(default_factory=dict)

    def to_completion_config(self) -> CompletionConfig:
        return CompletionConfig(
            credential=self.openai_api_key,
            model=self.model,
            system_prompt=self.initial_prompt,
            endpoint=self.endpoint,
            timeout_s=self.timeout_s,
        )

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        for f in fields(self):
            if f.name != "extra":
                data[f.name] = getattr(self, f.name)
        return data


SETTING_KEYS = tuple(f.name for f in fields(Settings) if f.name != "extra")


def _parse_timeout(value: Any) -> float | None:
    if value in ("", None):
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"timeout_s must be a number of seconds, got: {value!r}") from exc
    if timeout <= 0:
        raise ValueError("timeout_s must be > 0")
    return timeout


def _parse_bool(value: Any, default: bool) -> bool:
    if value in ("", None):
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Expected a boolean, got: {value!r}")


def _or_default(merged: dict[str, Any], key: str) -> str:
    # a blank YAML value (`key:`) loads as None and counts as unset
    value = merged.get(key)
    if value in ("", None):
        return DEFAULT_SETTINGS[key]
    return str(value)


def _build_settings(raw: dict[str, Any]) -> Settings:
    merged = {**DEFAULT_SETTINGS, **raw}
    extra = {k: v for k, v in merged.items() if k not in SETTING_KEYS}

    return Settings(
        openai_api_key=_or_default(merged, "openai_api_key"),
        initial_prompt=_or_default(merged, "initial_prompt"),
        model=_or_default(merged, "model"),
        endpoint=str(merged.get("endpoint") or DEFAULT_ENDPOINT),
        timeout_s=_parse_timeout(merged.get("timeout_s")),
        telegram_bot_token=str(merged.get("telegram_bot_token") or ""),
        render_markdown=_parse_bool(merged.get("render_markdown"), default=True),
        extra=extra,
    )


def load_settings(path: str | Path) -> Settings:
    """Load settings from YAML, merged over the defaults.

    A missing file is not an error: the defaults are returned.
    """
    path = Path(path)
    if not path.exists():
        logger.info("Settings file not found, using defaults: %s", path)
        return Settings()

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")

    return _build_settings(raw)


def save_settings(path: str | Path, settings: Settings) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(settings.to_mapping(), f, allow_unicode=True, sort_keys=False)


def set_setting(path: str | Path, key: str, value: str) -> Settings:
    """Change one setting and write the file straight away."""
    if key not in SETTING_KEYS:
        raise ValueError(f"Unknown setting: {key} (expected one of: {', '.join(SETTING_KEYS)})")

    raw = load_settings(path).to_mapping()
    raw[key] = value
    settings = _build_settings(raw)
    save_settings(path, settings)
    logger.info("Setting saved: %s", key)
    return settings


def require_bot_token(settings: Settings) -> str:
    if not settings.telegram_bot_token:
        raise ValueError("Settings are missing the required field: telegram_bot_token")
    return settings.telegram_bot_token


def mask_secret(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:3]}...{value[-4:]}"
