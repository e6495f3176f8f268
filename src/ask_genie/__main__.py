"""Command-line entry point: ask questions about a note, edit settings, run the bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TextIO

from .config import SETTING_KEYS, load_settings, mask_secret, set_setting
from .llm_client import CompletionClient, QueryError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ask-genie", description="Ask an LLM questions about a note")
    parser.add_argument(
        "--settings",
        type=Path,
        default=Path("settings.yaml"),
        help="settings file path (default: settings.yaml)",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="ask a question using a note as context")
    ask.add_argument("note", type=Path, help="file whose text is used as context")
    ask.add_argument("question", nargs="?", help="question to ask; omit to read questions from stdin")

    config = sub.add_parser("config", help="show or edit settings")
    config_sub = config.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="print current settings")
    config_sub.add_parser("path", help="print the settings file path")
    set_cmd = config_sub.add_parser("set", help="change one setting and save it")
    set_cmd.add_argument("key", choices=SETTING_KEYS)
    set_cmd.add_argument("value")

    sub.add_parser("bot", help="run the Telegram bot")
    return parser


def _read_note(path: Path) -> str:
    if not path.is_file():
        raise FileNotFoundError(f"Note not found or not a file: {path}")
    return path.read_text(encoding="utf-8")


async def _ask_once(client: CompletionClient, document: str, question: str, out: TextIO, err: TextIO) -> bool:
    print("Processing your request...", file=err)
    try:
        answer = await client.query(document, question)
    except QueryError as exc:
        print(f"Error: {exc.message}", file=err)
        return False
    print(answer, file=out)
    return True


async def _ask_interactive(client: CompletionClient, document: str, src: TextIO, out: TextIO, err: TextIO) -> int:
    ok = True
    for line in src:
        question = line.rstrip("\n")
        if not question.strip():
            continue
        ok = await _ask_once(client, document, question, out, err) and ok
    return 0 if ok else 1


def run_ask(
    settings_path: Path,
    note: Path,
    question: str | None,
    src: TextIO | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    src = src or sys.stdin
    out = out or sys.stdout
    err = err or sys.stderr
    document = _read_note(note)
    if not document:
        print(f"Note is empty, nothing to ask about: {note}", file=err)
        return 1

    client = CompletionClient(load_settings(settings_path).to_completion_config())
    if question is not None:
        ok = asyncio.run(_ask_once(client, document, question, out, err))
        return 0 if ok else 1
    return asyncio.run(_ask_interactive(client, document, src, out, err))


def run_config(settings_path: Path, args: argparse.Namespace, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    if args.action == "path":
        print(settings_path.resolve(), file=out)
        return 0

    if args.action == "set":
        set_setting(settings_path, args.key, args.value)
        print(f"Saved {args.key}", file=out)
        return 0

    data = load_settings(settings_path).to_mapping()
    for secret in ("openai_api_key", "telegram_bot_token"):
        if data.get(secret):
            data[secret] = mask_secret(str(data[secret]))
    for key, value in data.items():
        print(f"{key}: {value}", file=out)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        if args.command == "ask":
            return run_ask(args.settings, args.note, args.question)
        if args.command == "config":
            return run_config(args.settings, args)

        from .bot import run_bot

        run_bot(args.settings)
        return 0
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
