"""Telegram front end: reply to a message to ask a question about it."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from telegram import BotCommand, Message, Update
from telegram.error import BadRequest
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes, MessageHandler, filters

from .config import load_settings, require_bot_token
from .llm_client import CompletionClient, QueryError

logger = logging.getLogger(__name__)

PROCESSING_TEXT = "Processing your request..."
EMPTY_ANSWER_TEXT = "The model returned an empty answer."
# Telegram rejects longer messages
MESSAGE_LIMIT = 4096

BOT_COMMANDS = [
    BotCommand("start", "Show the welcome message"),
    BotCommand("help", "List available commands"),
    BotCommand("ask", "Ask a question about the message you reply to"),
]

HELP_TEXT = """*Ask Genie*

Reply to any message with `/ask <question>` and the replied message is used as context.
You can also just reply to a message with your question as plain text.

/start - welcome message
/help - this help"""

USAGE_NO_CONTEXT = "Reply to a message that contains text, then send /ask <question>."
USAGE_NO_QUESTION = "Usage: /ask <question> (sent as a reply to the message to ask about)"


def context_from_reply(message: Message) -> str | None:
    reply = message.reply_to_message
    if reply is None:
        return None
    return reply.text or reply.caption or None


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    """Split text into parts of at most `limit` characters, preferring line breaks."""
    parts: list[str] = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        parts.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        parts.append(text)
    return parts


async def _send_chunk(send: Callable[..., Awaitable[Any]], text: str, render_markdown: bool) -> None:
    if render_markdown:
        try:
            await send(text, parse_mode="Markdown", disable_web_page_preview=True)
            return
        except BadRequest:
            logger.info("Answer is not valid Telegram Markdown, sending as plain text")
    await send(text, disable_web_page_preview=True)


class AskGenieBot:
    def __init__(self, settings_path: str | Path) -> None:
        self._settings_path = Path(settings_path)

    def _client(self) -> tuple[CompletionClient, bool]:
        # settings are re-read per question so edits apply without a restart
        settings = load_settings(self._settings_path)
        return CompletionClient(settings.to_completion_config()), settings.render_markdown

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:  # noqa: ARG002
        if not update.message:
            return
        await update.message.reply_text(
            "Hi! Reply to any message with a question and I'll answer it using that message as context.\n\n"
            "Send /help to see all commands."
        )

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:  # noqa: ARG002
        if not update.message:
            return
        await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")

    async def ask(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return
        question = " ".join(context.args or []).strip()
        await self._answer(update.message, question)

    async def handle_reply(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:  # noqa: ARG002
        if not update.message or not update.message.text:
            return
        await self._answer(update.message, update.message.text.strip())

    async def _answer(self, message: Message, question: str) -> None:
        document = context_from_reply(message)
        if not document:
            await message.reply_text(USAGE_NO_CONTEXT)
            return
        if not question:
            await message.reply_text(USAGE_NO_QUESTION)
            return

        status = await message.reply_text(PROCESSING_TEXT)

        try:
            client, render_markdown = self._client()
            answer = await client.query(document, question)
        except QueryError as exc:
            await status.edit_text(f"Error: {exc.message}")
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to answer question")
            await status.edit_text(f"Error: {exc}")
            return

        await self._send_answer(message, status, answer, render_markdown)

    async def _send_answer(self, message: Message, status: Message, answer: str, render_markdown: bool) -> None:
        if not answer.strip():
            await status.edit_text(EMPTY_ANSWER_TEXT)
            return

        chunks = split_message(answer)
        delivered = 0
        try:
            await _send_chunk(status.edit_text, chunks[0], render_markdown)
            delivered = 1
            for chunk in chunks[1:]:
                await _send_chunk(message.reply_text, chunk, render_markdown)
                delivered += 1
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to send answer (%d of %d parts sent)", delivered, len(chunks))
            if delivered == 0:
                await status.edit_text(f"Error: {exc}")
            else:
                await message.reply_text(f"Error: {exc}")


async def post_init(application: Application) -> None:
    await application.bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands registered: %s", [cmd.command for cmd in BOT_COMMANDS])


def create_application(settings_path: str | Path) -> Application:
    token = require_bot_token(load_settings(settings_path))
    app = ApplicationBuilder().token(token).post_init(post_init).build()

    bot_app = AskGenieBot(settings_path)
    app.add_handler(CommandHandler("start", bot_app.start))
    app.add_handler(CommandHandler("help", bot_app.help_command))
    app.add_handler(CommandHandler("ask", bot_app.ask))
    app.add_handler(MessageHandler(filters.TEXT & filters.REPLY & ~filters.COMMAND, bot_app.handle_reply))
    return app


def run_bot(settings_path: str | Path = "settings.yaml") -> None:
    create_application(settings_path).run_polling()
