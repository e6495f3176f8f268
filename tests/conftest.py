"""Shared test fixtures and configuration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ask_genie.llm_client import CompletionClient, CompletionConfig

TEST_ENDPOINT = "https://llm.example.com/v1/chat/completions"


# ============================================================
# Configuration fixtures
# ============================================================


@pytest.fixture
def completion_config() -> CompletionConfig:
    return CompletionConfig(
        credential="test-api-key-12345",
        model="gpt-4o-mini",
        system_prompt="You answer questions about the given text.",
        endpoint=TEST_ENDPOINT,
    )


@pytest.fixture
def client(completion_config: CompletionConfig) -> CompletionClient:
    return CompletionClient(completion_config)


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    """Write a settings file pointing at the test endpoint."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        f"""
openai_api_key: "test-api-key-12345"
model: "gpt-4o-mini"
endpoint: "{TEST_ENDPOINT}"
telegram_bot_token: "123456:ABC-DEF1234ghIkl-zyx57W2v1u123ew11"
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def note_path(tmp_path: Path) -> Path:
    path = tmp_path / "note.md"
    path.write_text("# Release plan\n\nThe release ships on March 3rd.\n", encoding="utf-8")
    return path


# ============================================================
# Telegram mock fixtures
# ============================================================


@pytest.fixture
def status_message() -> MagicMock:
    """The "processing" message the bot edits into the answer."""
    status = MagicMock()
    status.edit_text = AsyncMock()
    return status


@pytest.fixture
def mock_telegram_update(status_message: MagicMock) -> MagicMock:
    update = MagicMock()
    update.message = MagicMock()
    update.message.text = "When does the release ship?"
    update.message.reply_to_message = MagicMock()
    update.message.reply_to_message.text = "The release ships on March 3rd."
    update.message.reply_to_message.caption = None
    update.message.reply_text = AsyncMock(return_value=status_message)
    return update


@pytest.fixture
def mock_telegram_context() -> MagicMock:
    context = MagicMock()
    context.args = []
    return context


# ============================================================
# Pytest hooks
# ============================================================


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register --run-functional, which enables tests against a real endpoint."""
    parser.addoption(
        "--run-functional",
        action="store_true",
        default=False,
        help="run tests marked functional; skipped by default to avoid calling external services",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "functional: needs a real chat-completion endpoint and API key",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-functional"):
        return

    skip_marker = pytest.mark.skip(reason="needs --run-functional")
    for item in items:
        if "functional" in item.keywords:
            item.add_marker(skip_marker)
