"""
toolagent CLI: chat with an OpenAI-compatible model that can call tools.

Configuration comes from ``TOOLAGENT_*`` environment variables (see
``toolagent.config.Settings``); a few options can be overridden on the
command line.  Log records go to ``Settings.log_file`` so the terminal only
shows the conversation.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TextIO

from toolagent.config import Settings, get_settings
from toolagent.conversation.loop import ConversationOrchestrator, TurnResult
from toolagent.conversation.providers import OpenAICompatibleProvider, ToolCall
from toolagent.conversation.tools import default_registry

logger = logging.getLogger(__name__)

_QUIT_COMMANDS = {"quit", "exit"}


class ConsoleListener:
    """Prints streamed reasoning and answer text as it arrives."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out or sys.stdout
        self._section: str | None = None

    def _write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()

    def on_reasoning(self, text: str) -> None:
        if self._section != "reasoning":
            self._write("\n[Reasoning]: ")
            self._section = "reasoning"
        self._write(text)

    def on_content(self, text: str) -> None:
        if self._section != "answer":
            self._write("\n[Answer]: ")
            self._section = "answer"
        self._write(text)

    def on_tool_result(self, call: ToolCall, result: str) -> None:
        self._write(f"\n - {call.name}({call.arguments}) -> {result}")
        self._section = None

    def end_request(self, result: TurnResult) -> None:
        if not result.ok:
            self._write(f"\n[Error]: {result.error}")
        self._write("\n")
        self._section = None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolagent",
        description="Tool-calling chat agent for OpenAI-compatible APIs",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--model", default=None, help="Model name (overrides TOOLAGENT_MODEL)")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Full API base URL, e.g. https://api.openai.com/v1",
    )
    parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Request whole responses instead of streamed chunks",
    )
    parser.add_argument(
        "--once",
        metavar="TEXT",
        default=None,
        help="Send a single request and exit",
    )
    return parser


def configure_logging(settings: Settings, debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=settings.log_file,
        encoding="utf-8",
    )


def build_orchestrator(
    settings: Settings,
    base_url: str | None = None,
    listener: ConsoleListener | None = None,
) -> ConversationOrchestrator:
    """Wire provider, registry and orchestrator from *settings*."""
    provider = OpenAICompatibleProvider.from_settings(settings, base_url=base_url)
    registry = default_registry(
        timeout=settings.tool_timeout, weather_timeout=settings.weather_timeout
    )
    logger.info("%s", registry.describe())

    return ConversationOrchestrator(
        provider=provider,
        registry=registry,
        system_prompt=settings.system_prompt,
        max_iterations=settings.max_iterations,
        listener=listener,
        tool_failure_message=settings.tool_failure_message,
    )


async def _answer(
    orchestrator: ConversationOrchestrator, listener: ConsoleListener, text: str
) -> None:
    try:
        result = await orchestrator.run(text)
    except Exception as exc:
        logger.error("Unexpected error while answering: %s", exc, exc_info=True)
        print(f"\n[Error]: {exc}")
        return
    listener.end_request(result)


async def run_session(
    orchestrator: ConversationOrchestrator,
    listener: ConsoleListener,
    once: str | None = None,
) -> None:
    """Read user input until quit/EOF, answering each line."""
    if once is not None:
        await _answer(orchestrator, listener, once)
        return

    print("🤖 Agent ready. Type 'quit' to leave.")
    while True:
        try:
            user_input = await asyncio.to_thread(input, "\n💬 You: ")
        except EOFError:
            break
        user_input = user_input.strip()
        if user_input.lower() in _QUIT_COMMANDS:
            break
        if not user_input:
            continue
        await _answer(orchestrator, listener, user_input)
    print("👋 Bye!")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.no_stream:
        overrides["stream"] = False
    settings = get_settings(**overrides)
    configure_logging(settings, debug=args.debug)

    listener = ConsoleListener()
    orchestrator = build_orchestrator(settings, base_url=args.base_url, listener=listener)
    try:
        asyncio.run(run_session(orchestrator, listener, once=args.once))
    except KeyboardInterrupt:
        print("\n👋 Bye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
