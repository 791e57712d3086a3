"""DebtChat Command-Line Interface.

Available Commands:
    - chat: Interactive U.S. public debt assistant (streams replies by default)
    - fetch: Call the get_us_debt tool once and print its JSON output

Session commands inside ``chat`` (case-insensitive):
    - exit / quit: end the session
    - reset: clear the conversation history
"""

import asyncio
from collections.abc import Callable

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from debtchat.backends.anyllm_backend import AnyLLMBackend
from debtchat.chat import ChatService
from debtchat.logging_config import get_logger
from debtchat.telemetry import configure_tracing
from debtchat.tools import ClockTool, DebtDataTool
from debtchat.treasury import TreasuryClient

console = Console()
logger = get_logger(__name__)

EXIT_COMMANDS = ("exit", "quit")
RESET_COMMAND = "reset"

WELCOME_MESSAGE = """\
Ask questions about U.S. public debt using the Treasury
"Debt to the Penny" dataset (data from April 1993).

Examples:
  • What is the current U.S. debt?
  • What was the debt in 2008?
  • How much did the debt increase in 2024?

Type 'exit' or 'quit' to end the session.
Type 'reset' to clear conversation history."""


async def run_chat_loop(
    service: ChatService,
    out: Console,
    stream: bool = True,
    read_line: Callable[[], str] | None = None,
) -> None:
    """Run the interactive session until the user leaves.

    Errors raised while answering are printed and the session continues.

    Args:
        service: Chat service holding the conversation
        out: Console to write to
        stream: Print replies chunk by chunk instead of all at once
        read_line: Returns the next input line; raises EOFError at end of input
    """
    read_line = read_line or (lambda: out.input("[bold cyan]You:[/bold cyan] "))

    out.print(Panel(WELCOME_MESSAGE, title="U.S. Public Debt Chat Assistant", expand=False))

    while True:
        try:
            user_input = read_line()
        except (EOFError, KeyboardInterrupt):
            out.print("\nGoodbye!")
            return

        command = user_input.strip().lower()
        if not command:
            continue

        if command in EXIT_COMMANDS:
            out.print("\nGoodbye!")
            return

        if command == RESET_COMMAND:
            service.reset()
            out.print("\nConversation history cleared.\n")
            continue

        try:
            out.print("\n[bold green]Assistant:[/bold green] ", end="")
            if stream:
                async for chunk in service.send_message_streaming(user_input):
                    out.print(chunk, end="", markup=False, highlight=False)
            else:
                reply = await service.send_message(user_input)
                out.print(reply, end="", markup=False, highlight=False)
            out.print("\n")
        except Exception as e:
            logger.error(f"Error processing message: {e}", exc_info=True)
            out.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}\n")


@click.group()
def cli() -> None:
    """DebtChat CLI - ask questions about U.S. public debt."""
    pass


@cli.command()
@click.option("--model", "-m", default=None, help="Model in provider:model_name format (defaults to settings)")
@click.option("--stream/--no-stream", default=True, help="Stream replies as they are generated")
def chat(model: str | None, stream: bool) -> None:
    """Start an interactive chat session.

    Examples:
        debtchat chat
        debtchat chat --no-stream -m anthropic:claude-sonnet-4-5
    """
    configure_tracing()

    async def run_session():
        async with TreasuryClient() as treasury:
            service = ChatService(
                backend=AnyLLMBackend(model=model),
                clock_tool=ClockTool(),
                debt_tool=DebtDataTool(treasury),
            )
            await run_chat_loop(service, console, stream=stream)

    try:
        asyncio.run(run_session())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


@cli.command()
@click.option("--filter", "-f", "filter_", default=None, help="Filter, e.g. record_date:eq:2024-12-31")
@click.option("--sort", "-s", default=None, help="Sort field, '-' prefix for descending")
@click.option("--page", "-p", "page_number", default=None, type=int, help="Page number (1-based)")
@click.option("--size", "-n", "page_size", default=None, type=int, help="Records per page (1-10000)")
def fetch(filter_: str | None, sort: str | None, page_number: int | None, page_size: int | None) -> None:
    """Run the get_us_debt tool once and print its JSON output.

    Examples:
        debtchat fetch -n 1
        debtchat fetch -f record_calendar_year:eq:2008 --sort=-record_date -n 1
    """

    async def run_fetch() -> str:
        async with TreasuryClient() as treasury:
            return await DebtDataTool(treasury).get_us_debt(
                filter=filter_,
                sort=sort,
                page_number=page_number,
                page_size=page_size,
            )

    console.print_json(asyncio.run(run_fetch()))
