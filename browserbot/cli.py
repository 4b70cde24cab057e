"""
CLI for BrowserBot.

Provides the command-line interface using argparse.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import IntPrompt, Prompt

from . import __version__
from .agent import run_agent
from .config import DEFAULTS, PROVIDERS, AgentConfig, get_runs_dir
from .errors import ConfigurationError
from .logger import RunLogger

INTERACTIVE_DEFAULT_STEPS = 10


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="browserbot",
        description="BrowserBot - an autonomous agent that controls your browser.",
        epilog="""
Examples:
  # Get the title of a webpage
  browserbot run "Open example.com and tell me the title"

  # Play something and keep it playing until you press Enter
  browserbot run "Play lofi music on YouTube"

  # Use a specific LLM endpoint
  browserbot run "Search Google for Playwright" --model-endpoint http://localhost:1234/v1 --model llama3

  # Use Azure OpenAI (reads AZURE_OPENAI_* from the environment)
  browserbot run "Find the cheapest USB-C cable on amazon.com" --provider azure

  # Prompt for the task interactively
  browserbot run
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"BrowserBot {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run",
        help="Run the browser agent on a task",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    run_parser.add_argument(
        "task",
        type=str,
        nargs="?",
        default=None,
        help="The task to accomplish in natural language (prompted for when omitted)",
    )

    run_parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help=f"Maximum steps to execute (default: {DEFAULTS['max_steps']})",
    )

    run_parser.add_argument(
        "--max-failures",
        type=int,
        default=DEFAULTS["max_failures"],
        help=f"Consecutive failed turns before giving up (default: {DEFAULTS['max_failures']})",
    )

    run_parser.add_argument(
        "--headless",
        action="store_true",
        default=DEFAULTS["headless"],
        help="Run browser in headless mode",
    )

    run_parser.add_argument(
        "--provider",
        type=str,
        choices=PROVIDERS,
        default=None,
        help=f"Model provider (default: $BROWSERBOT_PROVIDER or {DEFAULTS['provider']})",
    )

    run_parser.add_argument(
        "--model-endpoint",
        type=str,
        default=None,
        help=f"OpenAI-compatible API endpoint (default: {DEFAULTS['model_endpoint']})",
    )

    run_parser.add_argument(
        "--model",
        type=str,
        default=None,
        help=f"Model name, or deployment name for Azure (default: {DEFAULTS['model']})",
    )

    run_parser.add_argument(
        "--user-data-dir",
        type=str,
        default=None,
        help="Chrome profile directory to reuse logins (default: $CHROME_USER_DATA_DIR)",
    )

    run_parser.add_argument(
        "--temperature",
        type=float,
        default=None,
        help=f"Sampling temperature (default: {DEFAULTS['temperature']})",
    )

    run_parser.add_argument(
        "--max-tokens",
        type=int,
        default=None,
        help=f"Output token budget per turn (default: {DEFAULTS['max_tokens']})",
    )

    run_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output result as JSON",
    )

    run_parser.add_argument(
        "-d", "--debug",
        action="store_true",
        default=False,
        help="Enable debug mode: verbose logging",
    )

    return parser


def configure_logging(debug: bool, quiet: bool = False) -> None:
    """Route library logging through rich."""
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    if not debug:
        for noisy in ("httpx", "openai"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


async def wait_for_enter() -> None:
    """Resolve when the user presses Enter.

    Uses a loop reader so the wait can be cancelled; event loops without
    reader support fall back to a blocking read in a worker thread.
    """
    loop = asyncio.get_running_loop()
    pressed = loop.create_future()

    def on_input() -> None:
        sys.stdin.readline()
        if not pressed.done():
            pressed.set_result(None)

    try:
        loop.add_reader(sys.stdin.fileno(), on_input)
    except NotImplementedError:
        await loop.run_in_executor(None, sys.stdin.readline)
        return

    try:
        await pressed
    finally:
        loop.remove_reader(sys.stdin.fileno())


def prompt_for_task(console: Console) -> tuple[Optional[str], int]:
    """Ask for a task and step budget interactively."""
    console.print("\n[bold cyan]Welcome to BrowserBot - Autonomous Browser Agent[/bold cyan]\n")
    task = Prompt.ask("What do you want the browser to do?", console=console).strip()
    if not task:
        return None, 0

    max_steps = IntPrompt.ask(
        "Maximum number of steps?",
        default=INTERACTIVE_DEFAULT_STEPS,
        console=console,
    )
    return task, max(1, min(max_steps, 100))


def run_command(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    console = Console()
    json_mode = args.json
    configure_logging(args.debug, quiet=json_mode)

    task = args.task
    max_steps = args.max_steps
    if not task:
        if json_mode:
            print(json.dumps({"success": False, "error": "No task given"}))
            return 1
        try:
            task, prompted_steps = prompt_for_task(console)
        except (KeyboardInterrupt, EOFError):
            console.print("\n[yellow]Task cancelled by user[/yellow]")
            return 130
        if not task:
            console.print("[yellow]Task cancelled by user[/yellow]")
            return 0
        max_steps = max_steps or prompted_steps

    if max_steps is not None and max_steps <= 0:
        console.print("[bold red]--max-steps must be positive[/bold red]")
        return 1
    if args.max_failures <= 0:
        console.print("[bold red]--max-failures must be positive[/bold red]")
        return 1

    config = AgentConfig.from_cli_args(
        max_steps=max_steps or DEFAULTS["max_steps"],
        max_failures=args.max_failures,
        headless=args.headless,
        model_endpoint=args.model_endpoint,
        model=args.model,
        provider=args.provider,
        user_data_dir=args.user_data_dir,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
        debug=args.debug,
    )

    run_logger = RunLogger(task, enable_console=not json_mode, runs_dir=get_runs_dir())

    try:
        result = run_agent(
            config,
            task,
            run_logger=run_logger,
            skip_signal=None if json_mode else wait_for_enter,
            wait_for_playback_end=None if json_mode else wait_for_enter,
        )
    except ConfigurationError as e:
        if json_mode:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            console.print(f"[bold red]Configuration error: {e}[/bold red]")
        return 1
    except KeyboardInterrupt:
        if not json_mode:
            console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logging.getLogger(__name__).debug("Run crashed", exc_info=True)
        if json_mode:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            console.print(f"[bold red]Fatal error: {e}[/bold red]")
        return 1

    if json_mode:
        print(json.dumps(result.to_dict()))
    else:
        if result.final_response:
            run_logger.print_final_answer(result.final_response, result.success)
        run_logger.print_summary(result)

    return 0 if result.success else 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return run_command(args)

    # Unknown command
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
