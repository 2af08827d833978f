#!/usr/bin/env python3
"""Chat participant CLI - run one turn against a project from the terminal.

Usage:
    # Ask with an explicit intent
    python main.py "Create IaC for an AWS Fargate service" --intent infrastructure --root ./my-app

    # Slash commands work as in the editor chat
    python main.py "/api Add a REST endpoint for invoices" --root ./my-app

    # Print the composed prompt without calling a model
    python main.py "/component Build a date picker" --root ./my-app --show-prompt
"""

import asyncio
import logging
import sys
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.markup import escape
    from rich.panel import Panel
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from contracts import ChatRequest, Intent, TurnResult, TurnState
from composer import PromptComposer
from errors import ParticipantError
from orchestrator import ConversationController
from providers import get_provider, list_providers as get_available_providers
from router import MissingInfoAnalyzer, resolve_intent
from workspace import ProjectContextReader
from config import settings


console = Console()


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def render_result(result: TurnResult) -> None:
    if result.needs_clarification:
        lines = [
            f"[bold]{i}. {escape(item.question)}[/bold]\n   [dim]{escape(item.rationale)}[/dim]"
            for i, item in enumerate(result.questions, start=1)
        ]
        console.print(Panel("\n".join(lines), title="Before I start", border_style="yellow"))
        return

    console.print()
    if result.findings:
        console.print("\n[bold yellow]Possible constraint violations:[/bold yellow]")
        for finding in result.findings:
            console.print(f"  [yellow]-[/yellow] {escape(finding.constraint)}: {escape(finding.violation)}")
    if result.unchecked_constraints:
        console.print(
            f"\n[dim]{len(result.unchecked_constraints)} constraint(s) could not be checked automatically.[/dim]"
        )


def print_prompt(request: ChatRequest, root: str) -> int:
    """Compose and print the prompt, or the clarifying questions, without a model call."""
    request = resolve_intent(request)
    context = ProjectContextReader().read(root)
    questions = MissingInfoAnalyzer().analyze(request, context)
    if questions:
        render_result(TurnResult(state=TurnState.AWAITING_CLARIFICATION, questions=questions))
        return 2
    prompt = PromptComposer().compose(request, request.intent, context)
    console.print(prompt.text, markup=False, highlight=False)
    return 0


@click.command()
@click.argument("text", required=False)
@click.option(
    "--root", "-r",
    default=".",
    show_default=True,
    help="Project root to read context from"
)
@click.option(
    "--intent", "-t",
    type=click.Choice([i.value for i in Intent]),
    default=None,
    help="Intent tag (default: from a leading slash command, if any)"
)
@click.option(
    "--provider", "-p",
    type=click.Choice(["anthropic", "openai", "gemini", "deepseek"]),
    default=None,
    help="LLM provider (default: settings.default_model)"
)
@click.option(
    "--model",
    default=None,
    help="Model name (e.g., gpt-4o, claude-sonnet-4-20250514)"
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help=f"Stall timeout in seconds (default: {settings.upstream_stall_timeout_seconds:g})"
)
@click.option(
    "--show-prompt",
    is_flag=True,
    help="Print the composed prompt and exit without calling a model"
)
@click.option(
    "--list-providers",
    is_flag=True,
    help="List providers with a configured API key and exit"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Debug logging"
)
def main(
    text: Optional[str],
    root: str,
    intent: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    timeout: Optional[float],
    show_prompt: bool,
    list_providers: bool,
    verbose: bool,
):
    """Run one chat participant turn for TEXT against the project at --root."""
    configure_logging(verbose)

    if list_providers:
        console.print("[bold]Available LLM Providers:[/bold]\n")
        for name, available in get_available_providers().items():
            status = "[green]configured[/green]" if available else "[dim]no API key[/dim]"
            console.print(f"  {name:12} {status}")
        console.print("\n[dim]Set API keys via environment variables:[/dim]")
        console.print("  ANTHROPIC_API_KEY, OPENAI_API_KEY, GEMINI_API_KEY, DEEPSEEK_API_KEY")
        return

    if not text:
        console.print("[red]Error: request TEXT is required[/red]")
        sys.exit(1)

    request = ChatRequest(text=text, intent=intent)

    try:
        if show_prompt:
            sys.exit(print_prompt(request, root))

        client = get_provider(provider_name=provider, model=model)
        controller = ConversationController(client, stall_timeout=timeout)

        def on_fragment(fragment: str) -> None:
            console.print(fragment, end="", markup=False, highlight=False)

        result = asyncio.run(controller.run(request, root, on_fragment=on_fragment))
    except ParticipantError as e:
        console.print(f"\n[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]cancelled[/dim]")
        sys.exit(130)

    render_result(result)
    if result.needs_clarification:
        sys.exit(2)


if __name__ == "__main__":
    main()
