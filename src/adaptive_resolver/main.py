"""
Adaptive Resolver - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--visible, --no-heal, etc.)
    2. Config file (resolver.yaml)
    3. Environment variables (ADAPTIVE_RESOLVER__RESOLUTION__AI_ENABLED, etc.)

Usage:
    adaptive-resolver resolve https://example.com "Submit button"
    adaptive-resolver locate https://example.com --css "#submit-btn" --alt "text:Submit"
    adaptive-resolver features https://example.com "#login"
"""

import asyncio
import json
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adaptive_resolver import __version__
from adaptive_resolver.ai.suggester import LLMLocatorSuggester
from adaptive_resolver.browsers.playwright_browser import PlaywrightBrowser
from adaptive_resolver.config import get_settings, load_config
from adaptive_resolver.config.settings import Settings
from adaptive_resolver.engine.session import ResolutionSession, create_session
from adaptive_resolver.exceptions import ElementNotFoundError, ResolverError
from adaptive_resolver.locators.descriptor import ElementDescriptor, ResolvedHandle
from adaptive_resolver.reporting.events import ResolutionEventLog
from adaptive_resolver.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="adaptive-resolver",
    help="Self-healing element resolution for browser automation",
    add_completion=False,
)

console = Console()


def _load_settings(config: Optional[str], verbose: bool) -> Settings:
    settings = load_config(config_path=config) if config else get_settings()
    level = "DEBUG" if verbose else settings.logging.level
    setup_logging(level, settings.logging.file, settings.logging.json_format)
    return settings


def _print_handle(handle: ResolvedHandle) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Selector", handle.selector)
    table.add_row("Source", handle.source)
    if handle.healing_result:
        result = handle.healing_result
        table.add_row("Healed from", result.original_locator)
        table.add_row("Strategy", result.strategy or "-")
        table.add_row("Confidence", str(result.confidence) if result.confidence is not None else "-")
        table.add_row("Duration", f"{result.duration_ms:.0f}ms")
    console.print(table)


async def _with_session(url: str, settings: Settings, headless: bool, work):
    """Open a document, build a session, run ``work(session, document)`` and clean up."""
    browser = PlaywrightBrowser()
    suggester = LLMLocatorSuggester.from_settings(settings.ai)
    events = ResolutionEventLog()
    try:
        await browser.launch(
            headless=headless,
            browser_type=settings.browser.browser_type,
            viewport={
                "width": settings.browser.viewport_width,
                "height": settings.browser.viewport_height,
            },
        )
        document = await browser.open(url, timeout_ms=settings.browser.timeout_ms)
        session = create_session(settings, suggester=suggester, events=events)
        return await work(session, document)
    finally:
        await browser.close()
        if suggester:
            await suggester.close()


@app.command()
def resolve(
    url: str = typer.Argument(..., help="Page to open"),
    description: str = typer.Argument(..., help='Natural-language description, e.g. "Submit button"'),
    ai: Optional[bool] = typer.Option(None, "--ai/--no-ai", help="Force the visual-description stage on or off"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Resolve an element from a natural-language description.

    Examples:
        adaptive-resolver resolve https://example.com "Submit button"
        adaptive-resolver resolve https://example.com "big blue button near 'Email'" --ai
    """
    settings = _load_settings(config, verbose)
    console.print(Panel.fit(
        f"[bold blue]Adaptive Resolver[/bold blue]\n"
        f"[dim]URL:[/dim] {url}\n"
        f"[dim]Description:[/dim] {description}",
        border_style="blue",
    ))

    async def work(session: ResolutionSession, document):
        return await session.resolve_by_description(document, description, ai_enabled=ai)

    _run(url, settings, not visible, work)


@app.command()
def locate(
    url: str = typer.Argument(..., help="Page to open"),
    css: Optional[str] = typer.Option(None, "--css", help="CSS selector"),
    xpath: Optional[str] = typer.Option(None, "--xpath", help="XPath expression"),
    text: Optional[str] = typer.Option(None, "--text", help="Visible text"),
    test_id: Optional[str] = typer.Option(None, "--test-id", help="Test id attribute"),
    alt: Optional[List[str]] = typer.Option(None, "--alt", help="Alternative locator (kind:value), repeatable"),
    heal: bool = typer.Option(True, "--heal/--no-heal", help="Allow self-healing"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Resolve an element descriptor, healing it if its locators fail.

    Examples:
        adaptive-resolver locate https://example.com --css "#submit-btn"
        adaptive-resolver locate https://example.com --css "#old" --alt "text:Submit" --alt "role:button"
    """
    settings = _load_settings(config, verbose)
    descriptor = ElementDescriptor(
        css=css,
        xpath=xpath,
        text=text,
        test_id=test_id,
        description="CLI element",
        self_heal=heal,
        alternative_locators=alt or [],
    )
    console.print(Panel.fit(
        f"[bold blue]Adaptive Resolver[/bold blue]\n"
        f"[dim]URL:[/dim] {url}\n"
        f"[dim]Strategies:[/dim] {', '.join(str(s) for s in descriptor.strategies())}",
        border_style="blue",
    ))

    async def work(session: ResolutionSession, document):
        return await session.resolve(document, descriptor)

    _run(url, settings, not visible, work)


def _run(url: str, settings: Settings, headless: bool, work) -> None:
    try:
        handle = asyncio.run(_with_session(url, settings, headless, work))
    except ElementNotFoundError as e:
        console.print(f"\n[red]✗ {e.message}[/red]")
        if e.attempted:
            console.print(f"  Attempted: {', '.join(e.attempted)}")
        raise typer.Exit(1)
    except ResolverError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print("\n[green]✓ Resolved[/green]")
    _print_handle(handle)


@app.command()
def features(
    url: str = typer.Argument(..., help="Page to open"),
    selector: str = typer.Argument(..., help="CSS selector of the element"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """Print the feature vector extracted from an element."""
    settings = _load_settings(config, verbose)

    async def work(session: ResolutionSession, document):
        return await session.extractor.extract(document.query(selector))

    try:
        vector = asyncio.run(_with_session(url, settings, not visible, work))
    except ResolverError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print_json(json.dumps(vector.model_dump()))


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Adaptive Resolver[/bold] v{__version__}")


if __name__ == "__main__":
    app()
