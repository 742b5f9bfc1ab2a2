"""
PunchReport CLI

Command-line interface for PunchReport daily work reports.
"""

import json
import logging
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt

from .. import __version__
from ..core.candidates import DEFAULT_BASE_URL
from ..core.config import (
    ReportConfig, load_settings, save_settings, load_credentials, CONFIG_FILE,
)
from ..core.errors import DiscoveryError, InputError

console = Console()

AUTH_MODES = ["auto", "basic", "bearer", "api_key", "key_secret"]


def setup_logging(verbose: bool = False):
    """Send log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="PunchReport")
@click.option('-v', '--verbose', is_flag=True, help='Log every request attempt')
def cli(verbose):
    """
    PunchReport - Daily work reports from any time-tracking API

    Quick start:
      punchreport setup     # Save your API defaults
      punchreport report    # Print today's report
      punchreport serve     # Start the web form
    """
    setup_logging(verbose)


@cli.command()
def setup():
    """
    Interactive setup wizard.

    Saves the API address, authentication mode, timeouts and shift length.
    The API key secret is never saved; use PUNCHREPORT_API_KEY_SECRET.
    """
    console.print(Panel.fit(
        "[bold blue]PunchReport Setup Wizard[/bold blue]\n"
        "Let's configure access to your time-tracking API.",
        border_style="blue"
    ))

    settings = load_settings()

    # Step 1: API address
    console.print("\n[bold]Step 1: API Address[/bold]")
    settings.api.base_url = Prompt.ask(
        "Base URL",
        default=settings.api.base_url or DEFAULT_BASE_URL
    )

    # Step 2: Credentials
    console.print("\n[bold]Step 2: API Key[/bold]")
    settings.credentials.api_key_id = Prompt.ask(
        "API Key ID",
        default=settings.credentials.api_key_id
    )
    settings.api.auth_mode = Prompt.ask(
        "Authentication mode",
        choices=AUTH_MODES,
        default=settings.api.auth_mode or "auto"
    )

    # Step 3: Network
    console.print("\n[bold]Step 3: Network[/bold]")
    settings.api.timeout_ms = int(Prompt.ask(
        "Timeout per request (ms)",
        default=str(settings.api.timeout_ms)
    ))
    settings.api.retries = int(Prompt.ask(
        "Retries on server errors",
        default=str(settings.api.retries)
    ))

    # Step 4: Shift
    console.print("\n[bold]Step 4: Shift[/bold]")
    settings.shift_hours = float(Prompt.ask(
        "Shift length (hours)",
        default=str(settings.shift_hours)
    ))

    save_settings(settings)
    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")

    console.print(Panel(
        f"[bold]Setup Complete![/bold]\n\n"
        f"API: {settings.api.base_url}\n"
        f"Auth mode: {settings.api.auth_mode}\n"
        f"Shift: {settings.shift_hours}h\n\n"
        f"Next steps:\n"
        f"  [cyan]export PUNCHREPORT_API_KEY_SECRET=...[/cyan]\n"
        f"  [cyan]punchreport report[/cyan] - Print today's report\n"
        f"  [cyan]punchreport serve[/cyan]  - Start the web form",
        border_style="green"
    ))


def print_report(result: dict):
    """Render a report payload as rich tables."""
    console.print(Panel(
        f"[bold]Daily Work Report[/bold] ({result['date']})\n"
        f"API: {result['baseUrl']}{result['peopleEndpoint']} "
        f"[dim]via {result['authStrategy']}[/dim]",
        border_style="blue"
    ))

    if not result['reports']:
        console.print("[yellow]No people found.[/yellow]")
        return

    for person in result['reports']:
        table = Table(title=f"\n{person['name']}", show_header=True)
        table.add_column("Property", style="cyan")
        table.add_column("Time In")
        table.add_column("Time Out")
        table.add_column("Total", justify="right")

        if not person['groupedEntries']:
            table.add_row("[dim]No records for this day[/dim]", "", "", "")
        for entry in person['groupedEntries']:
            table.add_row(
                entry['property'],
                entry['timeInFormatted'],
                entry['timeOutFormatted'],
                entry['totalFormatted'],
            )

        console.print(table)
        balance_style = 'green' if person['balanceMinutes'] == 0 else 'yellow'
        console.print(
            f"  Worked: [bold]{person['totalFormatted']}[/bold]  "
            f"Balance: [{balance_style}]{person['balanceFormatted']}[/]"
        )


@cli.command()
@click.option('--date', 'report_date', default=None, help='Day to report on (YYYY-MM-DD, default today)')
@click.option('--base-url', default=None, help='API base URL')
@click.option('--auth-mode', type=click.Choice(AUTH_MODES), default=None, help='Authentication strategy')
@click.option('--shift-hours', type=float, default=None, help='Shift length in hours')
@click.option('--timeout-ms', type=click.IntRange(min=1), default=None, help='Timeout per request')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON payload')
def report(report_date, base_url, auth_mode, shift_hours, timeout_ms, as_json):
    """Fetch people and time entries and print the daily report."""
    from ..core.report import failure_message, generate_report

    settings = load_settings()
    env_credentials = load_credentials()

    key_id = env_credentials.api_key_id or settings.credentials.api_key_id
    if not key_id:
        key_id = Prompt.ask("API Key ID")
    secret = env_credentials.api_key_secret
    if not secret:
        secret = Prompt.ask("API Key Secret", password=True)

    config = ReportConfig(
        api_key_id=key_id,
        api_key_secret=secret,
        date=report_date or date.today().isoformat(),
        base_url=base_url if base_url is not None else settings.api.base_url,
        shift_hours=shift_hours if shift_hours is not None else settings.shift_hours,
        auth_mode=auth_mode or settings.api.auth_mode,
        timeout_ms=timeout_ms or settings.api.timeout_ms,
        retries=settings.api.retries,
        backoff_ms=settings.api.backoff_ms,
    )

    try:
        with console.status("[bold green]Discovering API and fetching entries..."):
            result = generate_report(config)
    except InputError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(2)
    except DiscoveryError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(f"[dim]Details: {e.details}[/dim]")
        console.print("[dim]Tried:[/dim]")
        for url in e.tried_base_urls:
            console.print(f"  [dim]{url}[/dim]")
        raise SystemExit(1)
    except Exception as e:
        console.print(f"[red]{failure_message(e)}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result, indent=2))
    else:
        print_report(result)


@cli.command()
@click.option('--port', default=5000, help='Port to run server on')
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--debug', is_flag=True, help='Enable the Flask debugger')
def serve(port, host, debug):
    """Start the web report server."""
    settings = load_settings()

    console.print(Panel(
        f"[bold blue]PunchReport Web Server[/bold blue]\n\n"
        f"Starting server at http://{host}:{port}",
        border_style="blue"
    ))

    from ..web.server import run_server
    run_server(settings, host=host, port=port, debug=debug)


@cli.command()
@click.option('--raw', is_flag=True, help='Also print the saved settings as JSON')
def config(raw):
    """Show current configuration."""
    settings = load_settings()
    env_credentials = load_credentials()

    console.print(Panel(
        f"[bold]PunchReport Configuration[/bold]\n"
        f"Config file: {CONFIG_FILE}",
        border_style="blue"
    ))

    console.print(f"\n[bold]Base URL:[/bold] {settings.api.base_url or DEFAULT_BASE_URL}")
    console.print(f"[bold]Auth mode:[/bold] {settings.api.auth_mode}")
    console.print(f"[bold]Timeout:[/bold] {settings.api.timeout_ms} ms")
    console.print(f"[bold]Retries:[/bold] {settings.api.retries}")
    console.print(f"[bold]Shift:[/bold] {settings.shift_hours}h")
    console.print(
        f"[bold]API Key ID:[/bold] "
        f"{env_credentials.api_key_id or settings.credentials.api_key_id or '[dim]not set[/dim]'}"
    )
    secret_state = "set in environment" if env_credentials.api_key_secret else "not set"
    console.print(f"[bold]API Key Secret:[/bold] {secret_state}")

    if raw:
        console.print(json.dumps(settings.to_dict(), indent=2))


if __name__ == '__main__':
    cli()
