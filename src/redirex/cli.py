"""Redirex CLI - Command line interface."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import NoReturn

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redirex.core.exceptions import RedirexError, format_error_for_user

console = Console()

BANNER = """
┬─┐┌─┐┌┬┐┬┬─┐┌─┐─┐ ┬
├┬┘├┤  │││├┬┘├┤ ┌┼┘
┴└─└─┘─┴┘┴┴└─└─┘┴ └─
 rewrite & redirect engine
"""


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
    )


def _fail(error: BaseException) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(format_error_for_user(error))}")
    sys.exit(1)


@click.group()
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    envvar="REDIREX_LOG_LEVEL",
    help="Log level (default: info)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (same as --log-level debug)")
def main(log_level: str, verbose: bool):
    """Redirex - rule based request rewriting and canonical subdomain redirects."""
    _configure_logging("debug" if verbose else log_level)


@main.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def check(config_file: str, json_output: bool):
    """Compile a rewrite options file and list its rules.

    Exits with status 1 if the file cannot be loaded or any rule is invalid.

    Examples:

        redirex check redirects.yml
    """
    from redirex.rewrite.engine import load_engine

    try:
        engine = load_engine(config_file)
    except (FileNotFoundError, RedirexError) as e:
        _fail(e)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "primary_subdomain": engine.primary_subdomain,
                    "rules": [rule.to_dict() for rule in engine.rules],
                },
                indent=2,
            )
        )
        return

    table = Table(title=f"{len(engine.rules)} rule(s)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Code", justify="right")
    table.add_column("Pattern", style="cyan")
    table.add_column("Target", style="green")
    table.add_column("Scope")
    table.add_column("Mode")
    for index, rule in enumerate(engine.rules, start=1):
        table.add_row(
            str(index),
            str(rule.status_code),
            escape(rule.pattern.pattern),
            escape(rule.target),
            rule.scope.value,
            rule.mode.value,
        )
    console.print(table)

    for index, rule in enumerate(engine.rules, start=1):
        if not rule.has_redirect_status:
            console.print(
                f"[yellow]Warning:[/yellow] rule {index} redirects with status "
                f"{rule.status_code}, expected 3xx"
            )

    primary = engine.primary_subdomain or "[dim]disabled[/dim]"
    console.print(f"[bold]Primary subdomain:[/bold] {primary}")
    console.print("[green]OK - Rules compiled[/green]")


@main.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("url")
@click.option("--method", "-m", default="GET", help="Request method (default: GET)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def resolve(config_file: str, url: str, method: str, json_output: bool):
    """Show what the engine would do with a request for URL.

    Examples:

        redirex resolve redirects.yml http://mydomain.com:8080/seo/about
    """
    from redirex.core.request import RequestView
    from redirex.rewrite.engine import load_engine

    try:
        engine = load_engine(config_file)
    except (FileNotFoundError, RedirexError) as e:
        _fail(e)

    view = RequestView.from_url(url, method=method)
    result = engine.process(view)

    if json_output:
        data = result.to_dict()
        data["final_url"] = view.absolute_url()
        click.echo(json.dumps(data, indent=2))
        return

    console.print(f"[bold]Request:[/bold] {escape(method.upper())} {escape(url)}")
    console.print(f"[bold]Action:[/bold] [cyan]{result.action.value}[/cyan]")
    if result.status is not None:
        console.print(f"[bold]Status:[/bold] {result.status}")
    if result.location:
        console.print(f"[bold]Location:[/bold] {escape(result.location)}")
    if result.target:
        console.print(f"[bold]Rewritten to:[/bold] {escape(result.target)}")
    if result.error:
        console.print(f"[bold]Error:[/bold] [red]{escape(result.error)}[/red]")
    if result.rule:
        console.print(f"[bold]Rule:[/bold] {escape(result.rule.line)}")
    if result.host_changed:
        console.print(f"[bold]Host:[/bold] {escape(view.effective_host())}")


@main.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML, JSON or TOML rewrite options",
)
@click.option("--bind", "-b", default=None, help="Listen address (default: 0.0.0.0:8080)")
@click.option("--primary-subdomain", "-s", default=None, help="Redirect root domain requests to this subdomain")
@click.option("--debug", is_flag=True, help="Log every rewrite decision")
def serve(config_file: str | None, bind: str | None, primary_subdomain: str | None, debug: bool):
    """Run the rewrite engine in front of an echo application.

    Examples:

        redirex serve -c redirects.yml

        redirex serve -c redirects.yml --bind 127.0.0.1:9000 --primary-subdomain www
    """
    from redirex.core.config import ServerSettings
    from redirex.rewrite.engine import RewriteEngine
    from redirex.server.app import run_server

    overrides: dict[str, object] = {}
    if config_file:
        overrides["config_file"] = config_file
    if bind:
        overrides["bind"] = bind
    if primary_subdomain is not None:
        overrides["primary_subdomain"] = primary_subdomain
    if debug:
        overrides["debug"] = True

    try:
        settings = ServerSettings(**overrides)
        engine = RewriteEngine.from_options(settings.to_options())
        settings.parse_bind()
    except (FileNotFoundError, RedirexError) as e:
        _fail(e)

    console.print(BANNER, style="cyan")
    console.print(f"Listening on {settings.bind}...", style="yellow")
    console.print(f"Rules: {len(engine.rules)}", style="dim")
    if engine.primary_subdomain:
        console.print(f"Primary subdomain: {engine.primary_subdomain}", style="dim")

    try:
        asyncio.run(run_server(engine, settings))
    except KeyboardInterrupt:
        console.print("\nShutting down...", style="yellow")


@main.command()
def version():
    """Show version information."""
    from redirex import __version__

    console.print(BANNER, style="cyan")
    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


if __name__ == "__main__":
    main()
