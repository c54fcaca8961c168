"""
Command-line interface for the WOL scraper.

Global options (config file, log level, log file) are given before the
command name and shared through the Typer context:

    $ wol-scraper --log-level DEBUG bible-refs -l https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70
    $ wol-scraper article saved/article.html -o article.json
    $ wol-scraper bible-refs -o reading.json   # this week's Bible reading

A .env file in the working directory can set WOL_BASE_URL and WOL_LOG_LEVEL;
--log-level still takes precedence over WOL_LOG_LEVEL.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import AppConfig, load_config
from .core.errors import ScraperError
from .runner import InvalidLinksError, run_article, run_bible_references

app = typer.Typer(add_completion=False, help="Scrape Watchtower Online Library pages into JSON.")
console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Write a log file next to the output."
    ),
):
    load_dotenv()
    try:
        cfg = load_config(str(config) if config else None)
    except ValueError as exc:
        console.print(f"[red]Invalid config: {exc}[/red]")
        raise typer.Exit(code=2) from exc
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file
    ctx.obj = cfg


@app.command("bible-refs")
def bible_refs(
    ctx: typer.Context,
    links: list[str] | None = typer.Option(
        None, "--link", "-l", help="Bible chapter URL (repeatable). Defaults to this week's Bible reading."
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout."),
    max_concurrency: int | None = typer.Option(
        None, "--max-concurrency", min=1, help="Limit in-flight reference fetches."
    ),
):
    """Extract the cross-reference index of Bible chapters.

    Each reference is fetched once per chapter; references that occur in
    several verse sections are written once under sharedMnemonicReferences.
    """
    cfg: AppConfig = ctx.obj
    if max_concurrency is not None:
        cfg.references.max_concurrency = max_concurrency

    try:
        run_bible_references(links, cfg, output_path=output, console=console)
    except InvalidLinksError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
    except ScraperError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def article(
    ctx: typer.Context,
    source: str | None = typer.Argument(
        None, help="Path to a saved article page, or its URL. Defaults to this week's study article."
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout."),
):
    """Extract a Watchtower study article with its scripture references."""
    try:
        run_article(source, ctx.obj, output_path=output, console=console)
    except ScraperError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
