"""Gleaner CLI: run declarative scrapers from a YAML configuration.

Usage:
    gleaner list config.yml                 # List configured scrapers
    gleaner run config.yml                  # Run all scrapers
    gleaner run config.yml -s my-scraper    # Run a single scraper
    gleaner run config.yml --stdout         # Print items instead of posting
"""

from __future__ import annotations

import logging

import click

from gleaner.common.exceptions import ConfigurationError, WriterError
from gleaner.config import load_config
from gleaner.data_types import Config
from gleaner.output.stdout_writer import StdoutWriter
from gleaner.output.writer import Writer, make_writer
from gleaner.runner import run_scrapers, select_scrapers


def _load(config_path: str) -> Config:
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(package_name="gleaner")
def cli() -> None:
    """Gleaner: declarative web scraping CLI."""


@cli.command("list")
@click.argument("config_path", metavar="CONFIG", type=click.Path(exists=True))
def list_scrapers(config_path: str) -> None:
    """List the scrapers defined in CONFIG."""
    config = _load(config_path)
    if not config.scrapers:
        click.echo("No scrapers found.")
        return
    for scraper in config.scrapers:
        render = " [renderJs]" if scraper.render_js else ""
        click.echo(f"{scraper.name}: {scraper.url}{render}")


@cli.command()
@click.argument("config_path", metavar="CONFIG", type=click.Path(exists=True))
@click.option(
    "-s",
    "--scraper",
    "scraper_name",
    default=None,
    help="Only run the scraper with this name.",
)
@click.option(
    "--stdout",
    "to_stdout",
    is_flag=True,
    help="Print items to stdout regardless of the configured writer.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def run(
    config_path: str,
    scraper_name: str | None,
    to_stdout: bool,
    verbose: bool,
) -> None:
    """Run the scrapers defined in CONFIG.

    \b
    Examples:
        gleaner run config.yml
        gleaner run config.yml -s concerts --stdout
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = _load(config_path)
    scrapers = select_scrapers(config, scraper_name)
    if not scrapers:
        raise click.ClickException(
            f"No scraper named '{scraper_name}' in {config_path}"
        )

    writer: Writer = StdoutWriter() if to_stdout else make_writer(config.writer)

    try:
        results = run_scrapers(config, writer, scrapers)
    except WriterError as e:
        raise click.ClickException(str(e)) from e

    failed = [
        name
        for name, result in results.items()
        if isinstance(result, Exception) or result.error is not None
    ]
    for name in failed:
        click.echo(f"{name}: stopped early", err=True)
    click.echo("Done.", err=True)
