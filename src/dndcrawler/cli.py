"""Command-line interface for dndcrawler."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import structlog
from rich.console import Console

from dndcrawler import __version__
from dndcrawler.browser.http_session import HtmlDocument
from dndcrawler.config.config import Config, load_config
from dndcrawler.exceptions import ConfigError, PipelineError
from dndcrawler.extractor.fields import extract_fields
from dndcrawler.observability.logging import configure_logging
from dndcrawler.pipeline import Pipeline
from dndcrawler.protocols import DetailRecord, ItemReference
from dndcrawler.utils.atomic import dumps_json

# stdout carries the JSON result; everything for humans goes to stderr.
console = Console(stderr=True)
logger = structlog.get_logger(__name__)

EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _apply_overrides(config: Config, section: str, overrides: Dict[str, Any]) -> Config:
    """Return a copy of ``config`` with non-None CLI values applied to one section."""
    values = {key: value for key, value in overrides.items() if value is not None}
    if not values:
        return config
    current = getattr(config, section)
    try:
        updated = current.model_validate({**current.model_dump(), **values})
    except ValueError as e:
        raise ConfigError(f"Invalid {section} option: {e}") from e
    return config.model_copy(update={section: updated})


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """dndcrawler - crawl the spell catalog into a single JSON array."""
    ctx.ensure_object(dict)
    try:
        loaded = load_config(Path(config) if config else None)
        loaded = _apply_overrides(loaded, "monitoring", {"log_level": log_level})
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        ctx.exit(EXIT_CONFIG_ERROR)
    configure_logging(loaded.monitoring)
    ctx.obj["config"] = loaded


@cli.command()
@click.option("--base-url", help="Catalog base URL")
@click.option("--rulebook", "rulebooks", multiple=True, help="Rulebook to include (can be used multiple times)")
@click.option("--concurrency", type=click.IntRange(min=1), help="Maximum detail pages in flight")
@click.option("--retry-limit", type=click.IntRange(min=1), help="Attempts per item before the run fails")
@click.option("--engine", type=click.Choice(["browser", "http"]), help="Rendering engine")
@click.option("--headful", is_flag=True, default=False, help="Show the browser window")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write JSON here instead of stdout")
@click.pass_context
def crawl(
    ctx: click.Context,
    base_url: Optional[str],
    rulebooks: Tuple[str, ...],
    concurrency: Optional[int],
    retry_limit: Optional[int],
    engine: Optional[str],
    headful: bool,
    output: Optional[Path],
) -> None:
    """Crawl the catalog and print every matching item as JSON."""
    config: Config = ctx.obj["config"]
    try:
        config = _apply_overrides(
            config, "catalog", {"base_url": base_url, "rulebooks": list(rulebooks) if rulebooks else None}
        )
        config = _apply_overrides(
            config,
            "crawler",
            {
                "concurrency": concurrency,
                "retry_limit": retry_limit,
                "engine": engine,
                "headless": False if headful else None,
            },
        )
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        ctx.exit(EXIT_CONFIG_ERROR)

    pipeline = Pipeline(config)
    try:
        result = asyncio.run(pipeline.run(output=output))
    except PipelineError as e:
        console.print(f"[red]Crawl failed:[/red] {e}")
        ctx.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted, no output written[/yellow]")
        ctx.exit(EXIT_FAILURE)

    if result is None:
        console.print("[yellow]No items found[/yellow]")
    else:
        console.print(f"[green]Crawled {len(result)} items[/green]")


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--reference", required=True, help="Item locator the page was saved from, e.g. /spells/.../acid-arrow--1922/")
@click.pass_context
def parse(ctx: click.Context, html_file: Path, reference: str) -> None:
    """Run the field extractors on a saved detail page."""
    config: Config = ctx.obj["config"]
    try:
        item = ItemReference(reference)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--reference") from e

    async def extract() -> DetailRecord:
        document = HtmlDocument()
        document.load(html_file.read_bytes(), item.absolute_url(config.catalog.base_url), "utf-8")
        fields = await extract_fields(document, logger.bind(file=str(html_file)))
        return DetailRecord.from_fields(item, fields)

    try:
        record = asyncio.run(extract())
    except Exception as e:
        console.print(f"[red]Could not parse {html_file}:[/red] {e}")
        ctx.exit(EXIT_FAILURE)

    sys.stdout.write(dumps_json(record.to_dict()) + "\n")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
