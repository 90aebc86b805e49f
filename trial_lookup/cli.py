"""Command Line Interface for the trial lookup.

This module provides a CLI using Typer for running a single trial search
against a patient bundle file, and for starting the HTTP service.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from trial_lookup.domain.ports import APIError, CodeTableError, ConfigurationError
from trial_lookup.domain.research_study import SearchSet
from trial_lookup.infrastructure.config_manager import ConfigManager
from trial_lookup.infrastructure.logging_config import setup_logging
from trial_lookup.infrastructure.settings import settings
from trial_lookup.lookup import build_lookup

app = typer.Typer(
    name="trial-lookup",
    help="Match patient FHIR bundles to breast-cancer clinical trials",
    add_completion=False
)
console = Console()


def _parse_options(values: List[str]) -> dict:
    options = {}
    for value in values:
        name, sep, option_value = value.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Options must look like key=value, got: {value}")
        options[name.strip()] = option_value.strip()
    return options


def _print_results(result: SearchSet) -> None:
    table = Table(title=f"Matching trials ({result.total})")
    table.add_column("Trial", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Phase")
    table.add_column("Sponsor")
    for entry in result.entry:
        study = entry.resource
        table.add_row(
            study.id,
            study.title,
            study.status,
            study.phase.text if study.phase else "",
            study.sponsor.display or "",
        )
    console.print(table)


@app.command()
def query(
    bundle_file: Path = typer.Argument(..., help="Patient FHIR Bundle (JSON)", exists=True, dir_okay=False),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Trial-search endpoint (overrides TL_API_ENDPOINT)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file", exists=True),
    option: List[str] = typer.Option([], "--option", "-o", help="Search option as key=value (repeatable)"),
    no_registry: bool = typer.Option(False, "--no-registry", help="Skip ClinicalTrials.gov enrichment"),
    as_json: bool = typer.Option(False, "--json", help="Print the searchset as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Search for trials matching a patient bundle.

    Examples:
        trial-lookup query patient.json --endpoint https://example.org/api
        trial-lookup query patient.json -o zipCode=01780 -o travelRadius=25 --json
    """
    setup_logging(log_level="DEBUG" if verbose else settings.log_level)

    try:
        bundle = json.loads(bundle_file.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] {bundle_file} is not valid JSON: {str(e)}")
        raise typer.Exit(code=1)

    try:
        manager = ConfigManager.from_file(str(config_file)) if config_file else ConfigManager.from_environment()
    except ValueError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)
    config = dict(manager.get("lookup", {}))
    if endpoint:
        config["api_endpoint"] = endpoint
    if no_registry:
        config["registry_enabled"] = False

    try:
        matcher = build_lookup(config)
        result = asyncio.run(matcher(bundle, _parse_options(option)))
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {str(e)}")
        raise typer.Exit(code=1)
    except APIError as e:
        console.print(f"[red]✗[/red] Trial search failed ({e.error_type}): {str(e)}")
        raise typer.Exit(code=1)
    except CodeTableError as e:
        console.print(f"[red]✗[/red] Could not load code tables: {str(e)}")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(json.dumps(result.to_fhir()))
    else:
        _print_results(result)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
) -> None:
    """Run the trial lookup HTTP service."""
    import uvicorn

    logging.getLogger(__name__).info(f"Starting service on {host}:{port}")
    uvicorn.run("trial_lookup.api.main:app", host=host, port=port, log_level="info")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
