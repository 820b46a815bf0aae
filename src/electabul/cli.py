"""electabul command-line interface."""

from __future__ import annotations

import json
import logging
import traceback
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

import click
import yaml

from electabul import __version__
from electabul.config import SUPPORTED_FORMATS, load_config, validate_config
from electabul.coverage.collector import CoverageCollector
from electabul.instrument import NodeInstrumenter, create_instrumented_asar
from electabul.reporters.terminal import reporter

logger = logging.getLogger(__name__)

_PROJECT_OPTION_HELP = "Project root containing .electabul.yml."


def _config_to_dict(config: Any) -> dict[str, Any]:
    """Convert ElectabulConfig to dictionary for display."""
    result = asdict(config)
    result.pop("raw", None)
    return result


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="electabul")
def cli(*, verbose: bool) -> None:
    """Coverage for instrumented Electron apps."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option(
    "--input-path",
    required=True,
    type=click.Path(file_okay=False),
    help="Path to source directory to instrument.",
)
@click.option(
    "--output-path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to .asar file to create.",
)
@click.option(
    "--path",
    "project_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help=_PROJECT_OPTION_HELP,
)
def instrument(input_path: str, output_path: str, project_path: str) -> None:
    """Instrument a source directory into an .asar archive."""
    try:
        config = load_config(project_path)
        archive_path, file_count = create_instrumented_asar(
            input_path, output_path, config=config.instrument
        )
    except Exception as e:
        reporter.print_error(f"Instrumentation failed: {e}")
        traceback.print_exc()
        raise click.Abort from e

    click.echo(f"Created {archive_path} with {file_count} instrumented files")


@cli.command()
@click.option(
    "--output-path",
    type=click.Path(file_okay=False),
    default=None,
    help="Report directory holding the data/ snapshots (default from config).",
)
@click.option(
    "--lib-path",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Source root for zero-coverage baselines (default from config).",
)
@click.option(
    "--format",
    "formats",
    multiple=True,
    type=click.Choice(sorted(SUPPORTED_FORMATS)),
    help="Report format; repeat for several (default from config).",
)
@click.option(
    "--path",
    "project_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help=_PROJECT_OPTION_HELP,
)
def report(
    output_path: str | None, lib_path: str | None, formats: tuple[str, ...], project_path: str
) -> None:
    """Merge saved per-process snapshots into coverage reports.

    Use this when the app exited before writing its own report.
    """
    config = load_config(project_path)
    options = config.coverage
    if output_path is not None:
        options = replace(options, output_path=str(Path(output_path).resolve()))
    if lib_path is not None:
        options = replace(options, lib_path=str(Path(lib_path).resolve()))
    if formats:
        options = replace(options, formats=list(formats))

    instrumenter = NodeInstrumenter.from_config(
        config.instrument, cwd=options.resolved_lib_path
    )
    collector = CoverageCollector(options, {}, instrumenter=instrumenter)

    snapshots = collector.store.snapshot_paths()
    if not snapshots:
        reporter.print_warning(f"No coverage snapshots found in {collector.data_path}")

    try:
        coverage_map = collector.generate_report()
    except Exception as e:
        reporter.print_error(f"Report generation failed: {e}")
        traceback.print_exc()
        raise click.Abort from e

    reporter.print_success(
        f"Merged {len(snapshots)} snapshot(s) covering {len(coverage_map or {})} file(s) "
        f"into {collector.output_path}"
    )


@cli.group("config")
def config_group() -> None:
    """Inspect `.electabul.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help=_PROJECT_OPTION_HELP,
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    config_dict = _config_to_dict(load_config(path))

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help=_PROJECT_OPTION_HELP,
)
def config_validate(path: str) -> None:
    """Validate `.electabul.yml`."""
    try:
        config = load_config(path)
    except Exception as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    errors = validate_config(config)
    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    for idx, error in enumerate(errors, start=1):
        reporter.console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort
