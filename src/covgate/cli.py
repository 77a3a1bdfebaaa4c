"""covgate CLI: top-level command group."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console

from covgate import __version__
from covgate.config import CONFIG_FILE_NAME, ConfigError, ThresholdConfig, load_config
from covgate.coverage.store import CoverageReportStore
from covgate.engine import ThresholdPolicyEngine
from covgate.models.finding import Finding, Severity
from covgate.parsing.treesitter import EXTENSION_TO_LANGUAGE
from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.sarif import SARIFReporter
from covgate.reporters.terminal import reporter

logger = logging.getLogger(__name__)
console = Console()

_SKIPPED_DIRS = frozenset({"node_modules", ".git", "coverage", "dist", "build"})


def _collect_sources(paths: tuple[str, ...]) -> list[Path]:
    """Expand directories into the JS/TS source files below them."""
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            files.append(path)
            continue
        for candidate in sorted(path.rglob("*")):
            if any(part in _SKIPPED_DIRS for part in candidate.relative_to(path).parts):
                continue
            if candidate.is_file() and candidate.suffix.lower() in EXTENSION_TO_LANGUAGE:
                files.append(candidate)
    return files


def _load(root: str) -> ThresholdConfig:
    try:
        return load_config(root)
    except (ConfigError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="covgate")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """covgate: coverage threshold checks for JavaScript and TypeScript."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("check")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "--path",
    "root",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory (holds .covgate.yml and the coverage report).",
)
@click.option("--mode", type=click.Choice(["all", "changed"]), default=None, help="Override the analysis mode.")
@click.option("--base-branch", default=None, help="Override the base branch for changed mode.")
@click.option("--coverage-path", default=None, help="Override the coverage report path.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["terminal", "json", "sarif"]),
    default="terminal",
    help="Output format.",
)
@click.option("--output", type=click.Path(dir_okay=False), default=None, help="Write json/sarif output to a file.")
@click.pass_context
def check(
    ctx: click.Context,
    paths: tuple[str, ...],
    root: str,
    mode: str | None,
    base_branch: str | None,
    coverage_path: str | None,
    output_format: str,
    output: str | None,
) -> None:
    """Check source files against the configured coverage thresholds.

    Exits with status 1 when any finding has severity ``error``.

    Example:
      covgate check src/
      covgate check src/App.tsx --mode changed --base-branch develop
    """
    config = _load(root)
    overrides: dict[str, Any] = {
        key: value
        for key, value in {"mode": mode, "base_branch": base_branch, "coverage_path": coverage_path}.items()
        if value is not None
    }
    if overrides:
        try:
            config = dataclasses.replace(config, **overrides)
        except ConfigError as e:
            reporter.print_error(str(e))
            raise click.Abort from e

    root_path = Path(root)
    engine = ThresholdPolicyEngine(config, CoverageReportStore(root_path), project_root=root_path)

    files = _collect_sources(paths)
    findings: list[Finding] = []
    for file_path in files:
        findings.extend(engine.analyze(file_path.resolve()))

    if output_format == "json":
        _emit(JSONReporter().generate_string(findings, files_checked=len(files)), output)
    elif output_format == "sarif":
        _emit(SARIFReporter().generate_string(findings), output)
    else:
        reporter.print_header(f"Coverage check ({len(files)} files)")
        reporter.print_findings(findings)

    if any(f.severity is Severity.ERROR for f in findings):
        ctx.exit(1)


def _emit(content: str, output: str | None) -> None:
    if output is None:
        click.echo(content)
        return
    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(content, encoding="utf-8")
    reporter.print_success(f"Report written to {out_path}")


@cli.group("config")
def config_group() -> None:
    """Inspect `.covgate.yml` coverage configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of a table.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the effective coverage configuration, defaults included.

    Example:
      covgate config show
      covgate config show --json-output
    """
    config = _load(path)
    if as_json:
        click.echo(json.dumps(config.to_options(), indent=2))
        return
    reporter.print_config(config)


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate the `coverage` section of `.covgate.yml`.

    Example:
      covgate config validate
    """
    try:
        load_config(path)
    except ConfigError as e:
        reporter.print_error(f"Found {len(e.errors)} configuration error(s):")
        console.print()
        for idx, error in enumerate(e.errors, start=1):
            console.print(f"  {idx}. [red]{error}[/red]")
        console.print()
        console.print(f"[dim]Fix these errors in {CONFIG_FILE_NAME} and run 'covgate config validate' again.[/dim]")
        raise click.Abort from e
    except yaml.YAMLError as e:
        reporter.print_error(f"Failed to parse {CONFIG_FILE_NAME}: {e}")
        raise click.Abort from e

    reporter.print_success("Configuration is valid!")


if __name__ == "__main__":
    cli()
