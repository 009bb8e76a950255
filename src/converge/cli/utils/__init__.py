"""CLI utilities package."""

import functools
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import click
from ...config import load_engine_config
from ...contracts.run_report import RunReport
from ...descriptors.loader import DescriptorSet, load_descriptor_file
from ...engine.runner import RunOptions
from ...providers import ProviderAdapter, get_provider
from ...utils.errors import ConvergeError, ValidationError
from ...utils.logging import get_logger
from .file_resolver import resolve_file_path

logger = get_logger("cli.utils")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def provider_options(func: Callable) -> Callable:
    """Attach the shared provider/config options to a command."""
    options = [
        click.option('--config', 'config_path', type=click.Path(), help='Extra config YAML layered over user/project config'),
        click.option('--provider', 'provider_name', type=click.Choice(['memory', 'gcloud']), help='Provider adapter (default from config)'),
        click.option('--state', 'state_file', type=click.Path(), help='State file for the memory provider'),
        click.option('--project', 'project_id', help='Project id for the gcloud provider'),
        click.option('--zone', help='Zone for zonal resources'),
        click.option('--timeout', type=click.FloatRange(min=0, min_open=True), help='Seconds allowed per provider call (> 0)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def output_options(func: Callable) -> Callable:
    """Attach the shared output options to a command."""
    options = [
        click.option('--json', 'json_output', is_flag=True, help='Output the run report as JSON'),
        click.option('--output', '-o', type=click.Path(), help='Save output to file'),
        click.option('--markdown', type=click.Path(), help='Also write a Markdown report'),
        click.option('--artifacts', type=click.Path(), help='Also write CI artifacts to this directory'),
        click.option('--verbose', '-v', is_flag=True, help='Show unchanged resources too'),
        click.option('--quiet', is_flag=True, help='Suppress progress messages'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_descriptors(descriptor_file: str) -> DescriptorSet:
    """Resolve and load a descriptor file, raising ConvergeError on problems."""
    try:
        path = resolve_file_path(descriptor_file)
    except FileNotFoundError as e:
        raise ConvergeError(str(e))
    return load_descriptor_file(str(path))


def build_provider(config: Dict[str, Any], provider_name=None, state_file=None, project_id=None, zone=None) -> ProviderAdapter:
    """Build the provider adapter from config, CLI flags taking precedence."""
    provider_config = config.get("provider", {})
    name = provider_name or provider_config.get("name", "memory")

    if name == "memory":
        return get_provider("memory", state_file=state_file or provider_config.get("state_file"))

    return get_provider(
        "gcloud",
        project_id=project_id or provider_config.get("project_id"),
        zone=zone or provider_config.get("zone"),
        binary=provider_config.get("gcloud_binary"),
    )


def build_run_options(config: Dict[str, Any], timeout: Optional[float] = None) -> RunOptions:
    """Build RunOptions from config and the --timeout flag."""
    call_timeout = timeout if timeout is not None else config.get("engine", {}).get("call_timeout")
    return RunOptions(call_timeout=call_timeout)


def emit_report(
    report: RunReport,
    json_output: bool = False,
    output: Optional[str] = None,
    markdown: Optional[str] = None,
    artifacts: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False
) -> None:
    """Print or save the report and write any requested extra reports."""
    if json_output:
        output_text = json.dumps(report.model_dump(mode="json"), indent=2)
    else:
        from ...presentation.human_formatter import format_report
        output_text = format_report(report, verbose=verbose)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(output_text)
        if not quiet:
            click.echo(f"Output saved to: {output_path}", err=True)
    else:
        try:
            click.echo(output_text)
        except UnicodeEncodeError:
            safe_text = output_text.encode('ascii', errors='replace').decode('ascii')
            click.echo(safe_text)

    if markdown:
        from ...report.markdown import generate_markdown
        generate_markdown(report, Path(markdown))
        if not quiet:
            click.echo(f"Markdown report saved to: {markdown}", err=True)

    if artifacts:
        from ...report.artifact import generate_artifacts
        generate_artifacts(report, Path(artifacts))
        if not quiet:
            click.echo(f"Artifacts saved to: {artifacts}", err=True)


def exit_code_for(report: RunReport) -> int:
    """0 when every node converged (or would), 1 when any failed or was skipped."""
    return EXIT_OK if report.succeeded else EXIT_FAILED


def load_cli_config(config_path: Optional[str]) -> Dict[str, Any]:
    return load_engine_config(config_path)


def handles_errors(command_name: str) -> Callable:
    """Map ConvergeError and unexpected errors to CLI exit codes."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ValidationError as e:
                click.echo(format_error(str(e), "Fix the depends_on entries and try again."), err=True)
                sys.exit(EXIT_INVALID)
            except ConvergeError as e:
                click.echo(format_error(str(e)), err=True)
                sys.exit(EXIT_FAILED)
            except (click.exceptions.Abort, click.ClickException):
                raise
            except Exception as e:
                logger.error(f"Unexpected error: {e}", exc_info=True)
                click.echo(format_error(f"{command_name} failed: {e}"), err=True)
                sys.exit(EXIT_FAILED)
        return wrapper
    return decorator


__all__ = [
    "resolve_file_path",
    "format_error",
    "provider_options",
    "output_options",
    "load_descriptors",
    "build_provider",
    "build_run_options",
    "emit_report",
    "exit_code_for",
    "load_cli_config",
    "handles_errors",
    "EXIT_OK",
    "EXIT_FAILED",
    "EXIT_INVALID",
]
