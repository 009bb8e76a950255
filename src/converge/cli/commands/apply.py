"""Apply command - converge infrastructure toward a descriptor file."""

import sys
import click
from ...engine.runner import apply as apply_run, plan as plan_run
from ...presentation.human_formatter import format_report
from ...utils.logging import get_logger
from ..utils import (
    build_provider,
    build_run_options,
    emit_report,
    exit_code_for,
    handles_errors,
    load_cli_config,
    load_descriptors,
    output_options,
    provider_options,
)

logger = get_logger("cli.apply")


@click.command()
@click.argument('descriptor_file', type=click.Path(exists=False))
@provider_options
@output_options
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@handles_errors("Apply")
def apply(descriptor_file, config_path, provider_name, state_file, project_id, zone, timeout,
          json_output, output, markdown, artifacts, verbose, quiet, yes):
    """
    Apply DESCRIPTOR_FILE: create missing resources, recreate changed ones,
    delete managed resources no longer declared.

    Exit code is 1 if any resource failed or was skipped; re-running applies
    only what is still out of sync.
    """
    config = load_cli_config(config_path)
    descriptor_set = load_descriptors(descriptor_file)
    adapter = build_provider(config, provider_name, state_file, project_id, zone)
    options = build_run_options(config, timeout)

    if not yes:
        preview = plan_run(descriptor_set.resources, adapter, managed=descriptor_set.managed, options=options)
        if not preview.changes():
            if not quiet:
                click.echo("Infrastructure is up to date. Nothing to apply.", err=True)
            emit_report(preview, json_output, output, markdown, artifacts, verbose, quiet)
            sys.exit(exit_code_for(preview))
        click.echo(format_report(preview), err=True)
        click.confirm("Apply these changes?", abort=True, err=True)

    if not quiet:
        click.echo(f"Applying {len(descriptor_set.resources)} resources with the {adapter.name} provider...", err=True)

    report = apply_run(descriptor_set.resources, adapter, managed=descriptor_set.managed, options=options)
    emit_report(report, json_output, output, markdown, artifacts, verbose, quiet)
    sys.exit(exit_code_for(report))
